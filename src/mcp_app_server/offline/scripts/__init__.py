"""Edit scripts, registered on import."""
from . import messaging  # noqa: F401

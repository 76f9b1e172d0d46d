"""Server inventory configuration."""
from .inventory import ServerInventory

__all__ = ["ServerInventory"]

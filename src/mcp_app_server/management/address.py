"""Resource addresses in the server management model.

An address is an ordered path of (type, name) pairs, e.g.
``/subsystem=infinispan/cache-container=web/local-cache=sessions``.
"""
from dataclasses import dataclass
from typing import Optional


def _check_segment(resource_type: str, name: str) -> None:
    if not isinstance(resource_type, str) or not resource_type:
        raise ValueError(f"Address segment type must be a non-empty string, got {resource_type!r}")
    if not isinstance(name, str) or not name:
        raise ValueError(
            f"Address segment name for '{resource_type}' must be a non-empty string, got {name!r}"
        )


@dataclass(frozen=True)
class Address:
    """Immutable path to a node in the management resource tree."""
    segments: tuple[tuple[str, str], ...] = ()

    def __post_init__(self):
        for resource_type, name in self.segments:
            _check_segment(resource_type, name)

    @classmethod
    def root(cls) -> "Address":
        return cls()

    @classmethod
    def subsystem(cls, name: str) -> "Address":
        """Address of a subsystem, the usual starting point."""
        return cls.root().and_("subsystem", name)

    @classmethod
    def core_service(cls, name: str) -> "Address":
        return cls.root().and_("core-service", name)

    @classmethod
    def parse(cls, text: str) -> "Address":
        """Parse the CLI form, e.g. ``/subsystem=messaging/hornetq-server=default``."""
        text = text.strip()
        if text in ("", "/"):
            return cls.root()

        segments = []
        for part in text.strip("/").split("/"):
            resource_type, sep, name = part.partition("=")
            if not sep:
                raise ValueError(f"Invalid address segment '{part}' in '{text}'")
            segments.append((resource_type, name))
        return cls(tuple(segments))

    def and_(self, resource_type: str, name: str) -> "Address":
        """Return a new address with a child segment appended."""
        _check_segment(resource_type, name)
        return Address(self.segments + ((resource_type, name),))

    def parent(self) -> "Address":
        if self.is_root:
            raise ValueError("Root address has no parent")
        return Address(self.segments[:-1])

    @property
    def is_root(self) -> bool:
        return not self.segments

    @property
    def last_type(self) -> Optional[str]:
        return self.segments[-1][0] if self.segments else None

    @property
    def last_name(self) -> Optional[str]:
        return self.segments[-1][1] if self.segments else None

    def to_model(self) -> list[dict[str, str]]:
        """Wire representation: list of single-key objects."""
        return [{resource_type: name} for resource_type, name in self.segments]

    def __str__(self) -> str:
        if self.is_root:
            return "/"
        return "".join(f"/{resource_type}={name}" for resource_type, name in self.segments)

"""Attribute values attached to management operations.

Values is immutable: every ``and_*`` call returns a new instance, so a base
set can be shared and extended per command:

    values = (Values.empty()
              .and_optional("jndi-name", jndi_name)
              .and_optional("durable", durable, default=False)
              .and_list(str, "entries", entries))
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Optional

SCALAR_TYPES = (bool, str, int, float)

# Marker for "no documented default", distinct from None
_NO_DEFAULT = object()


def _encode_scalar(name: str, value: Any) -> Any:
    if isinstance(value, Enum):
        value = value.value
    if not isinstance(value, SCALAR_TYPES):
        raise ValueError(
            f"Unsupported value type {type(value).__name__} for attribute '{name}'"
        )
    return value


@dataclass(frozen=True)
class Values:
    """Ordered, immutable attribute name -> value pairs."""
    pairs: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def empty(cls) -> "Values":
        return cls()

    @classmethod
    def of(cls, name: str, value: Any) -> "Values":
        return cls.empty().and_(name, value)

    def _with(self, name: str, value: Any) -> "Values":
        if not isinstance(name, str) or not name:
            raise ValueError(f"Attribute name must be a non-empty string, got {name!r}")

        # Redefining an attribute keeps its position
        pairs = list(self.pairs)
        for i, (existing, _) in enumerate(pairs):
            if existing == name:
                pairs[i] = (name, value)
                return Values(tuple(pairs))
        pairs.append((name, value))
        return Values(tuple(pairs))

    def and_(self, name: str, value: Any) -> "Values":
        """Add a required attribute. None is rejected."""
        if value is None:
            raise ValueError(f"Value of attribute '{name}' must not be None")
        if isinstance(value, (list, tuple)):
            return self._with(name, tuple(_encode_scalar(name, v) for v in value))
        return self._with(name, _encode_scalar(name, value))

    def and_optional(self, name: str, value: Any, default: Any = _NO_DEFAULT) -> "Values":
        """Add an attribute only if it is set.

        The attribute is skipped when ``value`` is None, and also when it equals
        ``default`` for attributes whose absence means that default.
        """
        if value is None:
            return self
        if default is not _NO_DEFAULT and value == default:
            return self
        return self.and_(name, value)

    def and_list(
        self,
        item_type: Callable[[Any], Any],
        name: str,
        items: Optional[Iterable[Any]],
    ) -> "Values":
        """Add a list attribute, encoding each element with ``item_type``.

        Skipped when ``items`` is None or empty.
        """
        if items is None:
            return self
        items = list(items)
        if not items:
            return self
        if any(item is None for item in items):
            raise ValueError(f"List attribute '{name}' must not contain None")
        return self._with(name, tuple(_encode_scalar(name, item_type(item)) for item in items))

    def merge(self, other: "Values") -> "Values":
        """Return a new Values with ``other``'s attributes added (other wins)."""
        merged = self
        for name, value in other.pairs:
            merged = merged._with(name, value)
        return merged

    # --- Read access ---

    def names(self) -> list[str]:
        return [name for name, _ in self.pairs]

    def get(self, name: str, default: Any = None) -> Any:
        for existing, value in self.pairs:
            if existing == name:
                return value
        return default

    @property
    def is_empty(self) -> bool:
        return not self.pairs

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-ready dict (lists for list attributes)."""
        return {
            name: list(value) if isinstance(value, tuple) else value
            for name, value in self.pairs
        }

    def __contains__(self, name: object) -> bool:
        return any(existing == name for existing, _ in self.pairs)

    def __len__(self) -> int:
        return len(self.pairs)

"""Operation nodes and composite batches.

A Batch is submitted as a single ``composite`` operation, which the server
applies all-or-nothing. Step order is preserved: later steps may depend on
resources created by earlier ones.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator, Optional

from .address import Address
from .values import Values


class OperationKind(str, Enum):
    """Management operations issued by this package."""
    ADD = "add"
    REMOVE = "remove"
    WRITE_ATTRIBUTE = "write-attribute"
    UNDEFINE_ATTRIBUTE = "undefine-attribute"
    READ_RESOURCE = "read-resource"
    READ_ATTRIBUTE = "read-attribute"
    READ_CHILDREN_NAMES = "read-children-names"
    COMPOSITE = "composite"


def operation_node(
    operation: str,
    address: Address,
    values: Optional[Values] = None,
) -> dict[str, Any]:
    """Build the wire form of a single operation."""
    node: dict[str, Any] = {
        "operation": str(operation.value if isinstance(operation, Enum) else operation),
        "address": address.to_model(),
    }
    if values is not None:
        for name, value in values.to_dict().items():
            if name in ("operation", "address"):
                raise ValueError(f"Attribute name '{name}' is reserved")
            node[name] = value
    return node


@dataclass(frozen=True)
class BatchStep:
    """One step of a batch."""
    operation: str
    address: Address
    values: Optional[Values] = None

    def to_model(self) -> dict[str, Any]:
        return operation_node(self.operation, self.address, self.values)

    def __str__(self) -> str:
        return f"{self.address}:{self.operation}"


class Batch:
    """Ordered group of operations applied atomically."""

    def __init__(self):
        self._steps: list[BatchStep] = []

    def add(self, address: Address, values: Optional[Values] = None) -> "Batch":
        return self.invoke(OperationKind.ADD.value, address, values)

    def remove(self, address: Address) -> "Batch":
        return self.invoke(OperationKind.REMOVE.value, address)

    def write_attribute(self, address: Address, name: str, value: Any) -> "Batch":
        values = Values.of("name", name).and_("value", value)
        return self.invoke(OperationKind.WRITE_ATTRIBUTE.value, address, values)

    def undefine_attribute(self, address: Address, name: str) -> "Batch":
        return self.invoke(OperationKind.UNDEFINE_ATTRIBUTE.value, address, Values.of("name", name))

    def invoke(
        self,
        operation: str,
        address: Address,
        values: Optional[Values] = None,
    ) -> "Batch":
        """Append an arbitrary operation."""
        self._steps.append(BatchStep(operation, address, values))
        return self

    @property
    def steps(self) -> list[BatchStep]:
        return list(self._steps)

    @property
    def is_empty(self) -> bool:
        return not self._steps

    def to_model(self) -> dict[str, Any]:
        """Render as a composite operation on the root address."""
        node = operation_node(OperationKind.COMPOSITE, Address.root())
        node["steps"] = [step.to_model() for step in self._steps]
        return node

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self) -> Iterator[BatchStep]:
        return iter(self._steps)

    def __repr__(self) -> str:
        return f"Batch({', '.join(str(s) for s in self._steps)})"

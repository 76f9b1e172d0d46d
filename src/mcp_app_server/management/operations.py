"""Operations facade over a live management client.

Mutating operations raise OperationException when the server rejects them;
reads return the ModelNodeResult so callers can inspect failures themselves.
"""
import logging
from typing import Any, Optional

from .address import Address
from .batch import Batch, OperationKind, operation_node
from .client import ManagementClient
from .result import ModelNodeResult
from .values import Values

logger = logging.getLogger(__name__)


class OperationException(Exception):
    """The server rejected an operation."""

    def __init__(
        self,
        operation: str,
        address: Optional[Address],
        description: Optional[str],
        failed_step: Optional[int] = None,
    ):
        self.operation = operation
        self.address = address
        self.description = description
        self.failed_step = failed_step

        target = f" on {address}" if address is not None else ""
        step = f" (step {failed_step})" if failed_step is not None else ""
        super().__init__(f"Operation '{operation}'{target} failed{step}: {description}")


class Operations:
    """Issue single operations and batches against a connected server."""

    def __init__(self, client: ManagementClient):
        self.client = client

    # --- Reads ---

    async def read_resource(
        self,
        address: Address,
        recursive: bool = False,
        include_runtime: bool = False,
    ) -> ModelNodeResult:
        return await self.client.read_resource(address, recursive, include_runtime)

    async def read_attribute(self, address: Address, name: str) -> ModelNodeResult:
        return await self.client.read_attribute(address, name)

    async def read_children_names(self, address: Address, child_type: str) -> ModelNodeResult:
        values = Values.of("child-type", child_type)
        return await self.client.execute(
            operation_node(OperationKind.READ_CHILDREN_NAMES, address, values)
        )

    async def exists(self, address: Address) -> bool:
        """Check existence through the parent's child names.

        A missing parent means the resource is absent too.
        """
        if address.is_root:
            return True
        result = await self.read_children_names(address.parent(), address.last_type)
        if result.is_failed:
            logger.debug(f"Parent of {address} not readable: {result.failure_description}")
            return False
        return address.last_name in result.list_value()

    # --- Mutations ---

    async def invoke(
        self,
        operation: str,
        address: Address,
        values: Optional[Values] = None,
    ) -> ModelNodeResult:
        result = await self.client.execute(operation_node(operation, address, values))
        if result.is_failed:
            raise OperationException(operation, address, result.failure_description)
        return result

    async def add(self, address: Address, values: Optional[Values] = None) -> ModelNodeResult:
        logger.info(f"Adding {address}")
        return await self.invoke(OperationKind.ADD.value, address, values)

    async def remove(self, address: Address) -> ModelNodeResult:
        logger.info(f"Removing {address}")
        return await self.invoke(OperationKind.REMOVE.value, address)

    async def remove_if_exists(self, address: Address) -> bool:
        """Remove the resource if present.

        Check and remove are two round-trips; a concurrent external change in
        between surfaces as an OperationException from ``remove``.

        Returns:
            True if a resource was removed, False if it was absent
        """
        if not await self.exists(address):
            logger.debug(f"{address} does not exist, nothing to remove")
            return False
        await self.remove(address)
        return True

    async def write_attribute(self, address: Address, name: str, value: Any) -> ModelNodeResult:
        values = Values.of("name", name).and_("value", value)
        return await self.invoke(OperationKind.WRITE_ATTRIBUTE.value, address, values)

    async def undefine_attribute(self, address: Address, name: str) -> ModelNodeResult:
        return await self.invoke(
            OperationKind.UNDEFINE_ATTRIBUTE.value, address, Values.of("name", name)
        )

    async def batch(self, batch: Batch) -> Optional[ModelNodeResult]:
        """Submit all steps as one composite operation.

        Returns None for an empty batch (no round-trip).
        """
        if batch.is_empty:
            return None

        logger.info(f"Executing batch of {len(batch)} step(s)")
        result = await self.client.execute_batch(batch)
        if result.is_failed:
            failed = result.failed_step()
            if failed is not None:
                index, description = failed
                step = batch.steps[index - 1] if 0 < index <= len(batch) else None
                raise OperationException(
                    step.operation if step else OperationKind.COMPOSITE.value,
                    step.address if step else None,
                    description,
                    failed_step=index,
                )
            raise OperationException(
                OperationKind.COMPOSITE.value, None, result.failure_description
            )
        return result

"""Live management model: addresses, values, batches and clients."""
from .address import Address
from .values import Values
from .batch import Batch, BatchStep, OperationKind, operation_node
from .result import ModelNodeResult
from .version import (
    ServerVersion,
    VERSION_1_7_0,
    VERSION_2_0_0,
    VERSION_3_0_0,
    VERSION_4_0_0,
)
from .client import ManagementClient, ManagementTransportError, ServerConfig
from .http_client import HttpManagementClient
from .memory import InMemoryManagementClient
from .operations import Operations, OperationException

__all__ = [
    "Address",
    "Values",
    "Batch",
    "BatchStep",
    "OperationKind",
    "operation_node",
    "ModelNodeResult",
    "ServerVersion",
    "VERSION_1_7_0",
    "VERSION_2_0_0",
    "VERSION_3_0_0",
    "VERSION_4_0_0",
    "ManagementClient",
    "ManagementTransportError",
    "ServerConfig",
    "HttpManagementClient",
    "InMemoryManagementClient",
    "Operations",
    "OperationException",
]

# Live client type registry
CLIENT_TYPES = {
    "http": HttpManagementClient,
    "memory": InMemoryManagementClient,
}


def create_client(server_id: str, config: dict) -> ManagementClient:
    """Factory function to create live management clients."""
    client_type = config.get("type", "").lower()
    if client_type not in CLIENT_TYPES:
        raise ValueError(f"Unknown management client type: {client_type}")

    client_class = CLIENT_TYPES[client_type]
    return client_class(server_id, ServerConfig(**config))

"""Base management client abstraction for live application servers."""
import os
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from .address import Address
from .batch import Batch, OperationKind, operation_node
from .result import ModelNodeResult
from .values import Values
from .version import ServerVersion

logger = logging.getLogger(__name__)


class ManagementTransportError(Exception):
    """The management endpoint could not be reached or answered garbage."""


@dataclass
class ServerConfig:
    """Configuration for a managed server."""
    type: str
    name: str
    host: str = "localhost"
    port: int = 9990
    protocol: str = "http"
    username: str = ""
    password: Optional[str] = None
    password_env: str = "SERVERCRAFT_PASSWORD"
    timeout: int = 30
    retries: int = 3
    verify_ssl: bool = True
    # Offline servers: path to standalone.xml / domain.xml
    config_file: Optional[str] = None
    backup_dir: Optional[str] = None
    # In-memory servers: management version to report
    version: Optional[str] = None

    def get_password(self) -> str:
        """Get password from config or environment variable."""
        if self.password:
            return self.password
        return os.environ.get(self.password_env, "")


class ManagementClient(ABC):
    """Abstract base class for live management transports.

    Subclasses only implement connection handling and ``execute``; reads,
    batches and version detection are built on top of it.
    """

    def __init__(self, server_id: str, config: ServerConfig):
        self.server_id = server_id
        self.config = config
        self._connected = False
        self._version: Optional[ServerVersion] = None

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def is_connected(self) -> bool:
        return self._connected

    # Connection management
    @abstractmethod
    async def connect(self) -> bool:
        """Establish connection to the server."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close connection to the server."""
        pass

    # Operation execution
    @abstractmethod
    async def execute(self, operation: dict[str, Any]) -> ModelNodeResult:
        """Execute a single operation node.

        Returns:
            ModelNodeResult; server-side failures are reported in the result,
            transport failures raise.
        """
        pass

    async def execute_batch(self, batch: Batch) -> ModelNodeResult:
        """Execute all steps of a batch as one composite operation."""
        return await self.execute(batch.to_model())

    async def read_resource(
        self,
        address: Address,
        recursive: bool = False,
        include_runtime: bool = False,
    ) -> ModelNodeResult:
        values = Values.of("recursive", recursive).and_("include-runtime", include_runtime)
        return await self.execute(operation_node(OperationKind.READ_RESOURCE, address, values))

    async def read_attribute(self, address: Address, name: str) -> ModelNodeResult:
        return await self.execute(
            operation_node(OperationKind.READ_ATTRIBUTE, address, Values.of("name", name))
        )

    async def version(self) -> ServerVersion:
        """Management model version of the server (cached)."""
        if self._version is None:
            result = await self.read_resource(Address.root())
            if result.is_failed:
                raise ManagementTransportError(
                    f"Cannot read management version of {self.server_id}: "
                    f"{result.failure_description}"
                )
            root = result.value or {}
            self._version = ServerVersion(
                int(root.get("management-major-version", 0)),
                int(root.get("management-minor-version") or 0),
                int(root.get("management-micro-version") or 0),
            )
            logger.debug(f"{self.server_id} management version {self._version}")
        return self._version

    # Context manager support
    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()
        return False

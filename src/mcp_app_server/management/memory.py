"""
In memory management model.

This client is used for tests and local simulations. It keeps a resource
tree keyed by address and answers the subset of the management protocol
this package issues, with the same response shapes as a real server:

- add / remove / write-attribute / undefine-attribute
- read-resource / read-attribute / read-children-names
- composite, applied all-or-nothing
"""
import copy
import logging
from typing import Any, Optional

from .address import Address
from .client import ManagementClient, ServerConfig
from .result import ModelNodeResult
from .version import ServerVersion, VERSION_4_0_0

logger = logging.getLogger(__name__)

Key = tuple[tuple[str, str], ...]


class OperationFailed(Exception):
    """Internal signal carrying a failure description."""


def _key_from_model(address: list[dict[str, str]]) -> Key:
    segments = []
    for element in address:
        (resource_type, name), = element.items()
        segments.append((resource_type, name))
    return tuple(segments)


def _render(key: Key) -> str:
    return str(Address(key))


class InMemoryManagementClient(ManagementClient):
    """Management client backed by an in-memory resource tree."""

    def __init__(
        self,
        server_id: str = "memory",
        config: Optional[ServerConfig] = None,
        version: Optional[ServerVersion] = None,
        resources: Optional[dict[Address, dict[str, Any]]] = None,
    ):
        config = config or ServerConfig(type="memory", name=server_id)
        super().__init__(server_id, config)
        if version is None:
            version = ServerVersion.parse(config.version) if config.version else VERSION_4_0_0
        self.server_version = version
        self.operations_executed: list[dict[str, Any]] = []
        self._resources: dict[Key, dict[str, Any]] = {(): {}}
        for address, attributes in (resources or {}).items():
            self.seed(address, attributes)

    def seed(self, address: Address, attributes: Optional[dict[str, Any]] = None) -> None:
        """Create a resource (and any missing ancestors) without protocol checks."""
        for i in range(1, len(address.segments) + 1):
            self._resources.setdefault(address.segments[:i], {})
        self._resources[address.segments].update(attributes or {})

    def has_resource(self, address: Address) -> bool:
        return address.segments in self._resources

    def attributes(self, address: Address) -> dict[str, Any]:
        return dict(self._resources[address.segments])

    async def connect(self) -> bool:
        self._connected = True
        return True

    async def disconnect(self) -> None:
        self._connected = False

    async def execute(self, operation: dict[str, Any]) -> ModelNodeResult:
        self.operations_executed.append(operation)
        try:
            if operation.get("operation") == "composite":
                return self._composite(operation)
            return ModelNodeResult.success(self._apply(self._resources, operation))
        except OperationFailed as e:
            return ModelNodeResult.failure(str(e))

    # --- Protocol implementation ---

    def _composite(self, operation: dict[str, Any]) -> ModelNodeResult:
        # Work on a copy; only commit when every step succeeded
        staged = copy.deepcopy(self._resources)
        step_results: dict[str, Any] = {}
        for index, step in enumerate(operation.get("steps", []), start=1):
            try:
                value = self._apply(staged, step)
            except OperationFailed as e:
                step_results[f"step-{index}"] = {
                    "outcome": "failed",
                    "failure-description": str(e),
                }
                return ModelNodeResult({
                    "outcome": "failed",
                    "result": step_results,
                    "failure-description": {
                        "Composite operation failed and was rolled back. Steps that failed:": {
                            f"Operation step-{index}": str(e),
                        }
                    },
                    "rolled-back": True,
                })
            step_results[f"step-{index}"] = {"outcome": "success", "result": value}

        self._resources = staged
        return ModelNodeResult.success(step_results)

    def _apply(self, tree: dict[Key, dict[str, Any]], operation: dict[str, Any]) -> Any:
        name = operation.get("operation")
        key = _key_from_model(operation.get("address", []))
        params = {k: v for k, v in operation.items() if k not in ("operation", "address")}

        if name == "read-resource" and key == ():
            return self._read_root(tree, params)
        if name == "add":
            return self._add(tree, key, params)

        if key not in tree:
            raise OperationFailed(f"Management resource '{_render(key)}' not found")

        if name == "remove":
            for existing in [k for k in tree if k[:len(key)] == key]:
                del tree[existing]
            return None
        if name == "read-resource":
            return self._read(tree, key, params.get("recursive", False))
        if name == "read-attribute":
            attribute = params.get("name")
            if attribute == "name" and key:
                return key[-1][1]
            return copy.deepcopy(tree[key].get(attribute))
        if name == "read-children-names":
            child_type = params.get("child-type")
            return sorted(
                k[-1][1] for k in tree
                if len(k) == len(key) + 1 and k[:len(key)] == key and k[-1][0] == child_type
            )
        if name == "write-attribute":
            tree[key][params["name"]] = params.get("value")
            return None
        if name == "undefine-attribute":
            tree[key].pop(params["name"], None)
            return None

        raise OperationFailed(f"No operation named '{name}' exists at address {_render(key)}")

    def _add(self, tree: dict[Key, dict[str, Any]], key: Key, params: dict[str, Any]) -> None:
        if not key:
            raise OperationFailed("Cannot add the root resource")
        if key in tree:
            raise OperationFailed(f"Duplicate resource {_render(key)}")
        if key[:-1] not in tree:
            raise OperationFailed(f"Management resource '{_render(key[:-1])}' not found")
        tree[key] = copy.deepcopy(params)
        return None

    def _read(self, tree: dict[Key, dict[str, Any]], key: Key, recursive: bool) -> dict[str, Any]:
        node = copy.deepcopy(tree[key])
        for child in tree:
            if len(child) != len(key) + 1 or child[:len(key)] != key:
                continue
            child_type, child_name = child[-1]
            children = node.setdefault(child_type, {})
            children[child_name] = self._read(tree, child, True) if recursive else None
        return node

    def _read_root(self, tree: dict[Key, dict[str, Any]], params: dict[str, Any]) -> dict[str, Any]:
        node = self._read(tree, (), params.get("recursive", False))
        node.update({
            "management-major-version": self.server_version.major,
            "management-minor-version": self.server_version.minor,
            "management-micro-version": self.server_version.micro,
        })
        return node

"""Server inventory management from YAML configuration."""
import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Union

import yaml

from ..commands.base import OfflineCommandContext, OnlineCommandContext
from ..management import ManagementClient, create_client
from ..offline.client import OfflineManagementClient

logger = logging.getLogger(__name__)

CONFIG_ENV = "SERVERCRAFT_CONFIG"
OFFLINE_TYPE = "offline"


class ServerInventory:
    """Manages the server inventory loaded from YAML config.

    ```yaml
    defaults:
      username: admin
      password_env: WILDFLY_PASSWORD

    servers:
      wildfly-dev:
        type: http
        host: 10.0.0.5
        port: 9990
      eap-staging:
        type: offline
        config_file: /opt/eap/standalone/configuration/standalone.xml

    groups:
      staging:
        - eap-staging
    ```
    """

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._find_config()
        self._config: dict = {}
        self._clients: dict[str, ManagementClient] = {}
        self._offline: dict[str, OfflineManagementClient] = {}
        self._load_config()

    def _find_config(self) -> str:
        """Find the servers.yaml config file."""
        if os.environ.get(CONFIG_ENV):
            return os.environ[CONFIG_ENV]

        search_paths = [
            Path.cwd() / "configs" / "servers.yaml",
            Path.cwd() / "servers.yaml",
            Path.home() / ".config" / "servercraft" / "servers.yaml",
            Path("/etc/servercraft/servers.yaml"),
        ]

        for path in search_paths:
            if path.exists():
                return str(path)

        raise FileNotFoundError(
            f"Could not find servers.yaml. Create one in ./configs/servers.yaml or set {CONFIG_ENV}"
        )

    def _load_config(self) -> None:
        """Load the YAML configuration."""
        with open(self.config_path) as f:
            self._config = yaml.safe_load(f) or {}

        defaults = self._config.get("defaults", {})
        for server_id, server_config in self._config.get("servers", {}).items():
            for key, value in defaults.items():
                server_config.setdefault(key, value)
            server_config.setdefault("name", server_id)

        self._validate_groups()

    def get_server_ids(self) -> list[str]:
        """Get all server IDs."""
        return list(self._config.get("servers", {}).keys())

    def get_server_config(self, server_id: str) -> dict:
        """Get raw config for a server."""
        servers = self._config.get("servers", {})
        if server_id not in servers:
            raise KeyError(f"Unknown server: {server_id}")
        return servers[server_id]

    def is_offline(self, server_id: str) -> bool:
        return self.get_server_config(server_id).get("type", "").lower() == OFFLINE_TYPE

    def get_client(self, server_id: str) -> ManagementClient:
        """Get or create the live client of a server."""
        if self.is_offline(server_id):
            raise ValueError(f"Server {server_id} is configured for offline mode")
        if server_id not in self._clients:
            self._clients[server_id] = create_client(server_id, dict(self.get_server_config(server_id)))
        return self._clients[server_id]

    def get_offline_client(self, server_id: str) -> OfflineManagementClient:
        """Get or create the configuration-file client of a server."""
        config = self.get_server_config(server_id)
        if not self.is_offline(server_id):
            raise ValueError(f"Server {server_id} is not configured for offline mode")
        if not config.get("config_file"):
            raise ValueError(f"Offline server {server_id} has no config_file")
        if server_id not in self._offline:
            self._offline[server_id] = OfflineManagementClient(
                server_id, config["config_file"], config.get("backup_dir")
            )
        return self._offline[server_id]

    @asynccontextmanager
    async def context(
        self, server_id: str, user: str = "system"
    ) -> AsyncIterator[Union[OnlineCommandContext, OfflineCommandContext]]:
        """Command context for a server, connecting live clients on demand."""
        if self.is_offline(server_id):
            yield OfflineCommandContext(self.get_offline_client(server_id), user)
            return

        client = self.get_client(server_id)
        if not client.is_connected:
            await client.connect()
        yield OnlineCommandContext(client, user)

    async def close_all(self) -> None:
        """Close all live connections."""
        for client in self._clients.values():
            if client.is_connected:
                await client.disconnect()
        self._clients.clear()

    # === Group Management ===

    def _validate_groups(self) -> None:
        """Validate that all group members reference valid servers."""
        groups = self._config.get("groups", {})
        servers = self._config.get("servers", {})

        for group_name, members in groups.items():
            if not isinstance(members, list):
                logger.warning(f"Group '{group_name}' should be a list of server IDs")
                continue
            for server_id in members:
                if server_id not in servers:
                    logger.warning(
                        f"Group '{group_name}' references unknown server: {server_id}"
                    )

    def get_groups(self) -> dict[str, list[str]]:
        """Get all defined groups and their members."""
        return dict(self._config.get("groups", {}))

    def get_group_members(self, group_name: str) -> list[str]:
        """Get server IDs in a group.

        Raises:
            KeyError: If group doesn't exist
        """
        groups = self._config.get("groups", {})
        if group_name not in groups:
            raise KeyError(f"Unknown group: {group_name}")
        return list(groups[group_name])

    def get_server_groups(self, server_id: str) -> list[str]:
        """Get all groups a server belongs to."""
        return [
            group_name for group_name, members in self._config.get("groups", {}).items()
            if server_id in members
        ]

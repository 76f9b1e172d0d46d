"""MCP Server for application server configuration management.

Applies configuration commands to WildFly / JBoss EAP servers, either live
through the HTTP management API or offline by editing standalone.xml.

Tools exposed:
- list_servers: List all configured servers
- server_version: Get the management model version of a server
- read_resource: Read a resource of the management model
- read_attribute: Read a single attribute
- add_queue: Create a JMS queue
- remove_queue: Remove a JMS queue
- add_cache: Create an Infinispan cache
- remove_cache: Remove an Infinispan cache
- config_backup: Back up the configuration file of an offline server
- config_restore: Restore a configuration file backup
- list_backups: List configuration file backups
- get_audit_log: Get recent configuration changes
"""
import asyncio
import json
import logging
from typing import Any, Optional

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import (
    TextContent,
    Tool,
    Resource,
)
from pydantic import AnyUrl

from .commands import (
    AddQueueBuilder,
    CacheMode,
    ConsistentHashStrategy,
    DistributedCacheBuilder,
    InvalidationCacheBuilder,
    LocalCacheBuilder,
    RemoveCache,
    RemoveQueue,
    ReplicatedCacheBuilder,
    apply_command,
)
from .commands.infinispan import CacheBuilder
from .commands.messaging import DEFAULT_SERVER_NAME
from .config.inventory import ServerInventory
from .management import Address
from .utils.audit_log import get_recent_changes, setup_audit_logging
from .utils.logging_config import setup_logging, timed_section

logger = logging.getLogger(__name__)

# Global inventory (initialized on first use)
inventory: Optional[ServerInventory] = None


def get_inventory() -> ServerInventory:
    """Get or create the server inventory."""
    global inventory
    if inventory is None:
        inventory = ServerInventory()
    return inventory


# Create MCP server
server = Server("servercraft")

SERVER_ID = {
    "type": "string",
    "description": "Server ID (e.g., 'wildfly-dev', 'eap-staging')"
}

CACHE_BUILDERS = {
    "local": LocalCacheBuilder,
    "distributed": DistributedCacheBuilder,
    "replicated": ReplicatedCacheBuilder,
    "invalidation": InvalidationCacheBuilder,
}


# === TOOLS ===

@server.list_tools()
async def list_tools() -> list[Tool]:
    """List all available tools."""
    return [
        Tool(
            name="list_servers",
            description="List all configured application servers with their mode and connection info",
            inputSchema={"type": "object", "properties": {}, "required": []}
        ),
        Tool(
            name="server_version",
            description="Get the management model version of a server (offline: schema version)",
            inputSchema={
                "type": "object",
                "properties": {"server_id": SERVER_ID},
                "required": ["server_id"]
            }
        ),
        Tool(
            name="read_resource",
            description="Read a resource of a live server's management model",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "address": {
                        "type": "string",
                        "description": "Resource address, e.g. '/subsystem=infinispan/cache-container=web'"
                    },
                    "recursive": {"type": "boolean", "default": False},
                    "include_runtime": {"type": "boolean", "default": False},
                },
                "required": ["server_id", "address"]
            }
        ),
        Tool(
            name="read_attribute",
            description="Read one attribute of a resource on a live server",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "address": {"type": "string", "description": "Resource address"},
                    "name": {"type": "string", "description": "Attribute name"},
                },
                "required": ["server_id", "address", "name"]
            }
        ),
        Tool(
            name="add_queue",
            description="Create a JMS queue (HornetQ or ActiveMQ, detected from the server)",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "name": {"type": "string", "description": "Queue name"},
                    "entries": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "JNDI entries, e.g. ['java:/jms/queue/orders']"
                    },
                    "durable": {"type": "boolean", "default": False},
                    "selector": {"type": "string", "description": "Message selector"},
                    "replace_existing": {
                        "type": "boolean",
                        "description": "Replace a queue of the same name instead of failing",
                        "default": False
                    },
                    "messaging_server": {
                        "type": "string",
                        "description": "Messaging server name",
                        "default": DEFAULT_SERVER_NAME
                    },
                },
                "required": ["server_id", "name", "entries"]
            }
        ),
        Tool(
            name="remove_queue",
            description="Remove a JMS queue (no-op if it does not exist)",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "name": {"type": "string", "description": "Queue name"},
                    "messaging_server": {"type": "string", "default": DEFAULT_SERVER_NAME},
                },
                "required": ["server_id", "name"]
            }
        ),
        Tool(
            name="add_cache",
            description="Create an Infinispan cache in a cache container (live servers only)",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "cache_type": {
                        "type": "string",
                        "enum": sorted(CACHE_BUILDERS),
                    },
                    "name": {"type": "string", "description": "Cache name"},
                    "container": {"type": "string", "description": "Cache container"},
                    "jndi_name": {"type": "string"},
                    "module": {"type": "string"},
                    "start": {"type": "string", "description": "EAGER or LAZY"},
                    "statistics_enabled": {"type": "boolean"},
                    "batching": {"type": "boolean", "description": "Local caches"},
                    "indexing": {"type": "string", "description": "Local caches"},
                    "mode": {"type": "string", "enum": [m.value for m in CacheMode]},
                    "async_marshalling": {"type": "boolean"},
                    "queue_flush_interval": {"type": "integer"},
                    "queue_size": {"type": "integer"},
                    "remote_timeout": {"type": "integer"},
                    "capacity_factor": {"type": "number", "description": "Distributed caches"},
                    "consistent_hash_strategy": {
                        "type": "string",
                        "enum": [s.value for s in ConsistentHashStrategy],
                    },
                    "l1_lifespan": {"type": "integer"},
                    "owners": {"type": "integer"},
                    "segments": {"type": "integer"},
                },
                "required": ["server_id", "cache_type", "name", "container"]
            }
        ),
        Tool(
            name="remove_cache",
            description="Remove an Infinispan cache (no-op if it does not exist)",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "cache_type": {"type": "string", "enum": sorted(CACHE_BUILDERS)},
                    "name": {"type": "string"},
                    "container": {"type": "string"},
                },
                "required": ["server_id", "cache_type", "name", "container"]
            }
        ),
        Tool(
            name="config_backup",
            description="Back up the configuration file of an offline server",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "name": {"type": "string", "description": "Backup name (default: timestamp)"},
                },
                "required": ["server_id"]
            }
        ),
        Tool(
            name="config_restore",
            description="Restore the configuration file of an offline server from a backup",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": SERVER_ID,
                    "name": {"type": "string", "description": "Backup name"},
                },
                "required": ["server_id", "name"]
            }
        ),
        Tool(
            name="list_backups",
            description="List configuration file backups of an offline server",
            inputSchema={
                "type": "object",
                "properties": {"server_id": SERVER_ID},
                "required": ["server_id"]
            }
        ),
        Tool(
            name="get_audit_log",
            description="Get recent configuration changes from the audit log",
            inputSchema={
                "type": "object",
                "properties": {
                    "server_id": {"type": "string", "description": "Filter by server"},
                    "operation": {"type": "string", "description": "Filter by command, e.g. 'AddQueue'"},
                    "limit": {"type": "integer", "default": 20},
                },
                "required": []
            }
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    server_id = arguments.get("server_id", "N/A")

    async with timed_section(f"tool:{name}", server_id=server_id):
        try:
            inv = get_inventory()

            if name == "list_servers":
                return await handle_list_servers(inv)

            elif name == "server_version":
                return await handle_server_version(inv, arguments["server_id"])

            elif name == "read_resource":
                return await handle_read_resource(
                    inv,
                    arguments["server_id"],
                    arguments["address"],
                    arguments.get("recursive", False),
                    arguments.get("include_runtime", False),
                )

            elif name == "read_attribute":
                return await handle_read_attribute(
                    inv, arguments["server_id"], arguments["address"], arguments["name"]
                )

            elif name in ("add_queue", "remove_queue", "add_cache", "remove_cache"):
                return await handle_apply(inv, name, arguments)

            elif name == "config_backup":
                return await handle_config_backup(inv, arguments["server_id"], arguments.get("name"))

            elif name == "config_restore":
                return await handle_config_restore(inv, arguments["server_id"], arguments["name"])

            elif name == "list_backups":
                return await handle_list_backups(inv, arguments["server_id"])

            elif name == "get_audit_log":
                return await handle_get_audit_log(
                    arguments.get("server_id"),
                    arguments.get("operation"),
                    arguments.get("limit", 20),
                )

            else:
                return [TextContent(type="text", text=f"Unknown tool: {name}")]

        except Exception as e:
            logger.exception(f"Tool {name} failed")
            return [TextContent(type="text", text=f"Error: {str(e)}")]


def _json(data: Any) -> list[TextContent]:
    return [TextContent(type="text", text=json.dumps(data, indent=2, default=str))]


# === COMMAND BUILDING ===

def build_queue_command(tool: str, args: dict):
    """AddQueue / RemoveQueue from tool arguments."""
    server_name = args.get("messaging_server") or DEFAULT_SERVER_NAME
    if tool == "remove_queue":
        return RemoveQueue(args["name"], server_name)

    builder = (AddQueueBuilder(args["name"], server_name)
               .durable(bool(args.get("durable", False)))
               .jndi_entries(args.get("entries") or []))
    if args.get("selector") is not None:
        builder.selector(args["selector"])
    if args.get("replace_existing"):
        builder.replace_existing()
    return builder.build()


def build_cache_command(tool: str, args: dict):
    """AddCache / RemoveCache from tool arguments."""
    kind = args["cache_type"]
    if kind not in CACHE_BUILDERS:
        raise ValueError(f"Unknown cache type: {kind}")

    if tool == "remove_cache":
        return RemoveCache(args["container"], CACHE_BUILDERS[kind].cache_type, args["name"])

    builder: CacheBuilder = CACHE_BUILDERS[kind](args["name"]).cache_container(args["container"])
    setters = {
        "jndi_name": builder.jndi_name,
        "module": builder.module,
        "start": builder.start,
        "statistics_enabled": builder.statistics_enabled,
    }
    if isinstance(builder, LocalCacheBuilder):
        setters.update(batching=builder.batching, indexing=builder.indexing)
    else:
        setters.update(
            mode=lambda v: builder.mode(CacheMode(v)),
            async_marshalling=builder.async_marshalling,
            queue_flush_interval=builder.queue_flush_interval,
            queue_size=builder.queue_size,
            remote_timeout=builder.remote_timeout,
        )
    if isinstance(builder, DistributedCacheBuilder):
        setters.update(
            capacity_factor=builder.capacity_factor,
            consistent_hash_strategy=lambda v: builder.consistent_hash_strategy(ConsistentHashStrategy(v)),
            l1_lifespan=builder.l1_lifespan,
            owners=builder.owners,
            segments=builder.segments,
        )

    ignored = [
        key for key, value in args.items()
        if value is not None and key not in setters
        and key not in ("server_id", "cache_type", "name", "container")
    ]
    if ignored:
        raise ValueError(f"Options not valid for {kind} caches: {', '.join(sorted(ignored))}")

    for key, setter in setters.items():
        if args.get(key) is not None:
            setter(args[key])
    return builder.build()


# === TOOL HANDLERS ===

async def handle_list_servers(inv: ServerInventory) -> list[TextContent]:
    """List all configured servers."""
    servers = []
    for server_id in inv.get_server_ids():
        config = inv.get_server_config(server_id)
        servers.append({
            "id": server_id,
            "name": config.get("name", server_id),
            "type": config.get("type"),
            "mode": "offline" if inv.is_offline(server_id) else "online",
            "host": config.get("host"),
            "port": config.get("port"),
            "config_file": config.get("config_file"),
            "groups": inv.get_server_groups(server_id),
        })

    return _json({"servers": servers})


async def handle_server_version(inv: ServerInventory, server_id: str) -> list[TextContent]:
    """Get the server's management (or schema) version."""
    async with inv.context(server_id) as ctx:
        version = await ctx.version()

    return _json({"server_id": server_id, "mode": ctx.mode, "version": str(version)})


async def handle_read_resource(
    inv: ServerInventory,
    server_id: str,
    address: str,
    recursive: bool,
    include_runtime: bool,
) -> list[TextContent]:
    """Read a resource from a live server."""
    client = inv.get_client(server_id)
    if not client.is_connected:
        await client.connect()
    result = await client.read_resource(Address.parse(address), recursive, include_runtime)

    return _json({
        "server_id": server_id,
        "address": address,
        "success": result.is_success,
        "result": result.value if result.is_success else None,
        "error": result.failure_description,
    })


async def handle_read_attribute(
    inv: ServerInventory,
    server_id: str,
    address: str,
    name: str,
) -> list[TextContent]:
    """Read an attribute from a live server."""
    client = inv.get_client(server_id)
    if not client.is_connected:
        await client.connect()
    result = await client.read_attribute(Address.parse(address), name)

    return _json({
        "server_id": server_id,
        "address": address,
        "attribute": name,
        "success": result.is_success,
        "value": result.value if result.is_success else None,
        "error": result.failure_description,
    })


async def handle_apply(inv: ServerInventory, tool: str, args: dict) -> list[TextContent]:
    """Build a command from tool arguments and apply it."""
    if tool in ("add_queue", "remove_queue"):
        command = build_queue_command(tool, args)
    else:
        command = build_cache_command(tool, args)

    server_id = args["server_id"]
    async with inv.context(server_id, user="mcp") as ctx:
        await apply_command(command, ctx)

    return _json({
        "action": tool,
        "server_id": server_id,
        "mode": ctx.mode,
        "success": True,
        "command": str(command),
    })


async def handle_config_backup(
    inv: ServerInventory,
    server_id: str,
    name: Optional[str],
) -> list[TextContent]:
    """Back up an offline server's configuration file."""
    client = inv.get_offline_client(server_id)
    backup_name = client.backup(name)

    return _json({
        "action": "config_backup",
        "success": True,
        "server_id": server_id,
        "backup_name": backup_name,
        "backup_path": str(client.backup_dir / f"{backup_name}.xml"),
    })


async def handle_config_restore(inv: ServerInventory, server_id: str, name: str) -> list[TextContent]:
    """Restore an offline server's configuration file."""
    client = inv.get_offline_client(server_id)
    client.restore(name)

    return _json({
        "action": "config_restore",
        "success": True,
        "server_id": server_id,
        "backup_name": name,
        "config_file": str(client.config_file),
    })


async def handle_list_backups(inv: ServerInventory, server_id: str) -> list[TextContent]:
    """List configuration file backups."""
    client = inv.get_offline_client(server_id)
    return _json({"server_id": server_id, "backups": client.list_backups()})


async def handle_get_audit_log(
    server_id: Optional[str] = None,
    operation: Optional[str] = None,
    limit: int = 20
) -> list[TextContent]:
    """Get recent configuration changes from the audit log."""
    records = get_recent_changes(server_id=server_id, operation=operation, limit=limit)

    return _json({
        "total_records": len(records),
        "filters": {
            "server_id": server_id,
            "operation": operation,
            "limit": limit,
        },
        "records": [
            {
                "timestamp": r.timestamp,
                "server_id": r.server_id,
                "operation": r.operation,
                "mode": r.mode,
                "user": r.user,
                "success": r.success,
                "parameters": r.parameters,
                "error": r.error,
            }
            for r in records
        ],
    })


# === RESOURCES ===

@server.list_resources()
async def list_resources() -> list[Resource]:
    """List available resources."""
    inv = get_inventory()
    resources = []

    for server_id in inv.get_server_ids():
        config = inv.get_server_config(server_id)
        resources.append(Resource(
            uri=AnyUrl(f"appserver://{server_id}/model"),
            name=f"{config.get('name', server_id)} Management Model",
            description=f"Root resource of {server_id}",
            mimeType="application/json",
        ))

    return resources


@server.read_resource()
async def read_resource(uri: AnyUrl) -> str:
    """Read a resource."""
    # Parse URI: appserver://server_id/model
    uri_str = str(uri)
    if uri_str.startswith("appserver://"):
        parts = uri_str[len("appserver://"):].split("/")
        if len(parts) >= 2 and parts[1] == "model":
            server_id = parts[0]
            inv = get_inventory()

            if inv.is_offline(server_id):
                result = await handle_server_version(inv, server_id)
            else:
                result = await handle_read_resource(inv, server_id, "/", False, False)
            return result[0].text

    return json.dumps({"error": f"Unknown resource: {uri}"})


def main():
    """Run the MCP server."""
    setup_logging()
    setup_audit_logging()

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream,
                write_stream,
                server.create_initialization_options()
            )

    try:
        asyncio.run(run())
    except KeyboardInterrupt:
        pass
    finally:
        # Cleanup
        if inventory:
            asyncio.run(inventory.close_all())


if __name__ == "__main__":
    main()

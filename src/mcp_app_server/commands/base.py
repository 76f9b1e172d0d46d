"""Command contexts and mode dispatch.

Commands are frozen dataclasses with no behavior of their own. What a
command does against a live server or a configuration file lives in applier
functions registered per command type:

    @online_applier(AddQueue)
    async def add_queue_online(command: AddQueue, ctx: OnlineCommandContext) -> None:
        ...

    @offline_applier(AddQueue, check=add_queue_offline_support)
    def add_queue_offline(command: AddQueue, ctx: OfflineCommandContext) -> None:
        ...

``apply_command`` picks the applier matching the context, times it and
writes an audit record for every attempt.
"""
import dataclasses
import logging
from typing import Any, Awaitable, Callable, Optional, Union

from ..management.client import ManagementClient
from ..management.operations import Operations
from ..management.version import ServerVersion
from ..offline.client import OfflineManagementClient
from ..utils.audit_log import ChangeTracker
from ..utils.logging_config import timed_section

logger = logging.getLogger(__name__)


class CommandFailedException(Exception):
    """A command could not be applied."""


class UnsupportedModeError(CommandFailedException):
    """The command cannot be applied in the context's mode."""


class OnlineCommandContext:
    """Context for commands applied to a live server."""
    mode = "online"

    def __init__(self, client: ManagementClient, user: str = "system"):
        self.client = client
        self.ops = Operations(client)
        self.user = user

    @property
    def server_id(self) -> str:
        return self.client.server_id

    async def version(self) -> ServerVersion:
        return await self.client.version()


class OfflineCommandContext:
    """Context for commands applied to a configuration file."""
    mode = "offline"

    def __init__(self, client: OfflineManagementClient, user: str = "system"):
        self.client = client
        self.user = user

    @property
    def server_id(self) -> str:
        return self.client.server_id

    async def version(self) -> ServerVersion:
        return self.client.version()


CommandContext = Union[OnlineCommandContext, OfflineCommandContext]
OnlineApplier = Callable[[Any, OnlineCommandContext], Awaitable[None]]
OfflineApplier = Callable[[Any, OfflineCommandContext], None]
OfflineCheck = Callable[[Any], Optional[str]]

# Command type -> applier
ONLINE_APPLIERS: dict[type, OnlineApplier] = {}
OFFLINE_APPLIERS: dict[type, tuple[OfflineApplier, Optional[OfflineCheck]]] = {}


def online_applier(command_type: type) -> Callable:
    """Register the live-server behavior of a command type."""
    def decorator(func: OnlineApplier) -> OnlineApplier:
        ONLINE_APPLIERS[command_type] = func
        return func

    return decorator


def offline_applier(command_type: type, check: Optional[OfflineCheck] = None) -> Callable:
    """Register the configuration-file behavior of a command type.

    Args:
        command_type: Command dataclass
        check: Returns a reason string when a particular command value
            cannot be applied offline
    """
    def decorator(func: OfflineApplier) -> OfflineApplier:
        OFFLINE_APPLIERS[command_type] = (func, check)
        return func

    return decorator


def offline_support(command: Any) -> Optional[str]:
    """None if the command can be applied offline, otherwise the reason."""
    registered = OFFLINE_APPLIERS.get(type(command))
    if registered is None:
        return f"{type(command).__name__} is not supported in offline mode"
    _, check = registered
    return check(command) if check else None


def command_parameters(command: Any) -> dict[str, Any]:
    """Command fields for the audit log."""
    if dataclasses.is_dataclass(command):
        return dataclasses.asdict(command)
    return {}


async def apply_command(command: Any, ctx: CommandContext) -> None:
    """Apply a command in the mode of ``ctx``.

    Raises:
        UnsupportedModeError: the command has no applier for this mode
        CommandFailedException: the server or document rejected the change
    """
    name = type(command).__name__
    tracker = ChangeTracker(ctx.server_id, ctx.user)
    parameters = command_parameters(command)

    try:
        async with timed_section(f"{ctx.mode}:{name}", ctx.server_id):
            if isinstance(ctx, OfflineCommandContext):
                reason = offline_support(command)
                if reason is not None:
                    raise UnsupportedModeError(reason)
                applier, _ = OFFLINE_APPLIERS[type(command)]
                applier(command, ctx)
            else:
                online = ONLINE_APPLIERS.get(type(command))
                if online is None:
                    raise UnsupportedModeError(f"{name} is not supported in online mode")
                await online(command, ctx)
    except Exception as e:
        logger.error(f"{command} failed on {ctx.server_id} ({ctx.mode}): {e}")
        tracker.log_change(name, ctx.mode, parameters, success=False, error=str(e))
        raise

    logger.info(f"{command} applied to {ctx.server_id} ({ctx.mode})")
    tracker.log_change(name, ctx.mode, parameters, success=True)

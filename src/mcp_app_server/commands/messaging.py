"""JMS queue commands for both messaging subsystem generations.

Servers with management version 4.0.0 and newer use ActiveMQ Artemis
(``/subsystem=messaging-activemq/server=NAME``); older ones use HornetQ
(``/subsystem=messaging/hornetq-server=NAME``).
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from ..management.address import Address
from ..management.batch import Batch
from ..management.client import ManagementClient
from ..management.operations import OperationException
from ..management.values import Values
from ..management.version import VERSION_4_0_0
from ..offline.transform import Subtree, TransformError, XmlTransform, XmlTransformBuilder
from .base import (
    CommandFailedException,
    OfflineCommandContext,
    OnlineCommandContext,
    offline_applier,
    online_applier,
)

logger = logging.getLogger(__name__)

DEFAULT_SERVER_NAME = "default"


async def messaging_address(client: ManagementClient, server_name: str) -> Address:
    """Address of the messaging server matching the server's generation."""
    version = await client.version()
    if version.greater_than_or_equal_to(VERSION_4_0_0):
        return Address.subsystem("messaging-activemq").and_("server", server_name)
    return Address.subsystem("messaging").and_("hornetq-server", server_name)


def entries_string(entries: Iterable[str]) -> str:
    """JNDI entries as the space-delimited ``entries`` XML attribute."""
    return " ".join(entries)


def messaging_transform(edit: str) -> XmlTransformBuilder:
    return (XmlTransform.of(edit)
            .subtree("messagingHornetq", Subtree.subsystem("messaging"))
            .subtree("messagingActivemq", Subtree.subsystem("messaging-activemq")))


def _non_default_server(command) -> Optional[str]:
    if command.server_name != DEFAULT_SERVER_NAME:
        return "Non-default messaging server name not yet implemented in offline mode"
    return None


# === AddQueue ===

@dataclass(frozen=True)
class AddQueue:
    """Creates a JMS queue."""
    name: str
    entries: tuple[str, ...]
    server_name: str = DEFAULT_SERVER_NAME
    durable: bool = False
    selector: Optional[str] = None
    replace_existing: bool = False

    def __post_init__(self):
        if not self.name:
            raise ValueError("Queue name must be specified")
        if not self.server_name:
            raise ValueError("Messaging server name must be specified")
        if not self.entries:
            raise ValueError("At least one JNDI entry needs to be specified for queue")
        for entry in self.entries:
            if not entry:
                raise ValueError("JNDI entries must not be empty")
            # Offline the entries are one space-delimited attribute
            if any(c.isspace() for c in entry):
                raise ValueError(f"JNDI entry must not contain whitespace: '{entry}'")

    def __str__(self) -> str:
        return f"AddQueue {self.name}"


class AddQueueBuilder:
    """Builder for AddQueue.

    Args:
        name: Name of the queue
        server_name: Messaging server (only the default server is supported
            in offline mode)
    """

    def __init__(self, name: str, server_name: str = DEFAULT_SERVER_NAME):
        if not name:
            raise ValueError("Queue name must be specified")
        if not server_name:
            raise ValueError("Messaging server name must be specified")
        self._name = name
        self._server_name = server_name
        self._durable = False
        self._entries: list[str] = []
        self._selector: Optional[str] = None
        self._replace_existing = False

    def durable(self, durable: bool = True) -> "AddQueueBuilder":
        self._durable = durable
        return self

    def jndi_entries(self, entries: Iterable[str]) -> "AddQueueBuilder":
        """JNDI names the queue is bound to."""
        self._entries = list(entries)
        return self

    def selector(self, selector: str) -> "AddQueueBuilder":
        self._selector = selector
        return self

    def replace_existing(self) -> "AddQueueBuilder":
        """Replace a queue of the same name instead of failing."""
        self._replace_existing = True
        return self

    def build(self) -> AddQueue:
        return AddQueue(
            name=self._name,
            entries=tuple(self._entries),
            server_name=self._server_name,
            durable=self._durable,
            selector=self._selector,
            replace_existing=self._replace_existing,
        )


@online_applier(AddQueue)
async def add_queue_online(command: AddQueue, ctx: OnlineCommandContext) -> None:
    address = (await messaging_address(ctx.client, command.server_name)).and_("jms-queue", command.name)

    if command.replace_existing:
        try:
            await ctx.ops.remove_if_exists(address)
        except OperationException as e:
            raise CommandFailedException(f"Failed to remove existing queue {command.name}") from e

    values = (Values.empty()
              .and_optional("durable", command.durable, default=False)
              .and_optional("selector", command.selector)
              .and_list(str, "entries", command.entries))

    batch = Batch().add(address, values)
    try:
        await ctx.ops.batch(batch)
    except OperationException as e:
        raise CommandFailedException(f"Failed to add queue {command.name}: {e.description}") from e


@offline_applier(AddQueue, check=_non_default_server)
def add_queue_offline(command: AddQueue, ctx: OfflineCommandContext) -> None:
    transform = (messaging_transform("add-queue")
                 .parameters(
                     name=command.name,
                     serverName=command.server_name,
                     durable=command.durable,
                     selector=command.selector,
                     entries=list(command.entries),
                     entriesString=entries_string(command.entries),
                     replaceExisting=command.replace_existing,
                 )
                 .build())
    try:
        ctx.client.apply(transform)
    except TransformError as e:
        raise CommandFailedException(f"Failed to add queue {command.name}: {e}") from e


# === RemoveQueue ===

@dataclass(frozen=True)
class RemoveQueue:
    """Removes a JMS queue; removing an absent queue is a no-op."""
    name: str
    server_name: str = DEFAULT_SERVER_NAME

    def __post_init__(self):
        if not self.name:
            raise ValueError("Queue name must be specified")
        if not self.server_name:
            raise ValueError("Messaging server name must be specified")

    def __str__(self) -> str:
        return f"RemoveQueue {self.name}"


@online_applier(RemoveQueue)
async def remove_queue_online(command: RemoveQueue, ctx: OnlineCommandContext) -> None:
    address = (await messaging_address(ctx.client, command.server_name)).and_("jms-queue", command.name)
    try:
        removed = await ctx.ops.remove_if_exists(address)
    except OperationException as e:
        raise CommandFailedException(f"Failed to remove queue {command.name}: {e.description}") from e
    if not removed:
        logger.info(f"Queue {command.name} does not exist, nothing removed")


@offline_applier(RemoveQueue, check=_non_default_server)
def remove_queue_offline(command: RemoveQueue, ctx: OfflineCommandContext) -> None:
    transform = (messaging_transform("remove-queue")
                 .parameters(name=command.name, serverName=command.server_name)
                 .build())
    try:
        ctx.client.apply(transform)
    except TransformError as e:
        raise CommandFailedException(f"Failed to remove queue {command.name}: {e}") from e

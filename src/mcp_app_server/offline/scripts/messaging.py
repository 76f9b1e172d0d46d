"""Queue edits for both messaging subsystem generations.

HornetQ (subsystem ``messaging``)::

    <hornetq-server>
        <jms-destinations>
            <jms-queue name="Q1">
                <entry name="java:/jms/Q1"/>
                <selector string="color='red'"/>
                <durable>true</durable>
            </jms-queue>
        </jms-destinations>
    </hornetq-server>

ActiveMQ Artemis (subsystem ``messaging-activemq``)::

    <server name="default">
        <jms-queue name="Q1" entries="java:/jms/Q1" selector="color='red'" durable="true"/>
    </server>
"""
import logging
from typing import Any, Optional

from lxml import etree

from ..transform import (
    TransformError,
    children_named,
    edit_script,
    insert_element,
    qualified,
    remove_element,
)

logger = logging.getLogger(__name__)

HORNETQ = "messagingHornetq"
ACTIVEMQ = "messagingActivemq"

ADD_QUEUE_PARAMS = ("name", "serverName", "durable", "selector", "replaceExisting")

# Siblings a new jms-queue is placed in front of, when no other queue exists
HORNETQ_QUEUE_BEFORE = ("jms-topic",)
ACTIVEMQ_QUEUE_BEFORE = (
    "jms-topic",
    "legacy-connection-factory",
    "connection-factory",
    "pooled-connection-factory",
)


def _hornetq_servers(subsystem: etree._Element, server_name: str) -> list[etree._Element]:
    # The default server is usually declared without a name
    return [
        server for server in children_named(subsystem, "hornetq-server")
        if server.get("name", "default") == server_name
    ]


def _activemq_servers(subsystem: etree._Element, server_name: str) -> list[etree._Element]:
    return [
        server for server in children_named(subsystem, "server")
        if server.get("name") == server_name
    ]


def _find_queue(parent: Optional[etree._Element], name: str) -> Optional[etree._Element]:
    if parent is None:
        return None
    for queue in children_named(parent, "jms-queue"):
        if queue.get("name") == name:
            return queue
    return None


def _take_existing(parent: etree._Element, name: str, replace: bool) -> None:
    existing = _find_queue(parent, name)
    if existing is None:
        return
    if not replace:
        raise TransformError(f"Queue {name} already exists")
    logger.debug(f"Replacing existing queue {name}")
    remove_element(existing)


@edit_script("add-queue", HORNETQ, params=ADD_QUEUE_PARAMS + ("entries",))
def add_queue_hornetq(subsystem: etree._Element, params: dict[str, Any]) -> bool:
    name = params["name"]
    servers = _hornetq_servers(subsystem, params["serverName"])
    for server in servers:
        destinations = server.find(qualified(server, "jms-destinations"))
        if destinations is None:
            destinations = insert_element(server, "jms-destinations")
        _take_existing(destinations, name, params["replaceExisting"])

        queue = insert_element(
            destinations, "jms-queue", {"name": name},
            after=("jms-queue",), before=HORNETQ_QUEUE_BEFORE,
        )
        for entry in params["entries"] or ():
            insert_element(queue, "entry", {"name": entry})
        if params["selector"] is not None:
            insert_element(queue, "selector", {"string": params["selector"]})
        if params["durable"]:
            durable = insert_element(queue, "durable")
            durable.text = "true"
    return bool(servers)


@edit_script("add-queue", ACTIVEMQ, params=ADD_QUEUE_PARAMS + ("entriesString",))
def add_queue_activemq(subsystem: etree._Element, params: dict[str, Any]) -> bool:
    name = params["name"]
    servers = _activemq_servers(subsystem, params["serverName"])
    if not servers:
        logger.debug(f"No messaging server '{params['serverName']}' in subsystem")
    for server in servers:
        _take_existing(server, name, params["replaceExisting"])

        attrib = {"name": name, "entries": params["entriesString"]}
        if params["selector"] is not None:
            attrib["selector"] = params["selector"]
        if params["durable"]:
            attrib["durable"] = "true"
        insert_element(
            server, "jms-queue", attrib,
            after=("jms-queue",), before=ACTIVEMQ_QUEUE_BEFORE,
        )
    return bool(servers)


@edit_script("remove-queue", HORNETQ, params=("name", "serverName"))
def remove_queue_hornetq(subsystem: etree._Element, params: dict[str, Any]) -> bool:
    removed = False
    for server in _hornetq_servers(subsystem, params["serverName"]):
        queue = _find_queue(server.find(qualified(server, "jms-destinations")), params["name"])
        if queue is not None:
            remove_element(queue)
            removed = True
    return removed


@edit_script("remove-queue", ACTIVEMQ, params=("name", "serverName"))
def remove_queue_activemq(subsystem: etree._Element, params: dict[str, Any]) -> bool:
    removed = False
    for server in _activemq_servers(subsystem, params["serverName"]):
        queue = _find_queue(server, params["name"])
        if queue is not None:
            remove_element(queue)
            removed = True
    return removed

"""Shared fixtures: in-memory servers and configuration documents."""
import pytest

from mcp_app_server.management import (
    Address,
    InMemoryManagementClient,
    VERSION_2_0_0,
    VERSION_4_0_0,
)
from mcp_app_server.offline import OfflineManagementClient
from mcp_app_server.commands import OfflineCommandContext, OnlineCommandContext

HORNETQ_XML = """<?xml version="1.0" encoding="UTF-8"?>
<server xmlns="urn:jboss:domain:1.7">
    <profile>
        <subsystem xmlns="urn:jboss:domain:logging:1.5">
            <root-logger>
                <level name="INFO"/>
            </root-logger>
        </subsystem>
        <subsystem xmlns="urn:jboss:domain:messaging:1.4">
            <hornetq-server>
                <persistence-enabled>true</persistence-enabled>
                <jms-destinations>
                    <jms-queue name="ExpiryQueue">
                        <entry name="java:/jms/queue/ExpiryQueue"/>
                    </jms-queue>
                    <jms-topic name="testTopic">
                        <entry name="topic/test"/>
                    </jms-topic>
                </jms-destinations>
            </hornetq-server>
        </subsystem>
    </profile>
</server>
"""

ACTIVEMQ_XML = """<?xml version="1.0" encoding="UTF-8"?>
<server xmlns="urn:jboss:domain:4.0">
    <profile>
        <subsystem xmlns="urn:jboss:domain:messaging-activemq:1.0">
            <server name="default">
                <security-setting name="#"/>
                <jms-queue name="ExpiryQueue" entries="java:/jms/queue/ExpiryQueue"/>
                <connection-factory name="InVmConnectionFactory" entries="java:/ConnectionFactory" connectors="in-vm"/>
            </server>
        </subsystem>
    </profile>
</server>
"""

NO_MESSAGING_XML = """<?xml version="1.0" encoding="UTF-8"?>
<server xmlns="urn:jboss:domain:4.0">
    <profile>
        <subsystem xmlns="urn:jboss:domain:logging:3.0"/>
    </profile>
</server>
"""

DOMAIN_XML = """<?xml version="1.0" encoding="UTF-8"?>
<domain xmlns="urn:jboss:domain:4.0">
    <profiles>
        <profile name="legacy">
            <subsystem xmlns="urn:jboss:domain:messaging:1.4">
                <hornetq-server>
                    <jms-destinations>
                        <jms-queue name="ExpiryQueue">
                            <entry name="java:/jms/queue/ExpiryQueue"/>
                        </jms-queue>
                    </jms-destinations>
                </hornetq-server>
            </subsystem>
        </profile>
        <profile name="full">
            <subsystem xmlns="urn:jboss:domain:messaging-activemq:1.0">
                <server name="default">
                    <jms-queue name="ExpiryQueue" entries="java:/jms/queue/ExpiryQueue"/>
                </server>
            </subsystem>
        </profile>
        <profile name="full-ha">
            <subsystem xmlns="urn:jboss:domain:messaging-activemq:1.0">
                <server name="default">
                    <jms-queue name="ExpiryQueue" entries="java:/jms/queue/ExpiryQueue"/>
                    <jms-queue name="DLQ" entries="java:/jms/queue/DLQ"/>
                </server>
            </subsystem>
        </profile>
    </profiles>
</domain>
"""

ACTIVEMQ_SERVER = Address.subsystem("messaging-activemq").and_("server", "default")
HORNETQ_SERVER = Address.subsystem("messaging").and_("hornetq-server", "default")
CACHE_CONTAINER = Address.subsystem("infinispan").and_("cache-container", "default")


@pytest.fixture
def activemq_client():
    """WildFly 10 style server with the default messaging server."""
    return InMemoryManagementClient(
        "wildfly10",
        version=VERSION_4_0_0,
        resources={ACTIVEMQ_SERVER: {}, CACHE_CONTAINER: {}},
    )


@pytest.fixture
def hornetq_client():
    """WildFly 8 style server with the default HornetQ server."""
    return InMemoryManagementClient(
        "wildfly8",
        version=VERSION_2_0_0,
        resources={HORNETQ_SERVER: {}, CACHE_CONTAINER: {}},
    )


@pytest.fixture
def online_ctx(activemq_client):
    return OnlineCommandContext(activemq_client)


@pytest.fixture
def write_config(tmp_path):
    """Write a configuration document and return its path."""
    def _write(content: str, name: str = "standalone.xml"):
        path = tmp_path / name
        path.write_text(content)
        return path

    return _write


@pytest.fixture
def offline_ctx_for(write_config):
    """Offline command context over a given document."""
    def _ctx(content: str):
        path = write_config(content)
        return OfflineCommandContext(OfflineManagementClient("offline", path))

    return _ctx

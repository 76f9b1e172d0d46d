"""Tests for offline transforms and the configuration file client."""
import pytest
from lxml import etree

from mcp_app_server.management import VERSION_1_7_0, ServerVersion
from mcp_app_server.offline import (
    EDIT_SCRIPTS,
    OfflineManagementClient,
    Subtree,
    TransformError,
    XmlTransform,
    edit_script,
)
from mcp_app_server.offline.transform import insert_element, subsystem_name

from conftest import ACTIVEMQ_XML, HORNETQ_XML, NO_MESSAGING_XML


@pytest.fixture
def marker_script():
    """Register a throwaway edit script that tags its subtree."""
    @edit_script("mark", "gen1", params=("label",))
    def mark(subtree, params):
        subtree.set("marked", params["label"])
        return True

    yield "mark"
    EDIT_SCRIPTS.pop("mark", None)


def mark_transform(**params):
    return (XmlTransform.of("mark")
            .subtree("gen1", Subtree.subsystem("logging"))
            .parameters(**params)
            .build())


class TestSubtree:
    """Tests for subtree selection."""

    def test_subsystem_name(self):
        root = etree.fromstring(HORNETQ_XML.encode())
        names = [subsystem_name(el) for el in root.iter("{*}subsystem")]
        assert names == ["logging", "messaging"]

    def test_select_subsystem(self):
        root = etree.fromstring(ACTIVEMQ_XML.encode())
        assert len(Subtree.subsystem("messaging-activemq").select(root)) == 1
        assert Subtree.subsystem("messaging").select(root) == []

    def test_select_profiles(self):
        root = etree.fromstring(NO_MESSAGING_XML.encode())
        assert len(Subtree.profile().select(root)) == 1
        assert Subtree.root().select(root) == [root]


class TestXmlTransform:
    """Tests for schema-generation dispatch."""

    def test_builder_requires_subtree(self):
        with pytest.raises(ValueError):
            XmlTransform.of("mark").build()

    def test_duplicate_generation_rejected(self):
        builder = XmlTransform.of("mark").subtree("gen1", Subtree.root())
        with pytest.raises(ValueError):
            builder.subtree("gen1", Subtree.root())

    def test_applies_registered_script(self, marker_script):
        root = etree.fromstring(HORNETQ_XML.encode())
        assert mark_transform(label="x").apply(root) == 1
        logging_subsystem = Subtree.subsystem("logging").select(root)[0]
        assert logging_subsystem.get("marked") == "x"

    def test_missing_subtree_is_noop(self, marker_script):
        root = etree.fromstring(ACTIVEMQ_XML.encode())
        assert mark_transform(label="x").apply(root) == 0

    def test_unknown_edit(self):
        transform = XmlTransform.of("no-such-edit").subtree("gen1", Subtree.root()).build()
        with pytest.raises(TransformError, match="No edit script"):
            transform.apply(etree.fromstring(b"<server/>"))

    def test_missing_generation_script(self, marker_script):
        transform = (XmlTransform.of("mark")
                     .subtree("gen1", Subtree.subsystem("logging"))
                     .subtree("gen2", Subtree.subsystem("logging"))
                     .parameter("label", "x")
                     .build())
        root = etree.fromstring(HORNETQ_XML.encode())
        with pytest.raises(TransformError, match="gen2"):
            transform.apply(root)
        # Nothing edited before the failure was detected
        assert Subtree.subsystem("logging").select(root)[0].get("marked") is None

    def test_missing_parameter(self, marker_script):
        with pytest.raises(TransformError, match="label"):
            mark_transform().apply(etree.fromstring(HORNETQ_XML.encode()))

    def test_duplicate_registration_rejected(self, marker_script):
        with pytest.raises(ValueError):
            edit_script("mark", "gen1")(lambda subtree, params: True)

    def test_messaging_scripts_registered(self):
        assert set(EDIT_SCRIPTS["add-queue"]) == {"messagingHornetq", "messagingActivemq"}
        assert set(EDIT_SCRIPTS["remove-queue"]) == {"messagingHornetq", "messagingActivemq"}


class TestInsertElement:
    """Tests for namespace and indentation aware insertion."""

    def test_inherits_namespace(self):
        root = etree.fromstring(b'<a xmlns="urn:x">\n    <b/>\n</a>')
        child = insert_element(root, "c", {"k": "v"})
        assert etree.QName(child).namespace == "urn:x"
        assert etree.tostring(root) == b'<a xmlns="urn:x">\n    <b/>\n    <c k="v"/>\n</a>'

    def test_into_empty_element(self):
        root = etree.fromstring(b"<a>\n    <b/>\n</a>")
        insert_element(root[0], "c")
        assert etree.tostring(root) == b"<a>\n    <b>\n        <c/>\n    </b>\n</a>"

    def test_before_sibling(self):
        root = etree.fromstring(b"<a>\n    <x/>\n    <z/>\n</a>")
        insert_element(root, "y", before=("z",))
        assert [c.tag for c in root] == ["x", "y", "z"]
        assert etree.tostring(root) == b"<a>\n    <x/>\n    <y/>\n    <z/>\n</a>"


class TestOfflineManagementClient:
    """Tests for document loading, writing and backups."""

    def test_version_from_root_namespace(self, write_config):
        assert OfflineManagementClient("s", write_config(HORNETQ_XML)).version() == VERSION_1_7_0
        assert OfflineManagementClient("s", write_config(ACTIVEMQ_XML)).version() == ServerVersion(4, 0)

    def test_missing_file(self, tmp_path):
        client = OfflineManagementClient("s", tmp_path / "missing.xml")
        with pytest.raises(TransformError, match="does not exist"):
            client.apply(mark_transform(label="x"))

    def test_unchanged_document_not_written(self, write_config, marker_script):
        path = write_config(ACTIVEMQ_XML)
        before = path.read_bytes()
        assert OfflineManagementClient("s", path).apply(mark_transform(label="x")) is False
        assert path.read_bytes() == before

    def test_changed_document_written(self, write_config, marker_script):
        path = write_config(HORNETQ_XML)
        assert OfflineManagementClient("s", path).apply(mark_transform(label="x")) is True
        assert 'marked="x"' in path.read_text()
        # Untouched parts survive
        assert "<persistence-enabled>true</persistence-enabled>" in path.read_text()

    def test_backup_and_restore(self, write_config):
        path = write_config(ACTIVEMQ_XML)
        client = OfflineManagementClient("s", path)

        assert client.backup("before") == "before"
        path.write_text(NO_MESSAGING_XML)
        client.restore("before")

        assert path.read_text() == ACTIVEMQ_XML
        assert client.backup_dir == path.parent / "servercraft-backups"

    def test_list_backups(self, write_config, tmp_path):
        client = OfflineManagementClient("s", write_config(ACTIVEMQ_XML), tmp_path / "backups")
        assert client.list_backups() == []
        client.backup("20260101-000000-000000")
        client.backup("20260102-000000-000000")
        assert client.list_backups() == ["20260102-000000-000000", "20260101-000000-000000"]

    def test_default_backup_name(self, write_config):
        client = OfflineManagementClient("s", write_config(ACTIVEMQ_XML))
        name = client.backup()
        assert client.list_backups() == [name]

    def test_restore_unknown(self, write_config):
        client = OfflineManagementClient("s", write_config(ACTIVEMQ_XML))
        with pytest.raises(ValueError, match="not found"):
            client.restore("nope")

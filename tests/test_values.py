"""Tests for operation attribute values."""
from enum import Enum

import pytest

from mcp_app_server.management import Values


class Color(Enum):
    RED = "red"


class TestValues:
    """Tests for Values construction and encoding."""

    def test_optional_none_is_omitted(self):
        values = Values.empty().and_optional("jndi-name", None).and_optional("module", "org.foo")
        assert "jndi-name" not in values
        assert values.to_dict() == {"module": "org.foo"}

    def test_optional_default_is_omitted(self):
        """A value equal to the documented default is left out."""
        values = Values.empty().and_optional("durable", False, default=False)
        assert values.is_empty
        values = Values.empty().and_optional("durable", True, default=False)
        assert values.to_dict() == {"durable": True}

    def test_optional_without_default_keeps_false(self):
        """False is a real value when no default is given."""
        values = Values.empty().and_optional("statistics-enabled", False)
        assert values.get("statistics-enabled") is False

    def test_required_rejects_none(self):
        with pytest.raises(ValueError):
            Values.empty().and_("name", None)

    def test_empty_name_rejected(self):
        with pytest.raises(ValueError):
            Values.of("", "x")

    def test_list_attribute(self):
        values = Values.empty().and_list(str, "entries", ["java:/jms/Q1", "java:/jms/Q2"])
        assert values.get("entries") == ("java:/jms/Q1", "java:/jms/Q2")
        assert values.to_dict() == {"entries": ["java:/jms/Q1", "java:/jms/Q2"]}

    def test_empty_list_is_omitted(self):
        assert Values.empty().and_list(str, "entries", []).is_empty
        assert Values.empty().and_list(str, "entries", None).is_empty

    def test_list_rejects_none_element(self):
        with pytest.raises(ValueError):
            Values.empty().and_list(str, "entries", ["a", None])

    def test_enum_encoded_as_value(self):
        assert Values.of("color", Color.RED).get("color") == "red"

    def test_unsupported_type_rejected(self):
        with pytest.raises(ValueError):
            Values.of("weird", object())

    def test_redefinition_keeps_position(self):
        """Last write wins; the attribute stays where it was first added."""
        values = Values.of("a", 1).and_("b", 2).and_("a", 3)
        assert values.names() == ["a", "b"]
        assert values.get("a") == 3

    def test_merge_other_wins(self):
        merged = Values.of("a", 1).and_("b", 2).merge(Values.of("b", 5).and_("c", 6))
        assert merged.to_dict() == {"a": 1, "b": 5, "c": 6}
        assert len(merged) == 3

    def test_immutable(self):
        base = Values.of("a", 1)
        base.and_("b", 2)
        assert base.names() == ["a"]

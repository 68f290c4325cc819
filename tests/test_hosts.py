"""Tests for ssh_remote_mcp.hosts module."""

import pytest


class TestHostRecord:
    """Tests for HostRecord."""

    def test_empty_alias_rejected(self):
        """Test a record cannot be built without an alias."""
        from ssh_remote_mcp.hosts import HostRecord
        with pytest.raises(ValueError):
            HostRecord(alias="")

    def test_effective_defaults(self):
        """Test presentation defaults are computed, not stored."""
        from ssh_remote_mcp.hosts import HostRecord
        record = HostRecord(alias="box")
        assert record.hostname is None
        assert record.port is None
        assert record.effective_hostname == "box"
        assert record.effective_port == 22

    def test_extra_properties_read_only(self):
        """Test the property bag cannot be mutated after construction."""
        from ssh_remote_mcp.hosts import HostRecord
        source = {"forwardagent": "yes"}
        record = HostRecord(alias="box", extra_properties=source)
        source["compression"] = "yes"

        assert "compression" not in record.extra_properties
        with pytest.raises(TypeError):
            record.extra_properties["x"] = "y"

    def test_to_dict_omits_unset(self):
        """Test to_dict includes only fields that were set."""
        from ssh_remote_mcp.hosts import HostRecord
        record = HostRecord(alias="box", user="root", proxy_jump="jump")
        assert record.to_dict() == {
            "alias": "box",
            "user": "root",
            "proxyJump": "jump",
            "extraProperties": {},
        }


class TestHostRegistry:
    """Tests for HostRegistry."""

    def test_lookup_found(self, registry):
        """Test lookup returns the stored record."""
        record = registry.lookup("web")
        assert record.hostname == "web.example.com"
        assert record.port == 2222

    def test_lookup_missing(self, registry):
        """Test lookup of an unknown alias raises HostNotFoundError."""
        from ssh_remote_mcp.errors import HostNotFoundError
        with pytest.raises(HostNotFoundError) as exc_info:
            registry.lookup("nope")
        assert "not found in SSH config" in str(exc_info.value)

    def test_lookup_no_hostname_fallback(self, registry):
        """Test lookup does not match on HostName."""
        assert registry.get("web.example.com") is None

    def test_list_applies_defaults(self, registry):
        """Test list reports alias and port 22 for unset fields."""
        rows = {row.alias: row for row in registry.list()}

        assert rows["web"].hostname == "web.example.com"
        assert rows["web"].port == 2222
        assert rows["web"].user == "deploy"
        assert rows["bare"].hostname == "bare"
        assert rows["bare"].port == 22
        assert rows["bare"].user is None
        # Stored record is untouched
        assert registry.lookup("bare").port is None

    def test_list_declaration_order(self, registry):
        """Test hosts are listed in the order they were declared."""
        assert [row.alias for row in registry.list()] == ["web", "bare"]

    def test_describe_includes_extras(self, registry):
        """Test describe returns the full record."""
        info = registry.describe("web")
        assert info["alias"] == "web"
        assert info["identityFile"].endswith("/.ssh/web_ed25519")
        assert info["extraProperties"] == {"forwardagent": "yes"}

    def test_registry_is_immutable(self):
        """Test the registry does not reflect later changes to its source mapping."""
        from ssh_remote_mcp.hosts import HostRecord, HostRegistry
        source = {"a": HostRecord(alias="a")}
        registry = HostRegistry(source)
        source["b"] = HostRecord(alias="b")

        assert "b" not in registry
        assert len(registry) == 1
        assert not hasattr(registry, "add")

    def test_empty_registry(self):
        """Test an empty registry lists nothing."""
        from ssh_remote_mcp.hosts import HostRegistry
        registry = HostRegistry()
        assert registry.list() == []
        assert len(registry) == 0

"""
Tests for the section catalog and its YAML loader.
"""

import pytest
import yaml

from clusterhealth.modules.report import (
    SectionConfigError,
    SectionSpec,
    default_sections,
    load_sections,
    parse_sections,
    sections_to_dict,
)


@pytest.fixture
def catalog_file(tmp_path):
    def write(content: str):
        path = tmp_path / "sections.yaml"
        path.write_text(content)
        return path
    return write


class TestDefaultSections:
    """Test the built-in OpenShift catalog."""

    def test_titles(self):
        titles = {spec.name: spec.title for spec in default_sections()}

        assert titles["cluster-status"] == "Cluster Status"
        assert titles["upgrade-history"] == "Cluster Version History"
        assert titles["cluster-events"] == "Critical Events"

    def test_commands_never_use_a_shell(self):
        for spec in default_sections():
            assert spec.command.program == "oc"
            assert "|" not in spec.command.args
            assert "sh" not in spec.command.args

    def test_upgrade_history_uses_jsonpath(self):
        spec = {s.name: s for s in default_sections()}["upgrade-history"]

        assert spec.command.args[:5] == ("oc", "get", "clusterversion", "version", "-o")
        assert spec.command.args[5].startswith("jsonpath={range .status.history[*]}")
        assert '{"\\n"}' in spec.command.args[5]

    def test_events_filter(self):
        spec = {s.name: s for s in default_sections()}["cluster-events"]

        assert spec.include_pattern == "Warning|Critical"
        assert spec.empty_message == "No warning or critical events found."

    def test_cli_binary_is_configurable(self):
        assert {spec.command.program for spec in default_sections("/usr/local/bin/kubectl")} == {
            "/usr/local/bin/kubectl"
        }


class TestSectionSpec:
    """Test section spec validation."""

    def test_list_command_is_coerced(self):
        spec = SectionSpec(name="nodes", title="Nodes", command=["oc", "get", "nodes"])

        assert spec.command.args == ("oc", "get", "nodes")

    def test_string_command_rejected(self):
        with pytest.raises(ValueError):
            SectionSpec(name="nodes", title="Nodes", command="oc get nodes")

    def test_invalid_name_rejected(self):
        with pytest.raises(ValueError):
            SectionSpec(name="Node Status", title="Nodes", command=["oc", "get", "nodes"])

    def test_invalid_pattern_rejected(self):
        with pytest.raises(ValueError):
            SectionSpec(name="events", title="Events", command=["oc", "get", "events"], include_pattern="(")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValueError):
            SectionSpec(name="nodes", title="Nodes", command=["oc"], timeout_seconds=0)


class TestLoadSections:
    """Test YAML catalog loading."""

    def test_load_valid_catalog(self, catalog_file):
        path = catalog_file(
            """
sections:
  - name: nodes
    title: Node Status
    command: [kubectl, get, nodes]
    timeout_seconds: 20
  - name: events
    title: Events
    command: [kubectl, get, events, -A]
    include_pattern: Warning
    empty_message: All quiet
"""
        )

        sections = load_sections(path)

        assert [s.name for s in sections] == ["nodes", "events"]
        assert sections[0].timeout_seconds == 20
        assert sections[1].command.args == ("kubectl", "get", "events", "-A")
        assert sections[1].empty_message == "All quiet"

    def test_bare_list_accepted(self):
        sections = parse_sections([{"name": "nodes", "title": "Nodes", "command": ["oc", "get", "nodes"]}])

        assert sections[0].name == "nodes"

    def test_missing_file(self, tmp_path):
        with pytest.raises(SectionConfigError, match="not found"):
            load_sections(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, catalog_file):
        with pytest.raises(SectionConfigError, match="not valid YAML"):
            load_sections(catalog_file("sections: [unclosed"))

    @pytest.mark.parametrize("content", ["", "sections: []", "sections: nodes", "other: 1"])
    def test_missing_sections_list(self, catalog_file, content):
        with pytest.raises(SectionConfigError):
            load_sections(catalog_file(content))

    def test_entry_must_be_mapping(self):
        with pytest.raises(SectionConfigError, match="must be a mapping"):
            parse_sections({"sections": ["nodes"]})

    def test_invalid_entry(self):
        with pytest.raises(SectionConfigError, match="Invalid section #0"):
            parse_sections({"sections": [{"name": "nodes", "title": "Nodes", "command": []}]})

    def test_duplicate_names(self):
        entry = {"name": "nodes", "title": "Nodes", "command": ["oc", "get", "nodes"]}

        with pytest.raises(SectionConfigError, match="Duplicate"):
            parse_sections({"sections": [entry, entry]})

    def test_section_config_error_is_value_error(self):
        assert issubclass(SectionConfigError, ValueError)

    def test_default_catalog_survives_yaml_dump(self, catalog_file):
        dumped = yaml.safe_dump(sections_to_dict(default_sections()), sort_keys=False)

        assert load_sections(catalog_file(dumped)) == default_sections()

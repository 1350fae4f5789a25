"""Unit tests for variable group export."""

import json

from azure_vars.core.export import export_filename, export_group
from azure_vars.core.models import VariableGroup


class TestExport:
    def test_filename_replaces_spaces(self):
        group = VariableGroup(id="2", project_id="p-1", name="Shared Settings")

        assert export_filename(group) == "Shared_Settings_variables.json"

    def test_export_writes_json(self, tmp_path, group1):
        path = export_group(group1, tmp_path)

        assert path == tmp_path / "Group1_variables.json"
        data = json.loads(path.read_text())
        assert data["id"] == "1"
        assert data["name"] == "Group1"
        assert data["variables"][0] == {"name": "key", "value": "A", "is_secret": False}

    def test_secrets_never_written(self, tmp_path, group1):
        path = export_group(group1, tmp_path)

        text = path.read_text()
        assert "secret1" not in text
        password = json.loads(text)["variables"][2]
        assert password == {"name": "password", "value": None, "is_secret": True}

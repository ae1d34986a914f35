"""Tests for configuration defaults."""

import json
import os

from vault_onboarding import config


class TestDefaultDataFile:
    """Test resolution of data files shipped with the package."""

    def test_packaged_pattern_file_exists(self):
        """Test the pattern file is installed alongside the package."""
        path = os.path.join(config.PACKAGE_DATA_DIR, "secret-patterns", "secret-patterns.json")
        with open(path) as f:
            data = json.load(f)
        assert "variable_name_patterns" in data

    def test_packaged_seed_file_exists(self):
        """Test the template seed file is installed alongside the package."""
        path = os.path.join(config.PACKAGE_DATA_DIR, "vault-data.template", "seed-secrets.json")
        assert os.path.isfile(path)

    def test_falls_back_to_packaged_copy(self, tmp_path, monkeypatch):
        """Test a data dir without the file resolves to the packaged copy."""
        monkeypatch.setattr(config, "DATA_DIR", str(tmp_path))

        path = config.default_data_file("secret-patterns", "secret-patterns.json")

        assert path == os.path.join(config.PACKAGE_DATA_DIR, "secret-patterns", "secret-patterns.json")

    def test_project_copy_wins(self, tmp_path, monkeypatch):
        """Test a project-local data file overrides the packaged one."""
        local = tmp_path / "secret-patterns" / "secret-patterns.json"
        local.parent.mkdir()
        local.write_text("{}")
        monkeypatch.setattr(config, "DATA_DIR", str(tmp_path))

        assert config.default_data_file("secret-patterns", "secret-patterns.json") == str(local)

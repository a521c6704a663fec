"""
Tests for the settings loader — defaults, YAML file, env overrides.
"""

import textwrap
from pathlib import Path

import pytest

from localdev.core.config.loader import default_settings_path, load_settings
from localdev.core.errors import SettingsError


class TestLoadSettings:
    def test_defaults_without_file(self, tmp_path: Path):
        settings = load_settings(environ={"LOCALDEV_HOME": str(tmp_path)})
        assert settings.home == tmp_path
        assert settings.default_bucket == "nmdarchive"
        assert settings.aws_region == "us-west-2"
        assert settings.ready_retries == 300
        assert settings.root == tmp_path / ".localdev"

    def test_default_path(self, tmp_path: Path):
        assert default_settings_path(tmp_path) == tmp_path / ".localdev" / "localdev.yml"

    def test_reads_home_file(self, tmp_path: Path):
        path = default_settings_path(tmp_path)
        path.parent.mkdir(parents=True)
        path.write_text("default_bucket: other-bucket\nready_retries: 10\n")
        settings = load_settings(environ={"LOCALDEV_HOME": str(tmp_path)})
        assert settings.default_bucket == "other-bucket"
        assert settings.ready_retries == 10

    def test_explicit_file(self, tmp_path: Path):
        path = tmp_path / "custom.yml"
        path.write_text(textwrap.dedent(f"""\
            home: {tmp_path}
            aws_region: eu-west-1
            image_prefix: registry.local/php-
        """))
        settings = load_settings(path, environ={})
        assert settings.aws_region == "eu-west-1"
        assert settings.image_prefix == "registry.local/php-"

    def test_env_overrides_file(self, tmp_path: Path):
        path = tmp_path / "custom.yml"
        path.write_text("default_bucket: from-file\n")
        settings = load_settings(path, environ={
            "LOCALDEV_DEFAULT_BUCKET": "from-env",
            "LOCALDEV_COMMAND_TIMEOUT": "60",
            "LOCALDEV_AWS_REGION": "",
        })
        assert settings.default_bucket == "from-env"
        assert settings.command_timeout == 60
        assert settings.aws_region == "us-west-2"

    def test_empty_file(self, tmp_path: Path):
        path = tmp_path / "empty.yml"
        path.write_text("")
        assert load_settings(path, environ={}).default_bucket == "nmdarchive"

    def test_explicit_missing(self, tmp_path: Path):
        with pytest.raises(SettingsError, match="not found"):
            load_settings(tmp_path / "nope.yml", environ={})

    def test_invalid_yaml(self, tmp_path: Path):
        path = tmp_path / "bad.yml"
        path.write_text("default_bucket: [unclosed\n")
        with pytest.raises(SettingsError, match="Invalid YAML"):
            load_settings(path, environ={})

    def test_not_a_mapping(self, tmp_path: Path):
        path = tmp_path / "list.yml"
        path.write_text("- a\n- b\n")
        with pytest.raises(SettingsError, match="mapping"):
            load_settings(path, environ={})

    def test_invalid_value(self, tmp_path: Path):
        with pytest.raises(SettingsError):
            load_settings(environ={"LOCALDEV_HOME": str(tmp_path), "LOCALDEV_READY_RETRIES": "0"})

"""test suite for settings loading."""
import pytest
from pathlib import Path
from pydantic import ValidationError

from unpub.config import Settings, load_settings, set_setting


class TestLoadSettings:
    def test_defaults(self, tmp_path):
        settings = load_settings(tmp_path / "missing", environ={})
        assert settings == Settings()
        assert settings.proxy_url == "https://pub.dartlang.org"
        assert settings.timeout == 30.0

    def test_config_file(self, tmp_path):
        config_file = tmp_path / "config"
        config_file.write_text(
            "# local registry\n"
            "UNPUB_PROXY_URL=https://mirror.example\n"
            f"UNPUB_DATA_DIR={tmp_path / 'data'}\n"
            "UNPUB_TIMEOUT=5\n"
            "UNRELATED=1\n"
        )
        settings = load_settings(config_file, environ={})

        assert settings.proxy_url == "https://mirror.example"
        assert settings.data_dir == tmp_path / "data"
        assert settings.metadata_file == tmp_path / "data" / "metadata.json"
        assert settings.blob_dir == tmp_path / "data" / "packages"
        assert settings.timeout == 5.0

    def test_environment_overrides_file(self, tmp_path):
        config_file = tmp_path / "config"
        config_file.write_text("UNPUB_PROXY_URL=https://mirror.example\n")
        settings = load_settings(config_file, environ={
            "UNPUB_PROXY_URL": "https://env.example",
            "UNPUB_BLOB_BASE_URL": "https://cdn.example",
        })
        assert settings.proxy_url == "https://env.example"
        assert settings.blob_base_url == "https://cdn.example"

    def test_invalid_value(self, tmp_path):
        with pytest.raises(ValidationError):
            load_settings(tmp_path / "missing", environ={"UNPUB_TIMEOUT": "soon"})
        with pytest.raises(ValidationError):
            load_settings(tmp_path / "missing", environ={"UNPUB_MAX_ARCHIVE_SIZE": "0"})


class TestSetSetting:
    def test_set_and_preserve(self, tmp_path):
        config_file = tmp_path / "nested" / "config"
        set_setting("proxy_url", "https://one.example", config_file)
        set_setting("UNPUB_TIMEOUT", "10", config_file)
        set_setting("proxy_url", "https://two.example", config_file)

        assert config_file.read_text() == "UNPUB_PROXY_URL=https://two.example\nUNPUB_TIMEOUT=10\n"
        settings = load_settings(config_file, environ={})
        assert settings.proxy_url == "https://two.example"
        assert settings.timeout == 10.0

    def test_unknown_key(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown setting"):
            set_setting("colour", "blue", tmp_path / "config")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

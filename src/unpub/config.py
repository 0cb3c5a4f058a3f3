import os
from pathlib import Path
from typing import Dict, Optional

from pydantic import BaseModel, Field

CONFIG_DIR = Path.home() / ".unpub"
CONFIG_FILE = CONFIG_DIR / "config"

ENV_PREFIX = "UNPUB_"

# config file key -> Settings field
KEYS = {
    "UNPUB_PROXY_URL": "proxy_url",
    "UNPUB_DATA_DIR": "data_dir",
    "UNPUB_BLOB_BASE_URL": "blob_base_url",
    "UNPUB_TOKENINFO_URL": "tokeninfo_url",
    "UNPUB_TIMEOUT": "timeout",
    "UNPUB_MAX_ARCHIVE_SIZE": "max_archive_size",
}


class Settings(BaseModel):
    """runtime settings for the registry core."""
    proxy_url: str = "https://pub.dartlang.org"
    data_dir: Path = Field(default_factory=lambda: CONFIG_DIR / "data")
    blob_base_url: Optional[str] = None
    tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"
    timeout: float = Field(default=30.0, gt=0)
    max_archive_size: int = Field(default=100 * 1024 * 1024, gt=0)

    @property
    def metadata_file(self) -> Path:
        return self.data_dir / "metadata.json"

    @property
    def blob_dir(self) -> Path:
        return self.data_dir / "packages"


def _read_config_file(config_file: Path) -> Dict[str, str]:
    config = {}
    if not config_file.exists():
        return config

    try:
        with open(config_file, "r") as f:
            for line in f:
                line = line.strip()
                if "=" in line and not line.startswith("#"):
                    key, value = line.split("=", 1)
                    config[key.strip()] = value.strip()
    except (IOError, PermissionError, OSError):
        # if we can't read the file, treat as not configured
        return {}
    return config


def load_settings(config_file: Optional[Path] = None, environ: Optional[Dict[str, str]] = None) -> Settings:
    """
    load settings from the config file, then apply environment overrides.

    args:
        config_file: path to a KEY=VALUE file (defaults to ~/.unpub/config)
        environ: mapping to read UNPUB_* overrides from (defaults to os.environ)

    returns:
        validated Settings

    raises:
        pydantic.ValidationError: if a value has the wrong type
    """
    config = _read_config_file(config_file or CONFIG_FILE)
    environ = os.environ if environ is None else environ

    values = {}
    for key, field in KEYS.items():
        if key in environ and environ[key]:
            values[field] = environ[key]
        elif key in config and config[key]:
            values[field] = config[key]

    return Settings(**values)


def set_setting(key: str, value: str, config_file: Optional[Path] = None):
    """set a key in the config file, preserving other config values."""
    config_file = config_file or CONFIG_FILE
    key = key.upper()
    if not key.startswith(ENV_PREFIX):
        key = ENV_PREFIX + key
    if key not in KEYS:
        raise ValueError(f"Unknown setting '{key}'. Known settings: {', '.join(KEYS)}")

    config_file.parent.mkdir(parents=True, exist_ok=True)
    config = _read_config_file(config_file)
    config[key] = value

    try:
        with open(config_file, "w") as f:
            for k, v in config.items():
                f.write(f"{k}={v}\n")
    except (IOError, PermissionError, OSError) as e:
        raise RuntimeError(f"failed to write config file: {e}") from e

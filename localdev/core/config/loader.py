"""
Settings loader — reads localdev.yml into a validated settings model.

Values are resolved in precedence order:
    LOCALDEV_* env vars  >  ~/.localdev/localdev.yml  >  built-in defaults

The settings file is optional; a missing file means defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from localdev.core.errors import SettingsError

logger = logging.getLogger(__name__)

# Directory under $HOME holding all localdev state
LOCALDEV_DIR = ".localdev"

# Default settings filename (inside LOCALDEV_DIR)
SETTINGS_FILE = "localdev.yml"

ENV_PREFIX = "LOCALDEV_"


class LocaldevSettings(BaseModel):
    """Tunables for the legacy app lifecycle."""

    home: Path = Field(default_factory=Path.home)

    # Object store
    default_bucket: str = "nmdarchive"
    aws_region: str = "us-west-2"

    # Configuration / secret store paths
    databag_path: str = "secret/databags/nmd"
    aws_secret_path: str = "secret/shared/services/awscfg"

    # Timeouts (seconds)
    command_timeout: int = Field(default=300, gt=0)
    download_timeout: int = Field(default=1800, gt=0)
    http_timeout: float = Field(default=5.0, gt=0)

    # Readiness polling
    ready_retries: int = Field(default=300, ge=1)
    ready_interval: float = Field(default=1.0, ge=0)

    image_prefix: str = "drud/nginx-php-fpm-"

    @property
    def root(self) -> Path:
        """The ``.localdev`` directory all app trees live under."""
        return self.home / LOCALDEV_DIR


def default_settings_path(home: Path | None = None) -> Path:
    return (home or Path.home()) / LOCALDEV_DIR / SETTINGS_FILE


def _env_overrides(environ: dict[str, str]) -> dict[str, str]:
    """Collect ``LOCALDEV_<FIELD>`` variables that name a settings field."""
    overrides: dict[str, str] = {}
    for field_name in LocaldevSettings.model_fields:
        value = environ.get(ENV_PREFIX + field_name.upper())
        if value is not None and value != "":
            overrides[field_name] = value
    return overrides


def load_settings(
    path: Path | None = None,
    environ: dict[str, str] | None = None,
) -> LocaldevSettings:
    """Load and validate localdev settings.

    Args:
        path: Explicit settings file. If None, uses
            ``~/.localdev/localdev.yml`` when it exists.
        environ: Environment mapping to read overrides from
            (default: ``os.environ``).

    Returns:
        Validated LocaldevSettings.

    Raises:
        SettingsError: If an explicit file is missing, or any file or
            override is invalid.
    """
    environ = dict(os.environ if environ is None else environ)
    data: dict = {}

    explicit = path is not None
    if path is None:
        home = environ.get(ENV_PREFIX + "HOME")
        path = default_settings_path(Path(home) if home else None)

    if path.is_file():
        logger.debug("Loading settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SettingsError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise SettingsError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise SettingsError(
                f"Expected a YAML mapping in {path}, got {type(loaded).__name__}"
            )
        data.update(loaded)
    elif explicit:
        raise SettingsError(f"Settings file not found: {path}")

    data.update(_env_overrides(environ))

    try:
        settings = LocaldevSettings.model_validate(data)
    except ValidationError as e:
        raise SettingsError(f"Invalid localdev settings: {e}") from e

    logger.debug("Settings resolved: root=%s bucket=%s", settings.root, settings.default_bucket)
    return settings

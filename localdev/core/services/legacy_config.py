"""
Framework settings files — Drupal settings.php, drush settings,
WordPress wp-config.php.

Each settings record is a pydantic model whose defaults match the
legacy container stack (database ``data`` as ``root``/``root``).
``write_*`` functions render a record and write it atomically,
raising ``ConfigRenderError`` with the target path on any failure.
"""

from __future__ import annotations

import logging
import os
import secrets
import string
import tempfile
from pathlib import Path

from pydantic import BaseModel

from localdev.core.errors import ConfigRenderError
from localdev.core.services.legacy_templates import (
    DRUPAL7_SETTINGS_TEMPLATE,
    DRUPAL8_SETTINGS_TEMPLATE,
    DRUSH_SETTINGS_TEMPLATE,
    WORDPRESS_CONFIG_TEMPLATE,
    render_template,
)

logger = logging.getLogger(__name__)

HASH_SALT_LENGTH = 64

_SALT_ALPHABET = string.ascii_letters + string.digits


def random_string(length: int = HASH_SALT_LENGTH) -> str:
    """Cryptographically random alphanumeric string."""
    return "".join(secrets.choice(_SALT_ALPHABET) for _ in range(length))


def php_string(value: str) -> str:
    """Escape a value for a single-quoted PHP string literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DrupalSettings(BaseModel):
    deploy_name: str = "local"
    deploy_url: str = ""
    database_name: str = "data"
    database_username: str = "root"
    database_password: str = "root"
    database_host: str = "127.0.0.1"
    database_driver: str = "mysql"
    database_port: int = 3306
    database_prefix: str = ""
    hash_salt: str = ""
    is_drupal8: bool = False


class DrushSettings(BaseModel):
    database_name: str = "data"
    database_username: str = "root"
    database_password: str = "root"
    database_host: str = "127.0.0.1"
    database_port: int = 3306


class WordpressSettings(BaseModel):
    deploy_name: str = "local"
    deploy_url: str = ""
    database_name: str = "data"
    database_username: str = "root"
    database_password: str = "root"
    database_host: str = "127.0.0.1"
    table_prefix: str = "wp_"

    auth_key: str = ""
    auth_salt: str = ""
    logged_in_key: str = ""
    logged_in_salt: str = ""
    nonce_key: str = ""
    nonce_salt: str = ""
    secure_auth_key: str = ""
    secure_auth_salt: str = ""


def _template_values(settings: BaseModel) -> dict[str, str]:
    values = {}
    for key, value in settings.model_dump().items():
        values[key] = php_string(value) if isinstance(value, str) else str(value)
    return values


def write_settings_file(path: Path, content: str) -> None:
    """Write ``content`` to ``path`` via a temp file + rename.

    Raises:
        ConfigRenderError: If the directory cannot be created or the
            file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            os.chmod(tmp, 0o644)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
    except OSError as e:
        raise ConfigRenderError(path, f"Could not write config file {path}: {e}") from e
    logger.debug("Wrote %s (%d bytes)", path, len(content))


def write_drupal_config(settings: DrupalSettings, path: Path) -> None:
    template = DRUPAL8_SETTINGS_TEMPLATE if settings.is_drupal8 else DRUPAL7_SETTINGS_TEMPLATE
    write_settings_file(path, render_template(template, _template_values(settings)))


def write_drush_config(settings: DrushSettings, path: Path) -> None:
    write_settings_file(path, render_template(DRUSH_SETTINGS_TEMPLATE, _template_values(settings)))


def write_wordpress_config(settings: WordpressSettings, path: Path) -> None:
    write_settings_file(path, render_template(WORDPRESS_CONFIG_TEMPLATE, _template_values(settings)))

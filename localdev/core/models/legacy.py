"""
Legacy app models — the record a lifecycle run mutates, and the
read-only snapshots it resolves along the way.

A ``LegacyApp`` is constructed with ``name`` + ``environment`` only and
is enriched in place by each stage. Databag records and archives are
immutable once fetched.
"""

from __future__ import annotations

import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from localdev.core.errors import ConfigNotFound


# Built-in compose definition. ``{image}`` and ``{name}`` are the only
# placeholders; everything else is passed through verbatim.
DEFAULT_COMPOSE_TEMPLATE = """\
version: '2'
services:
  db:
    container_name: {name}-db
    image: drud/mysql-docker-local:5.7
    volumes:
      - "./data:/db"
    restart: always
    environment:
      MYSQL_DATABASE: data
      MYSQL_ROOT_PASSWORD: root
    ports:
      - "3306"
  web:
    container_name: {name}-web
    image: {image}
    volumes:
      - "./src:/var/www/html"
    restart: always
    depends_on:
      - db
    links:
      - db:db
    ports:
      - "80"
    working_dir: "/var/www/html/docroot"
    environment:
      - DEPLOY_NAME=local
      - VIRTUAL_HOST={name}
"""


class AppType(str, Enum):
    """Framework of a legacy app."""

    DRUPAL = "drupal"
    WORDPRESS = "wordpress"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: str | None) -> AppType:
        """Map a free-form type string onto an AppType.

        Accepts the short names used by older tooling (``wp``,
        ``drupal7``, ``drupal8``). Unrecognized values map to UNKNOWN.
        """
        normalized = (value or "").strip().lower()
        aliases = {
            "wp": cls.WORDPRESS,
            "wordpress": cls.WORDPRESS,
            "drupal": cls.DRUPAL,
            "drupal7": cls.DRUPAL,
            "drupal8": cls.DRUPAL,
        }
        return aliases.get(normalized, cls.UNKNOWN)

    @property
    def short_name(self) -> str:
        """Name used in image tags (``wp`` for WordPress)."""
        return "wp" if self is AppType.WORDPRESS else self.value


class LegacyApp(BaseModel):
    """One deployed legacy instance, identified by (name, environment)."""

    model_config = ConfigDict(validate_assignment=True)

    name: str = Field(min_length=1)
    environment: str = Field(min_length=1)
    app_type: AppType | None = None
    drupal8: bool = False
    compose_template: str = DEFAULT_COMPOSE_TEMPLATE

    repo: str = ""
    branch: str = ""

    # Populated by generate_config (needs running containers)
    web_port: int | None = None
    db_port: int | None = None

    # Valid only between fetch_resources and unpack_resources
    archive_path: Path | None = None

    @field_validator("app_type", mode="before")
    @classmethod
    def _parse_app_type(cls, value: object) -> object:
        if isinstance(value, str) and not isinstance(value, AppType):
            return AppType.parse(value)
        return value

    @field_validator("name", "environment")
    @classmethod
    def _no_path_separators(cls, value: str) -> str:
        if "/" in value or value in (".", ".."):
            raise ValueError(f"invalid identifier: {value!r}")
        return value

    @property
    def container_name(self) -> str:
        """Base name shared by all of this app's containers."""
        return f"legacy-{self.name}-{self.environment}"

    @property
    def rel_path(self) -> Path:
        """Working directory relative to the ``.localdev`` root."""
        return Path("legacy") / f"{self.name}-{self.environment}"


# ── Databag ─────────────────────────────────────────────────────────

# Short environment names and the long form databags often use.
_ENV_ALIASES = {
    "prod": "production",
    "production": "prod",
    "stage": "staging",
    "staging": "stage",
    "dev": "development",
    "development": "dev",
}


class EnvironmentRecord(BaseModel):
    """Per-environment snapshot from the configuration store."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    aws_bucket: str = ""
    aws_access_key: str = ""
    aws_secret_key: str = ""

    hash_salt: str = ""

    auth_key: str = ""
    auth_salt: str = ""
    logged_in_key: str = ""
    logged_in_salt: str = ""
    nonce_key: str = ""
    nonce_salt: str = ""
    secure_auth_key: str = ""
    secure_auth_salt: str = ""

    repository: str = ""
    branch: str = ""


class RepoDetails(BaseModel):
    """Source repository coordinates of an app."""

    model_config = ConfigDict(frozen=True)

    host: str = ""
    org: str = ""
    name: str = ""
    branch: str = ""

    @classmethod
    def from_url(cls, url: str, branch: str = "") -> RepoDetails:
        """Parse ``git@host:org/name.git`` or ``https://host/org/name``."""
        m = re.match(
            r"^(?:\w+://)?(?:[^@/]+@)?(?P<host>[^:/]+)[:/](?P<org>[^/]+)/(?P<name>[^/]+?)(?:\.git)?/?$",
            url.strip(),
        )
        if not m:
            return cls(branch=branch)
        return cls(host=m["host"], org=m["org"], name=m["name"], branch=branch)


class DatabagRecord(BaseModel):
    """All environments of one app, as stored in the configuration store."""

    model_config = ConfigDict(frozen=True)

    name: str
    environments: dict[str, EnvironmentRecord] = Field(default_factory=dict)

    @classmethod
    def from_data(cls, name: str, data: dict[str, Any]) -> DatabagRecord:
        """Build a record from raw store data.

        Non-mapping values (top-level metadata) are skipped.
        """
        envs = {
            key: EnvironmentRecord.model_validate(value)
            for key, value in data.items()
            if isinstance(value, dict)
        }
        return cls(name=name, environments=envs)

    def get_environment(self, env_name: str) -> EnvironmentRecord:
        """Look up an environment by exact name, then by its alias."""
        if env_name in self.environments:
            return self.environments[env_name]
        alias = _ENV_ALIASES.get(env_name)
        if alias and alias in self.environments:
            return self.environments[alias]
        raise ConfigNotFound(
            f"Environment '{env_name}' not found in databag '{self.name}'"
        )


# ── Object store ────────────────────────────────────────────────────


class Archive(BaseModel):
    """A remote data archive (database dump + files)."""

    model_config = ConfigDict(frozen=True)

    key: str
    last_modified: datetime | None = None
    size: int = 0

    @property
    def filename(self) -> str:
        return self.key.rsplit("/", 1)[-1]


def select_current_archive(archives: list[Archive]) -> Archive | None:
    """Pick the most recently modified archive.

    Listing order is provider-defined, so recency is decided by
    ``last_modified`` with the key as tie-breaker. Archives without a
    timestamp sort before any that have one.
    """
    if not archives:
        return None
    return max(
        archives,
        key=lambda a: (a.last_modified is not None, a.last_modified or datetime.min, a.key),
    )

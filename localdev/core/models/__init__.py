"""
Domain models — Pydantic types for legacy app lifecycle runs.

    from localdev.core.models import LegacyApp, AppType, DatabagRecord
"""

from localdev.core.models.legacy import (
    DEFAULT_COMPOSE_TEMPLATE,
    AppType,
    Archive,
    DatabagRecord,
    EnvironmentRecord,
    LegacyApp,
    RepoDetails,
    select_current_archive,
)

__all__ = [
    "DEFAULT_COMPOSE_TEMPLATE",
    "AppType",
    "Archive",
    "DatabagRecord",
    "EnvironmentRecord",
    "LegacyApp",
    "RepoDetails",
    "select_current_archive",
]

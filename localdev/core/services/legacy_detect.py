"""Framework detection for an unpacked legacy app tree."""

from __future__ import annotations

import logging
from pathlib import Path

from localdev.core.errors import DetectionError
from localdev.core.models.legacy import AppType

logger = logging.getLogger(__name__)

# (relative path under the app dir, app type, drupal 8 layout), checked in order
_SIGNATURES: list[tuple[str, AppType, bool]] = [
    ("src/docroot/core/scripts/drupal.sh", AppType.DRUPAL, True),
    ("src/docroot/scripts/drupal.sh", AppType.DRUPAL, False),
    ("src/docroot/wp", AppType.WORDPRESS, False),
    ("src/docroot/wp-settings.php", AppType.WORDPRESS, False),
]


def detect_app_type(app_dir: Path) -> tuple[AppType, bool]:
    """Identify the framework of the app rooted at ``app_dir``.

    Returns:
        (app_type, is_drupal8).

    Raises:
        DetectionError: If ``app_dir`` does not exist or no signature
            file is present. Resources must be fetched and unpacked
            first.
    """
    if not app_dir.is_dir():
        raise DetectionError(f"App directory {app_dir} does not exist")

    for rel, app_type, drupal8 in _SIGNATURES:
        if (app_dir / rel).exists():
            logger.debug("Detected %s via %s", app_type.value, rel)
            return app_type, drupal8

    raise DetectionError(f"Couldn't determine app type for {app_dir}")

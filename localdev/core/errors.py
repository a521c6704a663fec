"""
Error types for the legacy app lifecycle.

Every stage raises one of these to its caller. Nothing below the CLI
layer terminates the process; the CLI turns them into a red message
and exit status 1.
"""

from __future__ import annotations

from pathlib import Path


class LegacyAppError(Exception):
    """Base class for all lifecycle errors.

    ``output`` carries the captured stdout/stderr of the external
    command that failed, when there was one.
    """

    def __init__(self, message: str, output: str = "") -> None:
        super().__init__(message)
        self.output = output

    def __str__(self) -> str:
        message = super().__str__()
        if self.output:
            return f"{message}\n{self.output}"
        return message


# ── Settings / metadata ─────────────────────────────────────────────


class SettingsError(LegacyAppError):
    """Local localdev settings are missing or invalid."""


class ConfigNotFound(LegacyAppError):
    """No databag record (or environment in it) for the app."""


class CredentialsUnavailable(LegacyAppError):
    """Object-store credentials could not be obtained."""


# ── Resources ───────────────────────────────────────────────────────


class NoArchiveAvailable(LegacyAppError):
    """The object-store listing under the app prefix was empty."""


class DownloadFailed(LegacyAppError):
    pass


class ExtractionFailed(LegacyAppError):
    pass


class SyncFailed(LegacyAppError):
    pass


class DetectionError(LegacyAppError):
    """The source tree has no recognizable framework signature."""


# ── Configuration ───────────────────────────────────────────────────


class PortResolutionError(LegacyAppError):
    """A named container is not running or publishes no port."""


class ConfigRenderError(LegacyAppError):
    """A settings file could not be rendered or written."""

    def __init__(self, path: Path | str, message: str = "", output: str = "") -> None:
        self.path = Path(path)
        super().__init__(message or f"Could not write config file {self.path}", output)


class UnsupportedAppType(LegacyAppError):
    """Config generation was asked for an app type it has no template for."""


# ── Containers ──────────────────────────────────────────────────────


class ComposeCommandFailed(LegacyAppError):
    pass


class ContainerCleanupFailed(LegacyAppError):
    pass


class NotReady(LegacyAppError):
    """The web container never answered with the expected status."""


class OperationCancelled(LegacyAppError):
    """The caller-supplied cancellation signal was set."""

"""
Host command runner — the one place localdev calls subprocess.

Every adapter (docker, aws, vault) and every host command the lifecycle
issues (tar, rsync) goes through ``run_command``. It never raises:
timeouts and missing binaries come back as a failed CommandResult so
callers decide which lifecycle error they map to.
"""

from __future__ import annotations

import logging
import subprocess
import time
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 300


@dataclass
class CommandResult:
    """Outcome of one host command."""

    args: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    timed_out: bool = False

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout + stderr, for error diagnostics."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @property
    def error(self) -> str:
        """Best single-line description of a failure."""
        if self.ok:
            return ""
        return self.stderr.strip() or f"{self.args[0]} exited with code {self.returncode}"


def run_command(
    binary: str,
    args: list[str],
    *,
    cwd: Path | None = None,
    env: dict[str, str] | None = None,
    timeout: int = DEFAULT_TIMEOUT,
) -> CommandResult:
    """Run ``binary`` with ``args`` and capture its output.

    Args:
        binary: Executable name or path.
        args: Arguments (never passed through a shell).
        cwd: Working directory (default: inherit).
        env: Full environment for the child. None inherits ours.
        timeout: Seconds before the child is killed.
    """
    cmd = [binary, *args]
    logger.debug("Running: %s (cwd=%s, timeout=%ss)", " ".join(cmd), cwd, timeout)
    start = time.monotonic()

    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd else None,
            env=env,
            capture_output=True,
            text=True,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired:
        logger.warning("%s timed out after %ss", binary, timeout)
        return CommandResult(
            args=cmd,
            returncode=-1,
            stderr=f"{binary} timed out after {timeout}s",
            duration_ms=int((time.monotonic() - start) * 1000),
            timed_out=True,
        )
    except FileNotFoundError:
        return CommandResult(args=cmd, returncode=127, stderr=f"{binary}: command not found")
    except OSError as e:
        return CommandResult(args=cmd, returncode=126, stderr=f"{binary}: {e}")

    result = CommandResult(
        args=cmd,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    if not result.ok:
        logger.debug("%s failed (rc=%d): %s", binary, result.returncode, result.error)
    return result

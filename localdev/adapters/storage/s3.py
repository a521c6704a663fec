"""
S3 adapter — archive listing and download through the aws CLI.

Credentials are handed to the constructor and injected only into the
environment of each ``aws`` child process. The parent process
environment is never modified, so two runs with different credentials
cannot see each other's keys.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime
from pathlib import Path

from localdev.adapters.base import AwsCredentials, ObjectStore
from localdev.adapters.shell.command import run_command
from localdev.core.errors import DownloadFailed
from localdev.core.models.legacy import Archive

logger = logging.getLogger(__name__)

# Ambient variables that would compete with explicit keys
_SHADOWING_VARS = ("AWS_PROFILE", "AWS_SESSION_TOKEN", "AWS_SECURITY_TOKEN")


class S3ObjectStore(ObjectStore):
    """ObjectStore backed by ``aws s3api``."""

    def __init__(
        self,
        credentials: AwsCredentials,
        timeout: int = 1800,
        aws: str = "aws",
    ) -> None:
        self.credentials = credentials
        self.timeout = timeout
        self.aws = aws

    def child_env(self) -> dict[str, str]:
        """Environment for one aws invocation."""
        env = {k: v for k, v in os.environ.items() if k not in _SHADOWING_VARS}
        env["AWS_ACCESS_KEY_ID"] = self.credentials.access_key
        env["AWS_SECRET_ACCESS_KEY"] = self.credentials.secret_key
        env["AWS_DEFAULT_REGION"] = self.credentials.region
        return env

    def list_objects(self, bucket: str, prefix: str) -> list[Archive]:
        r = run_command(
            self.aws,
            [
                "s3api", "list-objects-v2",
                "--bucket", bucket,
                "--prefix", prefix,
                "--output", "json",
            ],
            env=self.child_env(),
            timeout=min(self.timeout, 300),
        )
        if not r.ok:
            raise DownloadFailed(f"Could not list s3://{bucket}/{prefix}", output=r.output)

        output = r.stdout.strip()
        if not output:
            return []
        try:
            data = json.loads(output)
        except json.JSONDecodeError as e:
            raise DownloadFailed(f"Unexpected listing output for s3://{bucket}/{prefix}: {e}") from e

        archives = []
        for obj in (data or {}).get("Contents") or []:
            archives.append(Archive(
                key=obj["Key"],
                last_modified=_parse_timestamp(obj.get("LastModified")),
                size=int(obj.get("Size") or 0),
            ))
        logger.debug("Listed %d objects under s3://%s/%s", len(archives), bucket, prefix)
        return archives

    def download(self, bucket: str, key: str, dest: Path) -> int:
        dest.parent.mkdir(parents=True, exist_ok=True)
        r = run_command(
            self.aws,
            ["s3api", "get-object", "--bucket", bucket, "--key", key, str(dest)],
            env=self.child_env(),
            timeout=self.timeout,
        )
        if not r.ok:
            # A partial download is useless and would be mistaken for an archive
            dest.unlink(missing_ok=True)
            raise DownloadFailed(f"Could not download s3://{bucket}/{key}", output=r.output)

        if not dest.is_file():
            raise DownloadFailed(f"aws reported success but {dest} does not exist", output=r.output)
        return dest.stat().st_size


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.debug("Unparseable LastModified: %r", value)
        return None

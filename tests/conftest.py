"""
Shared test fixtures — in-memory stand-ins for the external systems
the lifecycle talks to (databag store, secret store, object store,
container runtime).
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from localdev.adapters.base import (
    AwsCredentials,
    ConfigStore,
    ContainerInfo,
    ContainerRuntime,
    ObjectStore,
    SecretStore,
)
from localdev.adapters.shell.command import CommandResult
from localdev.core.config.loader import LocaldevSettings
from localdev.core.errors import ConfigNotFound, CredentialsUnavailable, PortResolutionError
from localdev.core.models.legacy import Archive, DatabagRecord, LegacyApp
from localdev.core.services.legacy_lifecycle import LegacyAppLifecycle


def ok(*args: str, stdout: str = "") -> CommandResult:
    return CommandResult(args=list(args) or ["true"], returncode=0, stdout=stdout)


def failed(*args: str, stderr: str = "boom", rc: int = 1) -> CommandResult:
    return CommandResult(args=list(args) or ["false"], returncode=rc, stderr=stderr)


class FakeConfigStore(ConfigStore):
    def __init__(self, records: dict[str, dict[str, Any]] | None = None) -> None:
        self.records = records or {}
        self.calls: list[str] = []

    def get_record(self, name: str) -> DatabagRecord:
        self.calls.append(name)
        if name not in self.records:
            raise ConfigNotFound(f"No databag found for '{name}'")
        return DatabagRecord.from_data(name, self.records[name])


class FakeSecretStore(SecretStore):
    def __init__(self, secrets: dict[str, dict[str, Any]] | None = None) -> None:
        self.secrets = secrets or {}
        self.calls: list[str] = []

    def read_secret(self, path: str) -> dict[str, Any]:
        self.calls.append(path)
        if path not in self.secrets:
            raise CredentialsUnavailable(f"Could not read secret {path}")
        return self.secrets[path]


class FakeObjectStore(ObjectStore):
    def __init__(self, archives: list[Archive] | None = None, fail_download: bool = False) -> None:
        self.archives = archives or []
        self.fail_download = fail_download
        self.credentials: AwsCredentials | None = None
        self.listed: list[tuple[str, str]] = []
        self.downloaded: list[tuple[str, str, Path]] = []

    def list_objects(self, bucket: str, prefix: str) -> list[Archive]:
        self.listed.append((bucket, prefix))
        return [a for a in self.archives if a.key.startswith(prefix)]

    def download(self, bucket: str, key: str, dest: Path) -> int:
        from localdev.core.errors import DownloadFailed

        if self.fail_download:
            raise DownloadFailed(f"Could not download s3://{bucket}/{key}")
        self.downloaded.append((bucket, key, dest))
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(b"archive-bytes")
        return dest.stat().st_size


class FakeRuntime(ContainerRuntime):
    """Records every call; results are configurable per command."""

    def __init__(self) -> None:
        self.compose_calls: list[tuple[Path, tuple[str, ...]]] = []
        self.compose_results: dict[str, CommandResult] = {}
        self.containers: list[ContainerInfo] = []
        self.stopped: list[str] = []
        self.removed: list[str] = []
        self.fail_stop: set[str] = set()
        self.ports: dict[str, int] = {}
        self.host_calls: list[tuple[str, list[str]]] = []
        self.host_handler: Callable[[str, list[str]], CommandResult] | None = None

    def compose(self, compose_file: Path, *args: str) -> CommandResult:
        self.compose_calls.append((compose_file, args))
        return self.compose_results.get(args[0], ok("docker", "compose", *args))

    def list_containers(self) -> list[ContainerInfo]:
        return list(self.containers)

    def stop_container(self, container_id: str) -> CommandResult:
        if container_id in self.fail_stop:
            return failed("docker", "stop", container_id, stderr="no such container")
        self.stopped.append(container_id)
        return ok("docker", "stop", container_id)

    def remove_container(self, container_id: str) -> CommandResult:
        self.removed.append(container_id)
        return ok("docker", "rm", container_id)

    def resolve_published_port(self, container_name: str) -> int:
        if container_name not in self.ports:
            raise PortResolutionError(f"Container {container_name} is not running")
        return self.ports[container_name]

    def run_host_command(self, binary: str, args: list[str]) -> CommandResult:
        self.host_calls.append((binary, list(args)))
        if self.host_handler is not None:
            return self.host_handler(binary, args)
        return ok(binary, *args)


WORDPRESS_SALTS = {
    "auth_key": "ak-1111",
    "auth_salt": "as-2222",
    "logged_in_key": "lik-3333",
    "logged_in_salt": "lis-4444",
    "nonce_key": "nk-5555",
    "nonce_salt": "ns-6666",
    "secure_auth_key": "sak-7777",
    "secure_auth_salt": "sas-8888",
}


@pytest.fixture
def settings(tmp_path: Path) -> LocaldevSettings:
    """Settings rooted in a temporary home, with a fast readiness poll."""
    return LocaldevSettings(home=tmp_path / "home", ready_retries=3, ready_interval=0)


@pytest.fixture
def config_store() -> FakeConfigStore:
    return FakeConfigStore({
        "foo": {
            "production": {"aws_bucket": "foo-bucket", "hash_salt": ""},
            "stage": {"aws_access_key": "AKIA-stage", "aws_secret_key": "s3cr3t"},
        },
        "blog": {"prod": {"aws_access_key": "AKIA-blog", "aws_secret_key": "x", **WORDPRESS_SALTS}},
    })


@pytest.fixture
def secret_store(settings: LocaldevSettings) -> FakeSecretStore:
    return FakeSecretStore({
        settings.aws_secret_path: {"accesskey": "AKIA-shared", "secretkey": "shared-secret"},
    })


@pytest.fixture
def object_store() -> FakeObjectStore:
    return FakeObjectStore()


@pytest.fixture
def runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def make_lifecycle(settings, config_store, secret_store, object_store, runtime):
    """Factory: ``make_lifecycle("foo", "prod", app_type=...)``."""

    def _make(name: str = "foo", environment: str = "prod", **app_fields: Any) -> LegacyAppLifecycle:
        def _factory(creds: AwsCredentials) -> FakeObjectStore:
            object_store.credentials = creds
            return object_store

        return LegacyAppLifecycle(
            LegacyApp(name=name, environment=environment, **app_fields),
            settings=settings,
            config_store=config_store,
            secret_store=secret_store,
            runtime=runtime,
            object_store_factory=_factory,
        )

    return _make

"""
Adapter base — the contracts between the lifecycle and external systems.

The lifecycle only talks to the outside world through these four
interfaces. The shipped implementations drive CLIs (``vault``, ``aws``,
``docker``); tests substitute in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from localdev.adapters.shell.command import CommandResult
from localdev.core.models.legacy import Archive, DatabagRecord


@dataclass(frozen=True)
class AwsCredentials:
    """Object-store credentials, scoped to one lifecycle run."""

    access_key: str
    secret_key: str
    region: str = "us-west-2"

    def __repr__(self) -> str:
        return f"AwsCredentials(access_key={self.access_key[:4]}…, region={self.region!r})"


@dataclass(frozen=True)
class ContainerInfo:
    """A running container as reported by the runtime."""

    id: str
    names: tuple[str, ...]

    @property
    def name(self) -> str:
        return self.names[0] if self.names else ""


class ConfigStore(ABC):
    """Resolves per-app databag records."""

    @abstractmethod
    def get_record(self, name: str) -> DatabagRecord:
        """Fetch the databag for ``name``.

        Raises:
            ConfigNotFound: If no record exists.
        """


class SecretStore(ABC):
    """Reads raw secrets by path."""

    @abstractmethod
    def read_secret(self, path: str) -> dict[str, Any]:
        """Return the key/value data stored at ``path``.

        Raises:
            CredentialsUnavailable: If the secret cannot be read.
        """


class ObjectStore(ABC):
    """Lists and downloads archive objects."""

    @abstractmethod
    def list_objects(self, bucket: str, prefix: str) -> list[Archive]:
        """List every object under ``prefix``, in provider order."""

    @abstractmethod
    def download(self, bucket: str, key: str, dest: Path) -> int:
        """Download one object to ``dest`` and return the bytes written."""


class ContainerRuntime(ABC):
    """Container lifecycle plus arbitrary host commands."""

    @abstractmethod
    def compose(self, compose_file: Path, *args: str) -> CommandResult:
        """Run a compose sub-command against ``compose_file``."""

    @abstractmethod
    def list_containers(self) -> list[ContainerInfo]:
        """List running containers."""

    @abstractmethod
    def stop_container(self, container_id: str) -> CommandResult:
        ...

    @abstractmethod
    def remove_container(self, container_id: str) -> CommandResult:
        ...

    @abstractmethod
    def resolve_published_port(self, container_name: str) -> int:
        """Host port published by a running container.

        Raises:
            PortResolutionError: If the container is not running or
                publishes nothing.
        """

    @abstractmethod
    def run_host_command(self, binary: str, args: list[str]) -> CommandResult:
        """Run a command on the host (archive extraction, file sync)."""

"""
Docker adapter — container and compose operations for legacy apps.

Uses the docker CLI (``docker`` / ``docker compose``), never the Docker
API directly.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path

from localdev.adapters.base import ContainerInfo, ContainerRuntime
from localdev.adapters.shell.command import CommandResult, run_command
from localdev.core.errors import PortResolutionError

logger = logging.getLogger(__name__)


class DockerRuntime(ContainerRuntime):
    """ContainerRuntime backed by the docker CLI.

    Args:
        timeout: Seconds allowed for each docker invocation. Compose
            ``pull`` / ``up`` can take a while on a cold image cache.
        docker: Docker binary (name or path).
    """

    def __init__(self, timeout: int = 300, docker: str = "docker") -> None:
        self.timeout = timeout
        self.docker = docker

    def is_available(self) -> bool:
        return shutil.which(self.docker) is not None

    # ── Compose ─────────────────────────────────────────────────

    def compose(self, compose_file: Path, *args: str) -> CommandResult:
        return self._docker(
            ["compose", "-f", str(compose_file), *args],
            cwd=compose_file.parent if compose_file.parent.is_dir() else None,
        )

    # ── Containers ──────────────────────────────────────────────

    def list_containers(self) -> list[ContainerInfo]:
        r = self._docker(["ps", "--no-trunc", "--format", "{{json .}}"], timeout=30)
        if not r.ok:
            raise RuntimeError(r.error or "docker ps failed")

        containers = []
        for line in r.stdout.strip().splitlines():
            if not line.strip():
                continue
            try:
                info = json.loads(line)
            except json.JSONDecodeError:
                logger.debug("Skipping unparseable docker ps line: %s", line)
                continue
            names = tuple(
                n.strip().lstrip("/") for n in str(info.get("Names", "")).split(",") if n.strip()
            )
            containers.append(ContainerInfo(id=info.get("ID", ""), names=names))
        return containers

    def stop_container(self, container_id: str) -> CommandResult:
        return self._docker(["stop", container_id])

    def remove_container(self, container_id: str) -> CommandResult:
        return self._docker(["rm", container_id])

    def resolve_published_port(self, container_name: str) -> int:
        r = self._docker(["inspect", container_name], timeout=30)
        if not r.ok:
            raise PortResolutionError(
                f"Container {container_name} not found", output=r.output,
            )

        try:
            data = json.loads(r.stdout)
        except json.JSONDecodeError as e:
            raise PortResolutionError(
                f"Unexpected docker inspect output for {container_name}: {e}",
                output=r.stdout,
            ) from e

        if not data:
            raise PortResolutionError(f"Container {container_name} not found")
        info = data[0]

        if not info.get("State", {}).get("Running"):
            raise PortResolutionError(f"Container {container_name} is not running")

        ports = info.get("NetworkSettings", {}).get("Ports") or {}
        for container_port in sorted(ports):
            for binding in ports[container_port] or []:
                host_port = binding.get("HostPort")
                if host_port:
                    logger.debug("%s: %s -> %s", container_name, container_port, host_port)
                    return int(host_port)

        raise PortResolutionError(f"Container {container_name} publishes no ports")

    # ── Host commands ───────────────────────────────────────────

    def run_host_command(self, binary: str, args: list[str]) -> CommandResult:
        return run_command(binary, args, timeout=self.timeout)

    # ── Helpers ─────────────────────────────────────────────────

    def _docker(
        self,
        args: list[str],
        cwd: Path | None = None,
        timeout: int | None = None,
    ) -> CommandResult:
        return run_command(self.docker, args, cwd=cwd, timeout=timeout or self.timeout)

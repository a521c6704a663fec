"""
Vault adapters — databag records and shared secrets via the vault CLI.

Authentication is whatever the ``vault`` CLI already has (VAULT_ADDR,
VAULT_TOKEN or a token helper); localdev never handles vault tokens.
Both KV v1 (``{"data": {...}}``) and KV v2 (``{"data": {"data": {...}}}``)
response shapes are accepted.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from localdev.adapters.base import ConfigStore, SecretStore
from localdev.adapters.shell.command import CommandResult, run_command
from localdev.core.errors import ConfigNotFound, CredentialsUnavailable
from localdev.core.models.legacy import DatabagRecord

logger = logging.getLogger(__name__)


def vault_read(path: str, *, vault: str = "vault", timeout: int = 60) -> tuple[dict[str, Any] | None, CommandResult]:
    """Read one secret.

    Returns:
        (data, result). ``data`` is None when the read failed or the
        output could not be parsed; ``result`` holds the raw command
        outcome for diagnostics.
    """
    r = run_command(vault, ["read", "-format=json", path], timeout=timeout)
    if not r.ok:
        return None, r

    try:
        payload = json.loads(r.stdout)
    except json.JSONDecodeError:
        logger.debug("vault read %s: unparseable output", path)
        return None, r

    data = payload.get("data") if isinstance(payload, dict) else None
    if isinstance(data, dict) and isinstance(data.get("data"), dict) and "metadata" in data:
        data = data["data"]
    if not isinstance(data, dict):
        return None, r
    return data, r


class VaultSecretStore(SecretStore):
    def __init__(self, vault: str = "vault", timeout: int = 60) -> None:
        self.vault = vault
        self.timeout = timeout

    def read_secret(self, path: str) -> dict[str, Any]:
        data, r = vault_read(path, vault=self.vault, timeout=self.timeout)
        if data is None:
            raise CredentialsUnavailable(f"Could not read secret {path}", output=r.output)
        return data


class VaultConfigStore(ConfigStore):
    """Databags stored as ``<base_path>/<app name>`` in vault.

    Each databag maps environment names to environment records.
    """

    def __init__(
        self,
        base_path: str = "secret/databags/nmd",
        vault: str = "vault",
        timeout: int = 60,
    ) -> None:
        self.base_path = base_path.rstrip("/")
        self.vault = vault
        self.timeout = timeout

    def get_record(self, name: str) -> DatabagRecord:
        path = f"{self.base_path}/{name}"
        data, r = vault_read(path, vault=self.vault, timeout=self.timeout)
        if data is None:
            raise ConfigNotFound(f"No databag found for '{name}' at {path}", output=r.output)
        logger.debug("Loaded databag %s (%d keys)", path, len(data))
        return DatabagRecord.from_data(name, data)

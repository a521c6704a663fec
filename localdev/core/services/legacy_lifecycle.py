"""
Legacy app lifecycle — resolve, fetch, unpack, configure, run.

A ``LegacyAppLifecycle`` owns one ``LegacyApp`` record and the working
tree under ``~/.localdev/legacy/<name>-<environment>/``:

    docker-compose.yaml
    files/                  extracted archive contents
    data/<name>.sql         database dump mounted into the db container
    src/docroot/            site code served by the web container
    src/drush.settings.php  host-side drush database settings

Stages must be called in order by the caller (fetch → unpack → start →
generate_config → wait_until_ready); nothing here enforces it. Every
stage raises a ``LegacyAppError`` subclass to its caller. The one
built-in recovery is ``teardown_and_cleanup`` falling back to
``cleanup`` when compose cannot bring the stack down.
"""

from __future__ import annotations

import logging
import re
import shutil
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from localdev.adapters.base import (
    AwsCredentials,
    ConfigStore,
    ContainerInfo,
    ContainerRuntime,
    ObjectStore,
    SecretStore,
)
from localdev.core.config.loader import LOCALDEV_DIR, LocaldevSettings
from localdev.core.errors import (
    ComposeCommandFailed,
    ConfigNotFound,
    ContainerCleanupFailed,
    CredentialsUnavailable,
    ExtractionFailed,
    NoArchiveAvailable,
    OperationCancelled,
    SyncFailed,
    UnsupportedAppType,
)
from localdev.core.models.legacy import (
    AppType,
    DatabagRecord,
    EnvironmentRecord,
    LegacyApp,
    RepoDetails,
    select_current_archive,
)
from localdev.core.services import legacy_config
from localdev.core.services.http_check import ensure_http_status
from localdev.core.services.legacy_detect import detect_app_type
from localdev.core.services.legacy_templates import render_template

logger = logging.getLogger(__name__)

COMPOSE_FILENAME = "docker-compose.yaml"

# Settings files the archive may carry but must never overwrite
_PROTECTED_TAR_EXCLUDES = (
    "--exclude=sites/default/settings.php",
    "--exclude=docroot/wp-config.php",
)
_PROTECTED_RSYNC_EXCLUDES = (
    "--exclude=/sites/default/settings.php",
    "--exclude=/wp-config.php",
)


# ── Paths ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LegacyPaths:
    """Filesystem layout of one app's working tree."""

    workdir: Path

    @property
    def compose_file(self) -> Path:
        return self.workdir / COMPOSE_FILENAME

    @property
    def files_dir(self) -> Path:
        return self.workdir / "files"

    @property
    def data_dir(self) -> Path:
        return self.workdir / "data"

    @property
    def src_dir(self) -> Path:
        return self.workdir / "src"

    @property
    def docroot(self) -> Path:
        return self.src_dir / "docroot"

    @property
    def drupal_settings(self) -> Path:
        return self.docroot / "sites" / "default" / "settings.php"

    @property
    def drush_settings(self) -> Path:
        return self.src_dir / "drush.settings.php"

    @property
    def wordpress_config(self) -> Path:
        return self.docroot / "wp-config.php"


def resolve_paths(home: Path, name: str, environment: str) -> LegacyPaths:
    """Working tree for (name, environment) under ``home``. No I/O."""
    return LegacyPaths(workdir=home / LOCALDEV_DIR / "legacy" / f"{name}-{environment}")


def container_matches(container_name: str, needle: str) -> bool:
    """Whether ``container_name`` belongs to the app whose base name is ``needle``.

    The needle may be followed by at most one service segment (plus a
    compose replica suffix): ``legacy-foo-prod`` matches
    ``legacy-foo-prod-web`` but not ``legacy-foobar-prod-web``,
    ``legacy-foo-production-web`` or ``legacy-foo-prod-stage-web``
    (app ``foo-prod``, environment ``stage``).
    """
    pattern = rf"(?:^|[^A-Za-z0-9]){re.escape(needle)}(?:[-_][A-Za-z0-9]+(?:_\d+)?)?$"
    return re.search(pattern, container_name.lstrip("/")) is not None


# ── Lifecycle ───────────────────────────────────────────────────────


class LegacyAppLifecycle:
    """Stateful orchestrator bound to one (name, environment) pair.

    Args:
        app: The record every stage reads and mutates in place.
        settings: Localdev settings (home, bucket, timeouts).
        config_store: Databag source.
        secret_store: Fallback source for object-store credentials.
        runtime: Container runtime and host command runner.
        object_store_factory: Builds an ObjectStore for the resolved
            credentials. Called once per ``fetch_resources``.
        cancel: Optional cancellation signal, checked before every
            blocking external call.
    """

    def __init__(
        self,
        app: LegacyApp,
        *,
        settings: LocaldevSettings | None = None,
        config_store: ConfigStore | None = None,
        secret_store: SecretStore | None = None,
        runtime: ContainerRuntime | None = None,
        object_store_factory: Callable[[AwsCredentials], ObjectStore] | None = None,
        cancel: threading.Event | None = None,
    ) -> None:
        self.app = app
        self.settings = settings or LocaldevSettings()
        self.cancel = cancel

        if config_store is None or secret_store is None:
            from localdev.adapters.secrets.vault import VaultConfigStore, VaultSecretStore

            config_store = config_store or VaultConfigStore(self.settings.databag_path)
            secret_store = secret_store or VaultSecretStore()
        if runtime is None:
            from localdev.adapters.containers.docker import DockerRuntime

            runtime = DockerRuntime(timeout=self.settings.command_timeout)
        if object_store_factory is None:
            from localdev.adapters.storage.s3 import S3ObjectStore

            timeout = self.settings.download_timeout
            object_store_factory = lambda creds: S3ObjectStore(creds, timeout=timeout)  # noqa: E731

        self.config_store = config_store
        self.secret_store = secret_store
        self.runtime = runtime
        self.object_store_factory = object_store_factory

        self._record: DatabagRecord | None = None

    def __repr__(self) -> str:
        return f"<LegacyAppLifecycle {self.app.name}-{self.app.environment}>"

    # ── Identity & layout ───────────────────────────────────────

    @property
    def paths(self) -> LegacyPaths:
        return self.resolve_paths()

    def resolve_paths(self) -> LegacyPaths:
        return resolve_paths(self.settings.home, self.app.name, self.app.environment)

    def compose_file_exists(self) -> bool:
        return self.paths.compose_file.is_file()

    def render_compose_yaml(self) -> str:
        """Compose definition for this app, from ``app.compose_template``."""
        app_type = self.app.app_type or AppType.UNKNOWN
        return render_template(self.app.compose_template, {
            "image": f"{self.settings.image_prefix}{app_type.short_name}",
            "name": self.app.container_name,
        })

    def prepare(self) -> LegacyPaths:
        """Create the working tree directories."""
        paths = self.paths
        for d in (paths.files_dir, paths.data_dir, paths.docroot):
            d.mkdir(parents=True, exist_ok=True)
        logger.debug("Prepared %s", paths.workdir)
        return paths

    def write_compose_file(self) -> Path:
        """Render and write docker-compose.yaml, detecting the type first if needed."""
        if self.app.app_type is None:
            self.set_type()
        path = self.paths.compose_file
        legacy_config.write_settings_file(path, self.render_compose_yaml())
        logger.info("Wrote compose file %s", path)
        return path

    # ── Databag ─────────────────────────────────────────────────

    def get_record(self) -> DatabagRecord:
        """Databag for this app, fetched once per lifecycle."""
        if self._record is None:
            self._checkpoint("databag lookup")
            self._record = self.config_store.get_record(self.app.name)
        return self._record

    def get_environment_record(self) -> EnvironmentRecord:
        return self.get_record().get_environment(self.app.environment)

    def databag_exists(self) -> bool:
        try:
            self.get_record()
        except ConfigNotFound:
            return False
        return True

    def get_repo_details(self) -> RepoDetails:
        env = self.get_environment_record()
        details = RepoDetails.from_url(env.repository, branch=env.branch)
        self.app.repo = env.repository
        self.app.branch = env.branch
        return details

    # ── Type detection ──────────────────────────────────────────

    def detect_type(self, path: Path | None = None) -> AppType:
        """Detect the framework of the unpacked tree at ``path`` (default: workdir)."""
        app_type, _ = detect_app_type(path or self.paths.workdir)
        return app_type

    def set_type(self) -> AppType:
        app_type, drupal8 = detect_app_type(self.paths.workdir)
        self.app.app_type = app_type
        self.app.drupal8 = drupal8
        logger.info("%s is a %s site", self.app.container_name, app_type.value)
        return app_type

    # ── Fetch ───────────────────────────────────────────────────

    def resolve_credentials(self, env: EnvironmentRecord) -> AwsCredentials:
        """Credentials from the environment record, else the shared secret."""
        access_key, secret_key = env.aws_access_key, env.aws_secret_key
        if not access_key:
            self._checkpoint("credential lookup")
            path = self.settings.aws_secret_path
            logger.debug("No AWS keys in databag; reading %s", path)
            data = self.secret_store.read_secret(path)
            access_key = str(data.get("accesskey") or "")
            secret_key = str(data.get("secretkey") or "")

        if not access_key or not secret_key:
            raise CredentialsUnavailable(
                f"No AWS credentials for {self.app.name}/{self.app.environment}"
            )
        return AwsCredentials(access_key, secret_key, region=self.settings.aws_region)

    def archive_prefix(self) -> str:
        return f"{self.app.name}/{self.app.environment}-{self.app.name}-"

    def fetch_resources(self) -> Path:
        """Download the current archive into the working directory.

        Returns:
            Local path of the archive (also stored on ``app.archive_path``).
        """
        env = self.get_environment_record()
        bucket = env.aws_bucket or self.settings.default_bucket
        store = self.object_store_factory(self.resolve_credentials(env))
        prefix = self.archive_prefix()

        self._checkpoint("archive listing")
        archives = store.list_objects(bucket, prefix)
        archive = select_current_archive(archives)
        if archive is None:
            raise NoArchiveAvailable(f"No archives found under s3://{bucket}/{prefix}")

        dest = self.paths.workdir / archive.filename
        self._checkpoint("archive download")
        logger.info("Downloading s3://%s/%s", bucket, archive.key)
        num_bytes = store.download(bucket, archive.key, dest)

        logger.info("Downloaded file %s %d bytes", dest, num_bytes)
        self.app.archive_path = dest
        return dest

    # ── Unpack ──────────────────────────────────────────────────

    def unpack_resources(self) -> None:
        """Extract the archive into the working tree.

        The archive is deleted only after every step succeeded; on
        failure it stays on disk together with any partial extraction.
        """
        archive = self.app.archive_path
        if archive is None or not archive.is_file():
            raise ExtractionFailed(f"No downloaded archive to unpack for {self.app.container_name}")

        paths = self.paths
        paths.files_dir.mkdir(parents=True, exist_ok=True)

        self._checkpoint("archive extraction")
        r = self.runtime.run_host_command("tar", [
            "-xzvf", str(archive),
            "-C", str(paths.files_dir),
            *_PROTECTED_TAR_EXCLUDES,
        ])
        if not r.ok:
            raise ExtractionFailed(f"Could not extract {archive}", output=r.output)

        dump = paths.files_dir / f"{self.app.name}.sql"
        if not dump.is_file():
            raise ExtractionFailed(f"Archive {archive.name} did not contain {dump.name}")
        paths.data_dir.mkdir(parents=True, exist_ok=True)
        try:
            shutil.move(str(dump), str(paths.data_dir / dump.name))
        except OSError as e:
            raise ExtractionFailed(f"Could not move {dump} to {paths.data_dir}: {e}") from e

        paths.docroot.parent.mkdir(parents=True, exist_ok=True)
        self._checkpoint("docroot sync")
        r = self.runtime.run_host_command("rsync", [
            "-avz", "--recursive",
            "--exclude=profiles",
            *_PROTECTED_RSYNC_EXCLUDES,
            f"{paths.files_dir / 'docroot'}/",
            str(paths.docroot),
        ])
        if not r.ok:
            raise SyncFailed(f"Could not sync docroot into {paths.docroot}", output=r.output)

        archive.unlink(missing_ok=True)
        self.app.archive_path = None
        logger.info("Unpacked %s into %s", archive.name, paths.workdir)

    # ── Configure ───────────────────────────────────────────────

    def generate_config(self) -> list[Path]:
        """Write the framework settings file(s) for the running stack.

        Returns:
            Paths of the files written.
        """
        if self.app.app_type is None:
            self.set_type()
        if self.app.app_type is AppType.UNKNOWN:
            logger.warning("No config template for %s (unknown app type)", self.app.container_name)
            raise UnsupportedAppType(
                f"Cannot generate config for {self.app.container_name}: unknown app type"
            )

        env = self.get_environment_record()

        self._checkpoint("port resolution")
        self.app.web_port = self.runtime.resolve_published_port(f"{self.app.container_name}-web")
        self.app.db_port = self.runtime.resolve_published_port(f"{self.app.container_name}-db")
        deploy_url = f"http://localhost:{self.app.web_port}"
        paths = self.paths

        if self.app.app_type is AppType.DRUPAL:
            logger.info("Drupal site. Creating settings.php file.")
            drupal = legacy_config.DrupalSettings(
                database_host="db",
                hash_salt=env.hash_salt or legacy_config.random_string(),
                deploy_url=deploy_url,
                is_drupal8=self.app.drupal8,
            )
            legacy_config.write_drupal_config(drupal, paths.drupal_settings)

            drush = legacy_config.DrushSettings(database_port=self.app.db_port)
            legacy_config.write_drush_config(drush, paths.drush_settings)
            return [paths.drupal_settings, paths.drush_settings]

        logger.info("WordPress site. Creating wp-config.php file.")
        wordpress = legacy_config.WordpressSettings(
            database_host="db",
            deploy_url=deploy_url,
            auth_key=env.auth_key,
            auth_salt=env.auth_salt,
            logged_in_key=env.logged_in_key,
            logged_in_salt=env.logged_in_salt,
            nonce_key=env.nonce_key,
            nonce_salt=env.nonce_salt,
            secure_auth_key=env.secure_auth_key,
            secure_auth_salt=env.secure_auth_salt,
        )
        legacy_config.write_wordpress_config(wordpress, paths.wordpress_config)
        return [paths.wordpress_config]

    # ── Containers ──────────────────────────────────────────────

    def start(self) -> None:
        """Pull images, then bring the stack up detached."""
        compose_file = self._require_compose_file()
        for args in (("pull",), ("up", "-d")):
            self._checkpoint(f"compose {args[0]}")
            r = self.runtime.compose(compose_file, *args)
            if not r.ok:
                raise ComposeCommandFailed(
                    f"docker compose {' '.join(args)} failed for {self.app.container_name}",
                    output=r.output,
                )
        logger.info("Started %s", self.app.container_name)

    def stop(self) -> None:
        """Stop the stack without removing containers or volumes."""
        compose_file = self._require_compose_file()
        self._checkpoint("compose stop")
        r = self.runtime.compose(compose_file, "stop")
        if not r.ok:
            raise ComposeCommandFailed(
                f"docker compose stop failed for {self.app.container_name}", output=r.output,
            )
        logger.info("Stopped %s", self.app.container_name)

    def teardown_and_cleanup(self) -> list[str]:
        """Bring the stack down; fall back to ``cleanup`` if compose can't.

        Returns:
            Names of containers removed by the fallback (empty when
            compose handled it).
        """
        compose_file = self.paths.compose_file
        if compose_file.is_file():
            self._checkpoint("compose down")
            r = self.runtime.compose(compose_file, "down")
            if r.ok:
                logger.info("Removed %s", self.app.container_name)
                return []
            logger.warning("compose down failed for %s, cleaning up containers: %s",
                           self.app.container_name, r.error)
        else:
            logger.info("No compose file at %s, cleaning up containers", compose_file)
        return self.cleanup()

    def cleanup(self) -> list[str]:
        """Force stop and remove this app's running containers.

        Works without a compose file. Zero matching containers is
        success.

        Returns:
            Names of the removed containers.
        """
        self._checkpoint("container listing")
        try:
            containers = self.runtime.list_containers()
        except RuntimeError as e:
            raise ContainerCleanupFailed(f"Could not list containers: {e}") from e

        needle = self.app.container_name
        matched = [c for c in containers if _belongs_to(c, needle)]
        logger.debug("Cleanup %s: %d of %d containers match", needle, len(matched), len(containers))

        removed = []
        for container in matched:
            for action, call in (("stop", self.runtime.stop_container),
                                 ("rm", self.runtime.remove_container)):
                self._checkpoint(f"container {action}")
                r = call(container.id)
                if not r.ok:
                    raise ContainerCleanupFailed(
                        f"Could not {action} container {container.name}", output=r.output,
                    )
            removed.append(container.name)
        return removed

    def wait_until_ready(self) -> str:
        """Poll the web container until it answers 200.

        Returns:
            The site URL.
        """
        if self.app.web_port is None:
            self._checkpoint("port resolution")
            self.app.web_port = self.runtime.resolve_published_port(f"{self.app.container_name}-web")

        url = f"http://localhost:{self.app.web_port}"
        ensure_http_status(
            url,
            retries=self.settings.ready_retries,
            expected_status=200,
            interval=self.settings.ready_interval,
            timeout=self.settings.http_timeout,
            cancel=self.cancel,
        )
        return url

    # ── Helpers ─────────────────────────────────────────────────

    def _require_compose_file(self) -> Path:
        compose_file = self.paths.compose_file
        if not compose_file.is_file():
            raise ComposeCommandFailed(f"Compose file {compose_file} does not exist")
        return compose_file

    def _checkpoint(self, stage: str) -> None:
        if self.cancel is not None and self.cancel.is_set():
            raise OperationCancelled(f"Cancelled before {stage} for {self.app.container_name}")


def _belongs_to(container: ContainerInfo, needle: str) -> bool:
    return any(container_matches(name, needle) for name in container.names)

"""
CLI commands for legacy apps.

Thin wrappers over ``localdev.core.services.legacy_lifecycle``.
"""

from __future__ import annotations

import json
import signal
import sys
import threading

import click

from localdev.core.errors import LegacyAppError


def _lifecycle(ctx: click.Context, name: str, environment: str):
    """Build a lifecycle for (name, environment) from the CLI context."""
    from localdev.core.config.loader import load_settings
    from localdev.core.models.legacy import LegacyApp
    from localdev.core.services.legacy_lifecycle import LegacyAppLifecycle

    settings = load_settings(ctx.obj.get("config_path"))
    cancel = threading.Event()
    if threading.current_thread() is threading.main_thread():
        signal.signal(signal.SIGTERM, lambda *_: cancel.set())

    try:
        app = LegacyApp(name=name, environment=environment)
    except ValueError as e:
        raise click.BadParameter(str(e)) from e

    return LegacyAppLifecycle(
        app,
        settings=settings,
        cancel=cancel,
    )


def _fail(err: LegacyAppError) -> None:
    click.secho(f"❌ {err}", fg="red", err=True)
    sys.exit(1)


def _step(ctx: click.Context, message: str) -> None:
    if not ctx.obj.get("quiet"):
        click.secho(f"   {message}", fg="cyan")


@click.group()
def legacy() -> None:
    """Legacy sites — add, start, stop, rm, config, list."""


# ── Add ─────────────────────────────────────────────────────────


@legacy.command()
@click.argument("name")
@click.argument("environment")
@click.pass_context
def add(ctx: click.Context, name: str, environment: str) -> None:
    """Fetch, unpack, configure and start NAME in ENVIRONMENT."""
    try:
        lc = _lifecycle(ctx, name, environment)
        if not lc.databag_exists():
            click.secho(f"❌ No databag found for {name}", fg="red", err=True)
            sys.exit(1)

        lc.prepare()
        _step(ctx, "Downloading archive…")
        lc.fetch_resources()
        _step(ctx, "Unpacking…")
        lc.unpack_resources()
        lc.set_type()
        lc.write_compose_file()
        _step(ctx, "Starting containers…")
        lc.start()
        _step(ctx, "Writing settings…")
        lc.generate_config()
        _step(ctx, "Waiting for the site…")
        url = lc.wait_until_ready()
    except LegacyAppError as e:
        _fail(e)
        return

    click.secho(f"✅ {lc.app.container_name} is running at {url}", fg="green")


# ── Start / Stop / Remove ───────────────────────────────────────


@legacy.command()
@click.argument("name")
@click.argument("environment")
@click.pass_context
def start(ctx: click.Context, name: str, environment: str) -> None:
    """Start an existing legacy site."""
    try:
        lc = _lifecycle(ctx, name, environment)
        lc.start()
        url = lc.wait_until_ready()
    except LegacyAppError as e:
        _fail(e)
        return
    click.secho(f"✅ {lc.app.container_name} is running at {url}", fg="green")


@legacy.command()
@click.argument("name")
@click.argument("environment")
@click.pass_context
def stop(ctx: click.Context, name: str, environment: str) -> None:
    """Stop a legacy site's containers (keeps them and their data)."""
    try:
        lc = _lifecycle(ctx, name, environment)
        lc.stop()
    except LegacyAppError as e:
        _fail(e)
        return
    click.secho(f"⏹  {lc.app.container_name} stopped", fg="green")


@legacy.command("rm")
@click.argument("name")
@click.argument("environment")
@click.pass_context
def remove(ctx: click.Context, name: str, environment: str) -> None:
    """Remove a legacy site's containers, even without a compose file."""
    try:
        lc = _lifecycle(ctx, name, environment)
        removed = lc.teardown_and_cleanup()
    except LegacyAppError as e:
        _fail(e)
        return
    for container in removed:
        _step(ctx, f"removed {container}")
    click.secho(f"🗑  {lc.app.container_name} removed", fg="green")


# ── Config ──────────────────────────────────────────────────────


@legacy.command()
@click.argument("name")
@click.argument("environment")
@click.pass_context
def config(ctx: click.Context, name: str, environment: str) -> None:
    """Regenerate settings files for a running legacy site."""
    try:
        lc = _lifecycle(ctx, name, environment)
        written = lc.generate_config()
    except LegacyAppError as e:
        _fail(e)
        return
    for path in written:
        click.echo(f"   📄 {path}")


# ── List ────────────────────────────────────────────────────────


@legacy.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def list_(ctx: click.Context, as_json: bool) -> None:
    """List running legacy containers."""
    from localdev.adapters.containers.docker import DockerRuntime

    try:
        containers = DockerRuntime(timeout=30).list_containers()
    except RuntimeError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        sys.exit(1)

    rows = [
        {"id": c.id[:12], "name": c.name}
        for c in containers
        if c.name.startswith("legacy-")
    ]

    if as_json:
        click.echo(json.dumps({"containers": rows}, indent=2))
        return

    if not rows:
        click.secho("No legacy containers running", fg="yellow")
        return
    for row in rows:
        click.echo(f"   {row['id']}  {row['name']}")

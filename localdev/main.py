"""
localdev — CLI entrypoint.

Usage:
    localdev --help
    localdev legacy add mysite prod
    localdev legacy rm mysite prod
"""

from __future__ import annotations

import os
from pathlib import Path

import click

from localdev import __version__
from localdev.core.observability.logging_config import resolve_level, setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="localdev")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to localdev.yml (default: ~/.localdev/localdev.yml).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """localdev — run legacy CMS sites on your machine."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    setup_logging(
        level=resolve_level(debug=debug, verbose=verbose, quiet=quiet),
        log_file=os.environ.get("LOCALDEV_LOG_FILE"),
        log_file_level=os.environ.get("LOCALDEV_LOG_FILE_LEVEL"),
    )


# ── Register sub-groups ──────────────────────────────────────────────

from localdev.ui.cli.legacy import legacy  # noqa: E402

cli.add_command(legacy)


if __name__ == "__main__":
    cli()

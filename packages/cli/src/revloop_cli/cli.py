"""CLI entry point for revloop.

Commands:
  request   — run a review round on the working-tree changes
  history   — list recent review sessions
  show      — print one review session as JSON
  complete  — move a review session to a final status
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from revloop_cli.commands.complete import complete_cmd
from revloop_cli.commands.history import history_cmd, show_cmd
from revloop_cli.commands.request import request_cmd

_LOG_FILE_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(level: str, log_file: str | None = None) -> None:
    """Send log records to stderr through rich and, optionally, to a file.

    stdout is kept free of log output so `show` and `request --json` can be
    piped into other tools.
    """
    handlers: list[logging.Handler] = [
        RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=True),
    ]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_LOG_FILE_FORMAT))
        handlers.append(file_handler)
    logging.basicConfig(level=level.upper(), format="%(message)s", handlers=handlers, force=True)


def _build_store(config: dict):
    """Instantiate the file store at the configured storage root.

    This factory lives in cli.py so neither revloop_core nor revloop_store
    know about the CLI config format.
    """
    from revloop_core.config import resolve_storage_root
    from revloop_store.file import FileStore

    return FileStore(resolve_storage_root(config))


@click.group()
@click.version_option(
    version=importlib.metadata.version("revloop"),
    prog_name="revloop",
)
@click.option(
    "--config",
    "config_path",
    default=".revloop.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="REVLOOP_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output, including raw reviewer responses.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """Multi-round AI code review with a persistent review history."""
    from revloop_core.config import load_config

    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except ValueError as e:
        raise click.UsageError(str(e))

    configure_logging("DEBUG" if verbose else config.get("log_level") or "WARNING", config.get("log_file"))

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.call_on_close(store.close)


main.add_command(request_cmd)
main.add_command(history_cmd)
main.add_command(show_cmd)
main.add_command(complete_cmd)

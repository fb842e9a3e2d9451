"""Shared utilities for CLI commands"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import typer
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

console = Console()


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the anytemplate CLI.

    Log levels:
    - Normal: Only warnings/errors shown
    - Verbose (-v): INFO level
    - Debug (ANYTEMPLATE_DEBUG=1): DEBUG level - shows backend loading,
      template compilation and component dispatch
    """
    debug = bool(os.environ.get("ANYTEMPLATE_DEBUG"))
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler = RichHandler(
        console=console,
        show_time=verbose,
        show_path=debug,
        rich_tracebacks=True,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))

    logger = logging.getLogger("anytemplate")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False


def fail(message: str) -> typer.Exit:
    """Print an error and return the Exit to raise."""
    console.print(f"[red]Error:[/red] {escape(message)}")
    return typer.Exit(1)


def parse_assignments(assignments: list[str] | None) -> dict[str, str]:
    """Parse repeated KEY=VALUE options into a dict."""
    result: dict[str, str] = {}
    for item in assignments or []:
        key, sep, value = item.partition("=")
        if not sep or not key:
            raise fail(f"Expected KEY=VALUE, got {item!r}")
        result[key] = value
    return result


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    """Load a YAML file that must hold a mapping."""
    if not path.exists():
        raise fail(f"File not found: {path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise fail(f"{path} must contain a mapping")
    return data

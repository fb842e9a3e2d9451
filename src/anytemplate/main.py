"""AnyTemplate CLI Main Entry Point

Usage:
    anytemplate backends [--strict]          # List backends and check engines
    anytemplate render page -I templates     # Render templates/page.html
    anytemplate render page -t Jinja --var title=Home
    anytemplate render '$greeting, $name' --string --var greeting=Hi --var name=Bob
    anytemplate -v render ...                # Verbose logging
    anytemplate --version
"""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import typer

from ._version import __version__
from .commands import backends_command, render_command
from .commands.utils import console, setup_logging

app = typer.Typer(
    help="Render templates through any supported engine.",
    no_args_is_help=True,
)


def version_callback(value: bool) -> None:
    if value:
        console.print(f"anytemplate {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Show INFO logs."),
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """AnyTemplate - one calling convention for several template engines."""
    setup_logging(verbose)


@app.command("backends")
def backends(
    strict: bool = typer.Option(
        False, "--strict", help="Exit with status 1 if any engine is missing."
    ),
) -> None:
    """List template backends and whether their engines are installed."""
    backends_command(strict=strict)


@app.command("render")
def render(
    template: str = typer.Argument(..., help="Template name, or template text with --string."),
    backend: Optional[str] = typer.Option(None, "-t", "--type", help="Backend to render with."),
    include_paths: Optional[List[str]] = typer.Option(
        None, "-I", "--include-path", help="Directory to search first (repeatable)."
    ),
    variables: Optional[List[str]] = typer.Option(
        None, "--var", help="Template variable as KEY=VALUE (repeatable)."
    ),
    vars_file: Optional[Path] = typer.Option(
        None, "--vars-file", help="YAML file with template variables."
    ),
    config_file: Optional[Path] = typer.Option(
        None, "-c", "--config", help="YAML template configuration."
    ),
    no_ext: bool = typer.Option(
        False, "--no-ext", help="Don't append the backend's template extension."
    ),
    literal: bool = typer.Option(
        False, "--string", help="Treat TEMPLATE as template text."
    ),
) -> None:
    """Render a template and print the result."""
    render_command(
        template,
        backend=backend,
        include_paths=include_paths,
        variables=variables,
        vars_file=vars_file,
        config_file=config_file,
        no_ext=no_ext,
        literal=literal,
    )


if __name__ == "__main__":
    app()

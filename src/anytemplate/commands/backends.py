"""Backends command - list registered backends and check their engines"""

from __future__ import annotations

import typer
from rich.markup import escape
from rich.table import Table

from anytemplate.exceptions import BackendError
from anytemplate.registry import default_registry

from .utils import console


def backends_command(strict: bool = False) -> None:
    """Show each backend's extension, driver keys and availability."""
    table = Table()
    table.add_column("Backend", style="cyan")
    table.add_column("Extension")
    table.add_column("Driver keys")
    table.add_column("Requires")
    table.add_column("Status")

    missing_any = False
    for name in default_registry.names():
        try:
            backend = default_registry.resolve(name)
        except BackendError as e:
            missing_any = True
            table.add_row(name, "-", "-", "-", f"[red]{escape(e.message)}[/red]")
            continue

        missing = backend.missing_modules()
        if missing:
            missing_any = True
            status = f"[red]missing {', '.join(missing)}[/red]"
        else:
            status = "[green]ok[/green]"

        table.add_row(
            name,
            backend.default_config()["template_extension"],
            ", ".join(sorted(backend.declared_config_keys())),
            ", ".join(backend.required_external_modules()),
            status,
        )

    console.print(table)

    if strict and missing_any:
        raise typer.Exit(1)

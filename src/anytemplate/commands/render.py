"""Render command - fill a template from the command line"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import typer

from anytemplate.app import WebApp
from anytemplate.dispatcher import TextRef
from anytemplate.exceptions import AnyTemplateError

from .utils import console, fail, load_yaml_mapping, parse_assignments

log = logging.getLogger(__name__)


def render_command(
    template: str,
    backend: Optional[str] = None,
    include_paths: Optional[list[str]] = None,
    variables: Optional[list[str]] = None,
    vars_file: Optional[Path] = None,
    config_file: Optional[Path] = None,
    no_ext: bool = False,
    literal: bool = False,
) -> None:
    """Render TEMPLATE (a filename, or template text with --string)."""
    params: dict[str, Any] = {}
    if vars_file is not None:
        params.update(load_yaml_mapping(vars_file))
    params.update(parse_assignments(variables))

    overrides: dict[str, Any] = {}
    if backend:
        overrides["type"] = backend
    if include_paths:
        overrides["add_include_paths"] = include_paths
    if no_ext:
        overrides["auto_add_template_extension"] = False

    app = WebApp()
    try:
        if config_file is not None:
            app.template().config_file(config_file)

        source = TextRef(template) if literal else template
        session = app.template().load(source, **overrides)
        log.info("Rendering %s with %s", session.filename or "<string>", session.backend_name)
        output = session.render(params)
    except (AnyTemplateError, FileNotFoundError) as e:
        raise fail(str(e))

    console.out(output, end="", highlight=False)

"""Jinja backend - expression-aware templates with Jinja2.

Embedded components are a global function under the embed tag name:

    {{ CGIAPP_embed('some_handler', param1, 'literal string2') }}

Arguments are ordinary Jinja expressions, so any variable, filter or
literal works. Undefined variables reach the handler as "".

Native configuration is passed to jinja2.Environment as keyword
arguments (autoescape, trim_blocks, undefined, extensions, ...). A
``loader`` given there replaces the include-path FileSystemLoader.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Mapping

from jinja2 import Environment, FileSystemLoader, Undefined

from anytemplate.backends.base import Backend
from anytemplate.config import DriverConfig

log = logging.getLogger(__name__)


class JinjaDriverConfig(DriverConfig):
    """Driver options for Jinja (defaults shared with DriverConfig)."""

    pass


class JinjaBackend(Backend):
    """ExpressionAware backend built on Jinja2."""

    name = "Jinja"
    DriverConfig = JinjaDriverConfig
    required_modules = ("jinja2", "markupsafe")

    def initialize(self) -> None:
        template_name = self.filename
        search_path = list(self.include_paths or ["."])
        if template_name is not None and Path(template_name).is_absolute():
            # FileSystemLoader only takes names relative to its search path
            search_path.insert(0, str(Path(template_name).parent))
            template_name = Path(template_name).name

        options: dict[str, Any] = {"keep_trailing_newline": True}
        options.update(self.native_config)
        options.setdefault("loader", FileSystemLoader(search_path))

        env = Environment(**options)
        self.embed = self.embed_callback()
        env.globals[self.embed_tag_name] = self.embed

        if self.source is not None:
            self.engine = env.from_string(self.source)
        else:
            self.engine = env.get_template(template_name)  # type: ignore[arg-type]

        log.debug("Loaded Jinja template %s", self.filename or "<string>")

    def associate_query(self, query: Mapping[str, Any]) -> None:
        # Template globals sit below render-time variables
        self.engine.globals.update(
            (key, value) for key, value in query.items() if key != self.embed_tag_name
        )

    def normalize_embed_arg(self, value: Any) -> Any:
        if isinstance(value, Undefined):
            return ""
        return value

    def render_template(self) -> str:
        data = dict(self._params)
        data[self.embed_tag_name] = self.embed
        return self.engine.render(data)

"""Mako backend - general purpose templates compiled to Python modules.

Embedded components are a render-time variable under the embed tag name:

    ${CGIAPP_embed('some_handler', param1, 'literal string2')}

Mako passes undefined names as UNDEFINED; they reach the handler as "".
Component output is Markup, so an ``h`` default filter leaves it intact.

Native configuration is passed to mako.lookup.TemplateLookup; templates
loaded from a string get the same template arguments as the lookup.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from mako.lookup import TemplateLookup
from mako.runtime import UNDEFINED
from mako.template import Template

from anytemplate.backends.base import Backend
from anytemplate.config import DriverConfig

log = logging.getLogger(__name__)


class MakoDriverConfig(DriverConfig):
    """Driver options for Mako."""

    template_extension: str = ".tmpl"


class MakoBackend(Backend):
    """GeneralPurposeCompiler backend built on Mako."""

    name = "Mako"
    DriverConfig = MakoDriverConfig
    required_modules = ("mako", "markupsafe")

    def initialize(self) -> None:
        uri = self.filename
        directories = list(self.include_paths or ["."])
        if uri is not None and Path(uri).is_absolute():
            directories.insert(0, str(Path(uri).parent))
            uri = Path(uri).name

        lookup = TemplateLookup(directories=directories, **self.native_config)

        if self.source is not None:
            self.engine = Template(text=self.source, lookup=lookup, **lookup.template_args)
        else:
            self.engine = lookup.get_template(uri)

        log.debug("Compiled Mako template %s", self.filename or "<string>")

    def normalize_embed_arg(self, value: Any) -> Any:
        if value is UNDEFINED:
            return ""
        return value

    def render_template(self) -> str:
        data = dict(self._params)
        data[self.embed_tag_name] = self.embed_callback()
        return self.engine.render_unicode(**data)

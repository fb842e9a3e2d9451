"""Chameleon backend - XML attribute templates (TAL) with Chameleon.

Embedded components are a render-time variable under the embed tag name:

    <span tal:replace="CGIAPP_embed('some_handler', param1, 'literal string2')">
        this text gets replaced by the output of some_handler
    </span>

Component output is Markup, so it is inserted as structure even without
the ``structure`` keyword. Arguments are Chameleon expressions; an
undefined name is a NameError raised by the engine itself.

Native configuration is passed to chameleon.PageTemplateLoader (file
templates) or chameleon.PageTemplate (string templates).
"""

from __future__ import annotations

import logging

from chameleon import PageTemplate, PageTemplateLoader

from anytemplate.backends.base import Backend
from anytemplate.config import DriverConfig

log = logging.getLogger(__name__)


class ChameleonDriverConfig(DriverConfig):
    """Driver options for Chameleon."""

    template_extension: str = ".xhtml"


class ChameleonBackend(Backend):
    """XMLAttributeBased backend built on Chameleon page templates."""

    name = "Chameleon"
    DriverConfig = ChameleonDriverConfig
    required_modules = ("chameleon", "markupsafe")

    def initialize(self) -> None:
        if self.source is not None:
            self.engine = PageTemplate(self.source, **self.native_config)
        else:
            loader = PageTemplateLoader(self.include_paths or ["."], **self.native_config)
            self.engine = loader.load(self.filename)

        log.debug("Loaded Chameleon template %s", self.filename or "<string>")

    def render_template(self) -> str:
        data = dict(self._params)
        data[self.embed_tag_name] = self.embed_callback()
        return self.engine.render(**data)

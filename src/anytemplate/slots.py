"""Named template configurations.

Each application instance owns one TemplateContext. The context maps slot
names (None for the default slot) to TemplateSlot objects, each holding
the configuration set by its last ``config()`` call:

    app.template().config(default_type="Jinja", include_paths="templates")
    app.template("mail").config(default_type="StringTemplate")

    app.template().fill("page", {"title": "Hello"})
    app.template("mail").load("welcome").render({"user": name})

Nothing here is shared between application instances.
"""

from __future__ import annotations

import logging
import os
import weakref
from pathlib import Path
from typing import TYPE_CHECKING, Any, Mapping

from anytemplate.config import ConfigStore, load_config_file
from anytemplate.dispatcher import TextRef
from anytemplate.exceptions import DetachedSessionError
from anytemplate.registry import BackendRegistry, default_registry
from anytemplate.session import RenderSession

if TYPE_CHECKING:
    from anytemplate.app import TemplateHost

log = logging.getLogger(__name__)


class TemplateSlot:
    """One named (or the default) template configuration."""

    def __init__(self, context: TemplateContext, name: str | None = None):
        self.context = context
        self.name = name
        self.base_config: ConfigStore | None = None

    def __repr__(self) -> str:
        return f"TemplateSlot(name={self.name!r})"

    def _default_options(self) -> dict[str, Any]:
        return {"callers_package": type(self.context.webapp).__module__}

    def config(self, options: Mapping[str, Any] | None = None, /, **kwargs: Any) -> None:
        """Replace this slot's configuration.

        The previous configuration is discarded, not merged. If the new
        options are invalid the previous configuration stays in place.
        callers_package defaults to the module of the application class;
        a bag may set it explicitly.

        Example:
            app.template().config(
                default_type="Jinja",
                include_paths=["templates"],
                Jinja={"template_extension": ".j2", "autoescape": True},
            )
        """
        bag = self._default_options()
        bag.update(options or {})
        bag.update(kwargs)

        self.base_config = ConfigStore.from_options(bag, self.context.registry)
        log.debug(
            "Configured template slot %s (type=%s)",
            self.name or "default",
            self.base_config.plugin().backend_name,
        )

    def config_file(self, path: Path | str) -> None:
        """Replace this slot's configuration from a YAML file."""
        self.config(load_config_file(path))

    def _base(self) -> ConfigStore:
        if self.base_config is None:
            self.base_config = ConfigStore.from_options(
                self._default_options(), self.context.registry
            )
        return self.base_config

    def load(
        self,
        source: str | os.PathLike[str] | TextRef | Mapping[str, Any] | None = None,
        /,
        **options: Any,
    ) -> RenderSession:
        """Create a new RenderSession from this slot.

            load()                   -> filename from the running handler
            load("page")             -> file "page" (+ extension)
            load(TextRef("$x"))      -> literal template text
            load({"file": "page", "type": "Jinja"})
            load(file="page", add_include_paths="..", Jinja={...})

        Options override the slot configuration for this session only.
        """
        overrides: dict[str, Any] = {}
        if isinstance(source, Mapping):
            overrides.update(source)
        elif isinstance(source, TextRef):
            overrides["string"] = source.text
        elif source is not None:
            overrides["file"] = os.fspath(source)
        overrides.update(options)

        config = self._base().merged(overrides, self.context.registry)
        return RenderSession(
            config=config,
            registry=self.context.registry,
            webapp=self.context.webapp,
            slot_name=self.name,
        )

    def fill(
        self,
        file: str | os.PathLike[str] | TextRef | Mapping[str, Any] | None = None,
        params: Mapping[str, Any] | None = None,
    ) -> str:
        """Load, set variables and render in one step.

            fill("page", {"title": "Hi"})
            fill({"title": "Hi"})          -> filename from the running handler
        """
        if params is None and isinstance(file, Mapping):
            file, params = None, file

        session = self.load() if file is None else self.load(file)
        return session.render(params or {})

    process = fill


class TemplateContext:
    """Per-application table of template slots."""

    def __init__(self, webapp: TemplateHost, registry: BackendRegistry | None = None):
        self._webapp = weakref.ref(webapp)
        self.registry = registry or default_registry
        self._slots: dict[str | None, TemplateSlot] = {}

    @property
    def webapp(self) -> TemplateHost:
        webapp = self._webapp()
        if webapp is None:
            raise DetachedSessionError()
        return webapp

    def template(self, name: str | None = None) -> TemplateSlot:
        """Get the named slot, creating it on first access."""
        slot = self._slots.get(name)
        if slot is None:
            slot = TemplateSlot(self, name)
            self._slots[name] = slot
        return slot

    __call__ = template

    def slot_names(self) -> list[str | None]:
        return list(self._slots)

"""Render sessions.

A RenderSession is what ``load()`` hands back: one merged configuration,
one backend instance with its compiled template, and that backend's
variables. Every load creates a new session; sessions are never reused.
"""

from __future__ import annotations

import logging
import weakref
from typing import TYPE_CHECKING, Any, Mapping

from anytemplate.config import ConfigStore, DriverConfig, PluginConfig
from anytemplate.exceptions import DetachedSessionError, MissingSourceError

if TYPE_CHECKING:
    from anytemplate.app import TemplateHost
    from anytemplate.backends.base import Backend
    from anytemplate.registry import BackendRegistry

log = logging.getLogger(__name__)


def guess_template_filename(
    plugin: PluginConfig,
    driver: DriverConfig,
    handler_name: str | None,
    slot_name: str | None = None,
) -> str:
    """Work out the template filename when no literal source is given.

    Uses the ``file`` option if present, else the name of the handler the
    application is currently running. With auto_add_template_extension on,
    the backend's template_extension is appended.

    Raises:
        MissingSourceError: If there is neither a file nor a running handler.
    """
    if plugin.file is not None:
        filename = plugin.file
    elif handler_name:
        filename = handler_name
    else:
        raise MissingSourceError(slot_name)

    if plugin.auto_add_template_extension:
        filename += driver.template_extension
    return filename


class RenderSession:
    """A loaded template ready for variables and rendering."""

    def __init__(
        self,
        *,
        config: ConfigStore,
        registry: BackendRegistry,
        webapp: TemplateHost,
        slot_name: str | None = None,
    ):
        """Resolve the backend and compile the template.

        Args:
            config: Merged configuration for this load (not copied).
            registry: Registry used to resolve the backend.
            webapp: Owning application; only a weak reference is kept.
            slot_name: Named configuration this session came from.
        """
        self.slot_name = slot_name
        self.config = config
        self._webapp = weakref.ref(webapp)

        self.plugin_config = config.plugin()
        self.backend_name = self.plugin_config.backend_name
        backend_class = registry.resolve(self.backend_name)
        driver_config = config.driver_options(self.backend_name, backend_class)

        self.include_paths = self.plugin_config.resolved_include_paths()
        self.source = self.plugin_config.string
        if self.source is not None:
            self.filename = None
        else:
            self.filename = guess_template_filename(
                self.plugin_config, driver_config, webapp.current_handler, slot_name
            )

        self.backend: Backend = backend_class(
            session=self,
            driver_config=driver_config,
            native_config=config.native_options(self.backend_name),
            include_paths=self.include_paths,
            filename=self.filename,
            source=self.source,
            webapp=webapp,
            dispatcher_class=self.plugin_config.dispatcher_class,
        )
        self.backend.initialize()

        log.debug(
            "Loaded %s template %s (slot=%s)",
            self.backend_name,
            self.filename or "<string>",
            slot_name or "default",
        )

    def __repr__(self) -> str:
        return (
            f"RenderSession(backend={self.backend_name!r}, "
            f"filename={self.filename!r}, slot={self.slot_name!r})"
        )

    @property
    def webapp(self) -> TemplateHost:
        """The owning application.

        Raises:
            DetachedSessionError: If the application has been collected.
        """
        webapp = self._webapp()
        if webapp is None:
            raise DetachedSessionError()
        return webapp

    @property
    def callers_package(self) -> str | None:
        return self.plugin_config.callers_package

    @property
    def driver_config(self) -> DriverConfig:
        return self.backend.driver_config

    @property
    def native_config(self) -> dict[str, Any]:
        return self.backend.native_config

    # Variables and rendering are the backend's

    def param(self, *args: Any, **kwargs: Any) -> Any:
        return self.backend.param(*args, **kwargs)

    def get_param_hash(self) -> dict[str, Any]:
        return self.backend.get_param_hash()

    @property
    def params(self) -> dict[str, Any]:
        return self.backend.params

    def clear_params(self) -> None:
        self.backend.clear_params()

    def render(self, params: Mapping[str, Any] | None = None) -> str:
        return self.backend.render(params)

    def output(self, params: Mapping[str, Any] | None = None) -> str:
        return self.backend.render(params)

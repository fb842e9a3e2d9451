"""AnyTemplate - one calling convention for several template engines.

Application code renders through StringTemplate, Jinja, Mako or Chameleon
the same way, and templates call back into the application to render
embedded components:

    from anytemplate import WebApp

    class App(WebApp):
        def setup(self):
            self.register_handlers(["page", "header"])
            self.template().config(default_type="Jinja", include_paths="templates")

        def page(self, containing=None):
            return self.template().fill({"title": "Home"})

        def header(self, containing, *args):
            return "<h1>Title</h1>"
"""

from anytemplate._version import __version__
from anytemplate.app import TemplateHost, WebApp
from anytemplate.backends.base import Backend
from anytemplate.config import ConfigStore, DriverConfig, PluginConfig, load_config_file
from anytemplate.dispatcher import ComponentDispatcher, TextRef
from anytemplate.exceptions import (
    AnyTemplateError,
    BackendError,
    BackendLoadError,
    ComponentError,
    DetachedSessionError,
    EmbedSyntaxError,
    HandlerNotCallableError,
    InvalidBackendNameError,
    InvalidConfigError,
    MissingSourceError,
    UnknownBackendError,
    UnknownHandlerError,
)
from anytemplate.registry import (
    BackendRegistry,
    default_registry,
    list_backends,
    register_backend,
    resolve_backend,
)
from anytemplate.session import RenderSession
from anytemplate.slots import TemplateContext, TemplateSlot

__all__ = [
    "__version__",
    # Host
    "TemplateHost",
    "WebApp",
    # Core
    "Backend",
    "BackendRegistry",
    "ComponentDispatcher",
    "ConfigStore",
    "DriverConfig",
    "PluginConfig",
    "RenderSession",
    "TemplateContext",
    "TemplateSlot",
    "TextRef",
    "default_registry",
    "list_backends",
    "load_config_file",
    "register_backend",
    "resolve_backend",
    # Errors
    "AnyTemplateError",
    "BackendError",
    "BackendLoadError",
    "ComponentError",
    "DetachedSessionError",
    "EmbedSyntaxError",
    "HandlerNotCallableError",
    "InvalidBackendNameError",
    "InvalidConfigError",
    "MissingSourceError",
    "UnknownBackendError",
    "UnknownHandlerError",
]

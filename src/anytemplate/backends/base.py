"""Backend Base

Abstract base class for all template backends.
"""

from __future__ import annotations

import importlib.util
import logging
import weakref
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, ClassVar, Mapping

from markupsafe import Markup

from anytemplate.config import DriverConfig
from anytemplate.dispatcher import ComponentDispatcher, TextRef
from anytemplate.exceptions import DetachedSessionError

if TYPE_CHECKING:
    from anytemplate.app import TemplateHost
    from anytemplate.session import RenderSession

log = logging.getLogger(__name__)


class Backend(ABC):
    """Abstract base class for backends.

    A Backend wraps one native templating engine:
    - Compiles the template from a file or literal source
    - Holds the template variables
    - Exposes embedded components to the template, natively or by emulation
    - Runs the application's pre/post render hooks around the engine

    Implementations:
    - StringTemplateBackend: string.Template, embed tags emulated
    - JinjaBackend: Jinja2, embed tag is a global function
    - MakoBackend: Mako, embed tag is a render-time variable
    - ChameleonBackend: Chameleon TAL, embed tag is a render-time variable
    """

    name: ClassVar[str] = ""
    DriverConfig: ClassVar[type[DriverConfig]] = DriverConfig
    required_modules: ClassVar[tuple[str, ...]] = ()
    supports_callbacks: ClassVar[bool] = True

    def __init__(
        self,
        *,
        session: RenderSession,
        driver_config: DriverConfig,
        native_config: dict[str, Any],
        include_paths: list[str],
        filename: str | None,
        source: str | None,
        webapp: TemplateHost,
        dispatcher_class: type[ComponentDispatcher] = ComponentDispatcher,
    ):
        """Initialize the backend.

        Args:
            session: The RenderSession that owns this backend.
            driver_config: Validated driver options.
            native_config: Options passed to the engine untouched.
            include_paths: Ordered search path for template files.
            filename: Template filename, when loading from a file.
            source: Literal template text, when loading from a string.
            webapp: Owning application; only a weak reference is kept.
            dispatcher_class: ComponentDispatcher (sub)class for embeds.
        """
        self.session = session
        self.driver_config = driver_config
        self.native_config = native_config
        self.include_paths = include_paths
        self.filename = filename
        self.source = source
        self._webapp = weakref.ref(webapp)
        self.dispatcher = dispatcher_class(webapp, session)
        self.engine: Any = None
        self._params: dict[str, Any] = {}

    # -------------------------------------------------------------------------
    # Backend declaration
    # -------------------------------------------------------------------------

    @classmethod
    def declared_config_keys(cls) -> set[str]:
        """Driver-config keys this backend consumes itself."""
        return set(cls.DriverConfig.model_fields)

    @classmethod
    def default_config(cls) -> dict[str, Any]:
        return cls.DriverConfig().model_dump()

    @classmethod
    def required_external_modules(cls) -> list[str]:
        return list(cls.required_modules)

    @classmethod
    def missing_modules(cls) -> list[str]:
        """Required modules that can't be imported in this interpreter."""
        missing = []
        for module in cls.required_modules:
            try:
                found = importlib.util.find_spec(module) is not None
            except ModuleNotFoundError:
                found = False
            if not found:
                missing.append(module)
        return missing

    # -------------------------------------------------------------------------
    # Engine hooks
    # -------------------------------------------------------------------------

    @abstractmethod
    def initialize(self) -> None:
        """Compile or load the template and register the embed hook."""
        pass

    @abstractmethod
    def render_template(self) -> str:
        """Run the engine over the current variables and return the text."""
        pass

    def associate_query(self, query: Mapping[str, Any]) -> None:
        """Make query parameters visible to the template.

        The default copies them into the variables without overwriting
        anything already set. Engines with their own layering override this.
        The embed tag name is never taken from the query.
        """
        for key, value in query.items():
            if key != self.embed_tag_name:
                self._params.setdefault(key, value)

    # -------------------------------------------------------------------------
    # Variables
    # -------------------------------------------------------------------------

    def param(self, *args: Any, **kwargs: Any) -> Any:
        """Get or set template variables.

            param()                  -> list of variable names
            param("name")            -> value, or None if unset
            param("name", value)     -> set one
            param({"a": 1, "b": 2})  -> set many
            param(a=1, b=2)          -> set many
        """
        if not args and not kwargs:
            return list(self._params)

        if len(args) == 1 and not kwargs and not isinstance(args[0], Mapping):
            return self._params.get(args[0])

        if len(args) == 1:
            if not isinstance(args[0], Mapping):
                raise TypeError("param() with keywords takes a mapping, not a name")
            self._params.update(args[0])
        elif len(args) == 2:
            self._params[args[0]] = args[1]
        elif args:
            raise TypeError("param() takes a name, a name and a value, or a mapping")

        self._params.update(kwargs)
        return None

    def get_param_hash(self) -> dict[str, Any]:
        """Copy of the template variables."""
        return dict(self._params)

    @property
    def params(self) -> dict[str, Any]:
        """The live variable dict; changes show up in the next render."""
        return self._params

    def clear_params(self) -> None:
        self._params.clear()

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    @property
    def webapp(self) -> TemplateHost:
        webapp = self._webapp()
        if webapp is None:
            raise DetachedSessionError()
        return webapp

    def render(self, params: Mapping[str, Any] | None = None) -> str:
        """Render the template.

        Order:
        1. Set any params passed in
        2. Associate query parameters (unless disabled)
        3. Call webapp.template_pre_process(backend), if defined
        4. Run the engine (embedded components dispatch here)
        5. Call webapp.template_post_process(backend, output_ref), if defined

        Returns:
            The finished text.
        """
        if params:
            self.param(params)

        webapp = self.webapp
        if self.driver_config.associate_query:
            self.associate_query(webapp.query or {})

        pre_process = getattr(webapp, "template_pre_process", None)
        if callable(pre_process):
            pre_process(self)

        output = TextRef(self.render_template())

        post_process = getattr(webapp, "template_post_process", None)
        if callable(post_process):
            post_process(self, output)

        return output.text

    def output(self, params: Mapping[str, Any] | None = None) -> str:
        return self.render(params)

    # -------------------------------------------------------------------------
    # Helpers for subclasses
    # -------------------------------------------------------------------------

    @property
    def embed_tag_name(self) -> str:
        return self.driver_config.embed_tag_name

    def normalize_embed_arg(self, value: Any) -> Any:
        """Map an engine's undefined-variable sentinel to ""."""
        return value

    def embed_callback(self) -> Callable[..., Markup]:
        """Function exposed to the engine under the embed tag name.

        The result is Markup so auto-escaping engines insert it verbatim.
        """

        def embed(handler_name: Any, *args: Any) -> Markup:
            handler_name = self.normalize_embed_arg(handler_name)
            args = tuple(self.normalize_embed_arg(arg) for arg in args)
            return Markup(self.dispatcher.dispatch(handler_name, *args))

        return embed

    def find_template_file(self) -> Path:
        """Locate self.filename on the include path.

        Absolute names are used as-is; otherwise each include path is tried
        in order, then the current directory.

        Raises:
            FileNotFoundError: If the template is nowhere on the path.
        """
        if self.filename is None:
            raise FileNotFoundError("No template filename to search for")

        path = Path(self.filename)
        if path.is_absolute():
            candidates = [path]
        else:
            candidates = [Path(p) / path for p in self.include_paths] + [path]

        for candidate in candidates:
            if candidate.is_file():
                log.debug("Found template %s at %s", self.filename, candidate)
                return candidate

        searched = ", ".join(self.include_paths) or "."
        raise FileNotFoundError(f"Template not found: {self.filename} (searched: {searched})")

"""Host application interface.

The template layer needs a few things from the application that owns it
(TemplateHost). WebApp is a small reference implementation: a handler
table, the request's query parameters and the name of the handler that
is currently running.

    class MyApp(WebApp):
        def setup(self):
            self.register_handlers(["page", "header"])
            self.template().config(default_type="Jinja", include_paths="templates")

        def page(self, containing=None):
            return self.template().fill({"title": "Home"})   # page.html

        def header(self, containing, *args):
            return "<h1>" + containing.param("title") + "</h1>"

    MyApp(query={"q": "x"}).run("page")
"""

from __future__ import annotations

import inspect
import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterable, Iterator, Mapping, Protocol, runtime_checkable

from anytemplate.dispatcher import coerce_text
from anytemplate.exceptions import HandlerNotCallableError, UnknownHandlerError
from anytemplate.registry import BackendRegistry
from anytemplate.slots import TemplateContext, TemplateSlot

log = logging.getLogger(__name__)

# (application, containing session or None, *args) -> text
Handler = Callable[..., Any]


@runtime_checkable
class TemplateHost(Protocol):
    """What the template layer consumes from its owning application.

    Optional hooks, called when defined:
        template_pre_process(backend)
        template_post_process(backend, output_ref)
    """

    query: Mapping[str, Any]

    @property
    def current_handler(self) -> str | None: ...

    def lookup_handler(self, name: str) -> Handler | None: ...

    def handler_callable(self, target: Any) -> bool: ...

    def handler_scope(self, name: str) -> Any: ...


def _check_handler_signature(name: str, target: Handler) -> None:
    """Handlers must accept (application, containing_session)."""
    try:
        signature = inspect.signature(target)
    except (TypeError, ValueError):
        return
    try:
        signature.bind(None, None)
    except TypeError as e:
        raise HandlerNotCallableError(name, target) from e


class WebApp:
    """Reference TemplateHost."""

    def __init__(
        self,
        query: Mapping[str, Any] | None = None,
        registry: BackendRegistry | None = None,
    ):
        """Initialize the application and run setup().

        Args:
            query: Request query parameters.
            registry: Backend registry; defaults to the shared one.
        """
        self.query: dict[str, Any] = dict(query or {})
        self.templates = TemplateContext(self, registry)
        self._handlers: dict[str, Handler] = {}
        self._handler_stack: list[str] = []
        self.setup()

    def setup(self) -> None:
        """Hook for subclasses: register handlers, configure templates."""
        pass

    def template(self, name: str | None = None) -> TemplateSlot:
        """Get a template slot (None for the default slot)."""
        return self.templates.template(name)

    # -------------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------------

    def register_handler(self, name: str, target: Handler | str | None = None) -> None:
        """Register a handler.

        Args:
            name: Name templates and run() use.
            target: Function taking (app, containing_session, *args), or the
                name of such a method. Defaults to the method called `name`.

        Raises:
            HandlerNotCallableError: If the target can't be called that way.
        """
        if target is None:
            target = name
        if isinstance(target, str):
            resolved = getattr(type(self), target, None)
        else:
            resolved = target

        if not callable(resolved):
            raise HandlerNotCallableError(name, target)
        _check_handler_signature(name, resolved)

        self._handlers[name] = resolved
        log.debug("Registered handler %s", name)

    def register_handlers(self, handlers: Mapping[str, Handler | str] | Iterable[str]) -> None:
        """Register several handlers at once."""
        if isinstance(handlers, Mapping):
            for name, target in handlers.items():
                self.register_handler(name, target)
        else:
            for name in handlers:
                self.register_handler(name)

    def handler_names(self) -> list[str]:
        return list(self._handlers)

    def lookup_handler(self, name: str) -> Handler | None:
        return self._handlers.get(name)

    def handler_callable(self, target: Any) -> bool:
        return callable(target)

    @property
    def current_handler(self) -> str | None:
        """Name of the innermost running handler."""
        if self._handler_stack:
            return self._handler_stack[-1]
        return None

    @contextmanager
    def handler_scope(self, name: str) -> Iterator[None]:
        """Mark `name` as the running handler for the duration."""
        self._handler_stack.append(name)
        try:
            yield
        finally:
            self._handler_stack.pop()

    def run(self, name: str, *args: Any) -> str:
        """Run a top-level handler and return its output as text.

        Raises:
            UnknownHandlerError: If no handler is registered under the name.
        """
        target = self.lookup_handler(name)
        if target is None:
            raise UnknownHandlerError(name)

        log.debug("Running handler %s", name)
        with self.handler_scope(name):
            return coerce_text(target(self, None, *args))

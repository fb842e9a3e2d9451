"""Embedded component dispatch.

A template calls back into its owning application with an embed tag, e.g.
``CGIAPP_embed('header', title, 'literal')``. Engines that support callable
template variables receive ``ComponentDispatcher.dispatch`` directly. For
engines without callbacks the backend scans the raw markup with
``find_embed_calls`` and splices results into the rendered text itself.

Argument rules for the emulated form:
  - quoted tokens ('...' or "...") and numbers are literal strings
  - barewords are looked up in the containing session's variables at call
    time; an unknown bareword resolves to "" rather than failing
"""

from __future__ import annotations

import logging
import re
import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Mapping

from anytemplate.exceptions import (
    DetachedSessionError,
    EmbedSyntaxError,
    HandlerNotCallableError,
    UnknownHandlerError,
)

if TYPE_CHECKING:
    from anytemplate.app import TemplateHost
    from anytemplate.session import RenderSession

log = logging.getLogger(__name__)


@dataclass
class TextRef:
    """Mutable holder for a piece of text.

    Handlers may return one instead of a plain string, and the
    post-render hook receives one so it can rewrite the output in place.
    """

    text: str = ""

    def __str__(self) -> str:
        return self.text


def coerce_text(value: Any) -> str:
    """Turn a handler result into plain text, dereferencing a TextRef."""
    if isinstance(value, TextRef):
        return value.text
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8")
    return str(value)


class ComponentDispatcher:
    """Runs application handlers on behalf of a containing template.

    Holds only a weak reference to the application, so a session that
    outlives its render call never keeps the application alive.
    """

    def __init__(self, webapp: TemplateHost, containing_session: RenderSession):
        self._webapp = weakref.ref(webapp)
        self.containing_session = containing_session

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

    def dispatch(self, handler_name: Any, *args: Any) -> str:
        """Run a handler and return its output as text."""
        return coerce_text(self.dispatch_raw(handler_name, *args))

    def dispatch_raw(self, handler_name: Any, *args: Any) -> Any:
        """Run a handler and return its result untouched.

        A handler returning a TextRef gets the TextRef back, not its text.

        Args:
            handler_name: Registered handler name.
            *args: Extra arguments passed after the containing session.

        Raises:
            UnknownHandlerError: If no handler is registered under the name.
            HandlerNotCallableError: If the registered target can't be called.
        """
        name = coerce_text(handler_name)
        webapp = self.webapp
        target = webapp.lookup_handler(name)
        if target is None:
            raise UnknownHandlerError(name)
        if not webapp.handler_callable(target):
            raise HandlerNotCallableError(name, target)

        log.debug("Dispatching embedded component %s with %d args", name, len(args))
        with webapp.handler_scope(name):
            return target(webapp, self.containing_session, *args)

    # Name used by engines that look up a method on an object
    embed = dispatch


# =============================================================================
# Tag emulation
# =============================================================================

_QUOTED_ARGS = r"""(?P<args>(?:'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*"|[^'")])*)"""

_TOKEN = re.compile(
    r"""
    \s*
    (?:
        '(?P<single>(?:[^'\\]|\\.)*)'
      | "(?P<double>(?:[^"\\]|\\.)*)"
      | (?P<number>-?\d+(?:\.\d+)?)
      | (?P<bareword>[A-Za-z_][A-Za-z0-9_]*)
    )
    \s*
    (?P<sep>,|\Z)
    """,
    re.VERBOSE | re.DOTALL,
)

_ESCAPE = re.compile(r"\\(.)", re.DOTALL)


@dataclass(frozen=True)
class EmbedArg:
    """One argument of an embed call."""

    value: str
    literal: bool

    def resolve(self, params: Mapping[str, Any]) -> Any:
        if self.literal:
            return self.value
        return params.get(self.value, "")


@dataclass(frozen=True)
class EmbedCall:
    """An embed tag found in raw markup."""

    text: str
    start: int
    end: int
    args: tuple[EmbedArg, ...]

    def resolve(self, params: Mapping[str, Any]) -> list[Any]:
        """Resolve arguments against the current template variables."""
        return [arg.resolve(params) for arg in self.args]


def parse_embed_args(text: str) -> tuple[EmbedArg, ...]:
    """Parse the text between the parentheses of an embed call.

    Example:
        >>> parse_embed_args("'header', title")
        (EmbedArg(value='header', literal=True), EmbedArg(value='title', literal=False))

    Raises:
        EmbedSyntaxError: On unbalanced quotes or malformed separators.
    """
    if not text.strip():
        return ()

    args: list[EmbedArg] = []
    pos = 0
    while True:
        match = _TOKEN.match(text, pos)
        if match is None:
            raise EmbedSyntaxError(text, f"unexpected input at offset {pos}")

        if match.group("single") is not None:
            args.append(EmbedArg(_ESCAPE.sub(r"\1", match.group("single")), True))
        elif match.group("double") is not None:
            args.append(EmbedArg(_ESCAPE.sub(r"\1", match.group("double")), True))
        elif match.group("number") is not None:
            args.append(EmbedArg(match.group("number"), True))
        else:
            args.append(EmbedArg(match.group("bareword"), False))

        pos = match.end()
        if match.group("sep") == "":
            return tuple(args)
        if pos >= len(text):
            raise EmbedSyntaxError(text, "trailing ','")


def embed_call_pattern(tag_name: str, prefix: str = "", suffix: str = "") -> re.Pattern[str]:
    """Build the regex matching ``prefix TAG(args) suffix``.

    prefix and suffix are regex fragments supplied by the backend for its
    own placeholder syntax.
    """
    return re.compile(
        prefix + r"\s*" + re.escape(tag_name) + r"\s*\(" + _QUOTED_ARGS + r"\)\s*" + suffix,
        re.DOTALL,
    )


def find_embed_calls(
    source: str,
    tag_name: str,
    prefix: str = "",
    suffix: str = "",
    is_escaped: Callable[[str, int], bool] | None = None,
) -> list[EmbedCall]:
    """Find every embed call in raw markup.

    is_escaped(source, start) lets the caller reject matches that its
    engine treats as literal text, e.g. after an escaped delimiter.

    Raises:
        EmbedSyntaxError: If a tag opens but its argument list never
            closes properly (unbalanced quotes, missing ')').
    """
    pattern = embed_call_pattern(tag_name, prefix, suffix)
    opener = re.compile(prefix + r"\s*" + re.escape(tag_name) + r"\s*\(")

    calls: list[EmbedCall] = []
    for match in pattern.finditer(source):
        if is_escaped is not None and is_escaped(source, match.start()):
            continue
        args = parse_embed_args(match.group("args"))
        if not args:
            raise EmbedSyntaxError(match.group(0), "missing handler name")
        calls.append(
            EmbedCall(
                text=match.group(0),
                start=match.start(),
                end=match.end(),
                args=args,
            )
        )

    starts = {call.start for call in calls}
    for match in opener.finditer(source):
        if is_escaped is not None and is_escaped(source, match.start()):
            continue
        if match.start() not in starts and not any(
            call.start < match.start() < call.end for call in calls
        ):
            snippet = source[match.start() : match.start() + 60]
            raise EmbedSyntaxError(snippet, "unbalanced quotes or missing ')'")

    return calls

"""StringTemplate backend - text substitution with string.Template.

string.Template only substitutes ``$name`` / ``${name}`` placeholders and
has no way to call functions, so embedded components are emulated:

    ${CGIAPP_embed('header', title, "literal")}

Before rendering, each embed tag in the raw markup is swapped for a marker
the engine leaves alone. After the engine runs, each marker is replaced by
the handler's output. Limitations of the emulation:
  - arguments are quoted literals, numbers or bare variable names only,
    no expressions
  - bare names resolve against the variables at render time; unknown
    names become ""
  - ``$${CGIAPP_embed(...)}`` (escaped delimiter) is left alone, while
    ``$$${CGIAPP_embed(...)}`` is a literal ``$`` followed by a tag

Native configuration sets class attributes on a string.Template subclass:
``delimiter``, ``idpattern``, ``braceidpattern`` and ``flags``.
"""

from __future__ import annotations

import logging
import re
import string
from typing import Any, Callable

from anytemplate.backends.base import Backend
from anytemplate.config import DriverConfig
from anytemplate.dispatcher import EmbedCall, find_embed_calls

log = logging.getLogger(__name__)

# Private-use code points: never produced by an engine or a delimiter
_MARKER = "\ue000{index}\ue001"
_MARKER_PATTERN = re.compile("\ue000(\\d+)\ue001")

_NATIVE_ATTRIBUTES = ("delimiter", "idpattern", "braceidpattern", "flags")


def _escape_checker(delimiter: str) -> Callable[[str, int], bool]:
    """Build the is_escaped check used by find_embed_calls.

    string.Template reads delimiters left to right in pairs, so a tag is
    literal text only when an odd run of delimiters precedes it.
    """
    size = len(delimiter)

    def is_escaped(source: str, start: int) -> bool:
        run = 0
        pos = start
        while pos >= size and source.startswith(delimiter, pos - size):
            run += 1
            pos -= size
        return run % 2 == 1

    return is_escaped


class StringTemplateDriverConfig(DriverConfig):
    """Driver options for StringTemplate.

    strict: if true a missing variable raises KeyError (substitute);
        if false the placeholder is left in place (safe_substitute).
    """

    strict: bool = True


class StringTemplateBackend(Backend):
    """TextSubstitution backend built on string.Template."""

    name = "StringTemplate"
    DriverConfig = StringTemplateDriverConfig
    required_modules = ("string",)
    supports_callbacks = False

    def __init__(self, **kwargs: Any):
        super().__init__(**kwargs)
        self.embed_calls: list[EmbedCall] = []

    def initialize(self) -> None:
        if self.source is not None:
            text = self.source
        else:
            text = self.find_template_file().read_text(encoding="utf-8")

        template_class = self._template_class()
        delimiter = template_class.delimiter
        self.embed_calls = find_embed_calls(
            text,
            self.embed_tag_name,
            prefix=re.escape(delimiter) + r"\{",
            suffix=r"\}",
            is_escaped=_escape_checker(delimiter),
        )

        # Swap tags for markers back to front so offsets stay valid
        for index in range(len(self.embed_calls) - 1, -1, -1):
            call = self.embed_calls[index]
            text = text[: call.start] + _MARKER.format(index=index) + text[call.end :]

        self.engine = template_class(text)
        log.debug(
            "Compiled string.Template %s with %d emulated embed tags",
            self.filename or "<string>",
            len(self.embed_calls),
        )

    def render_template(self) -> str:
        mapping = self._params
        if self.driver_config.strict:
            text = self.engine.substitute(mapping)
        else:
            text = self.engine.safe_substitute(mapping)

        if not self.embed_calls:
            return text

        outputs = [
            self.dispatcher.dispatch(*call.resolve(mapping)) for call in self.embed_calls
        ]
        return _MARKER_PATTERN.sub(lambda m: outputs[int(m.group(1))], text)

    def _template_class(self) -> type[string.Template]:
        attributes = {
            key: value
            for key, value in self.native_config.items()
            if key in _NATIVE_ATTRIBUTES
        }
        if not attributes:
            return string.Template
        return type("Template", (string.Template,), attributes)

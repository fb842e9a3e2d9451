"""Backend registry.

Backends are listed in a static table mapping an identifier to the module
and class that implement it:

    StringTemplate  -> anytemplate.backends.substitution:StringTemplateBackend
    Jinja           -> anytemplate.backends.expression:JinjaBackend
    Mako            -> anytemplate.backends.compiled:MakoBackend
    Chameleon       -> anytemplate.backends.attribute:ChameleonBackend

Only identifiers in the table can be loaded, and every identifier must
match ``[A-Za-z0-9_:]+`` before it is even looked up. A backend module is
imported on first use and the class is memoized; the first lookup is
serialized by a lock so concurrent callers load it once.
"""

from __future__ import annotations

import importlib
import logging
import re
import threading
from typing import Mapping

from anytemplate.backends.base import Backend
from anytemplate.exceptions import (
    BackendLoadError,
    InvalidBackendNameError,
    UnknownBackendError,
)

log = logging.getLogger(__name__)

BACKEND_NAME_PATTERN = re.compile(r"[A-Za-z0-9_:]+")

_BUILTIN_BACKENDS: dict[str, str] = {
    "StringTemplate": "anytemplate.backends.substitution:StringTemplateBackend",
    "Jinja": "anytemplate.backends.expression:JinjaBackend",
    "Mako": "anytemplate.backends.compiled:MakoBackend",
    "Chameleon": "anytemplate.backends.attribute:ChameleonBackend",
}


def validate_backend_name(name: object) -> str:
    """Return name if it is a legal backend identifier.

    Raises:
        InvalidBackendNameError: If it isn't.
    """
    if not isinstance(name, str) or not BACKEND_NAME_PATTERN.fullmatch(name):
        raise InvalidBackendNameError(str(name))
    return name


class BackendRegistry:
    """Resolves backend identifiers to Backend classes."""

    def __init__(self, table: Mapping[str, str | type[Backend]] | None = None):
        """Initialize the registry.

        Args:
            table: Identifier -> "module:Class" path or Backend class.
                Defaults to the built-in backends.
        """
        if table is None:
            table = _BUILTIN_BACKENDS
        for name in table:
            validate_backend_name(name)

        self._table: dict[str, str | type[Backend]] = dict(table)
        self._loaded: dict[str, type[Backend]] = {}
        self._lock = threading.Lock()

    def __contains__(self, name: object) -> bool:
        return name in self._table

    def names(self) -> list[str]:
        """Registered identifiers, sorted."""
        return sorted(self._table)

    def register(self, name: str, backend: str | type[Backend]) -> None:
        """Add or replace a backend.

        Args:
            name: Identifier used in configuration.
            backend: Backend subclass or "module:Class" path.
        """
        validate_backend_name(name)
        with self._lock:
            self._table[name] = backend
            self._loaded.pop(name, None)
        log.debug("Registered template backend %s", name)

    def resolve(self, name: str) -> type[Backend]:
        """Get the Backend class for an identifier.

        Raises:
            InvalidBackendNameError: If the name has illegal characters.
            UnknownBackendError: If the name isn't registered.
            BackendLoadError: If the implementation can't be imported or
                isn't a Backend.
        """
        validate_backend_name(name)

        backend = self._loaded.get(name)
        if backend is not None:
            return backend

        with self._lock:
            backend = self._loaded.get(name)
            if backend is None:
                if name not in self._table:
                    raise UnknownBackendError(name, list(self._table))
                backend = self._load(name, self._table[name])
                self._loaded[name] = backend
        return backend

    def _load(self, name: str, entry: str | type[Backend]) -> type[Backend]:
        if isinstance(entry, str):
            module_name, _, attr = entry.partition(":")
            try:
                module = importlib.import_module(module_name)
            except ImportError as e:
                raise BackendLoadError(name, str(e)) from e
            backend = getattr(module, attr, None)
        else:
            backend = entry

        if not (isinstance(backend, type) and issubclass(backend, Backend)):
            raise BackendLoadError(name, f"{entry!r} does not implement the Backend contract")

        log.debug("Loaded template backend %s -> %s", name, backend.__qualname__)
        return backend


default_registry = BackendRegistry()


def resolve_backend(name: str) -> type[Backend]:
    """Resolve a backend identifier with the default registry."""
    return default_registry.resolve(name)


def register_backend(name: str, backend: str | type[Backend]) -> None:
    """Register a backend with the default registry."""
    default_registry.register(name, backend)


def list_backends() -> list[str]:
    """List identifiers known to the default registry."""
    return default_registry.names()

"""AnyTemplate Exceptions

Custom exceptions for the template abstraction layer. Errors raised by the
native engines themselves are never wrapped in these.
"""

from __future__ import annotations


class AnyTemplateError(Exception):
    """Base exception for all AnyTemplate errors."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class InvalidConfigError(AnyTemplateError):
    """Raised when an option bag is malformed."""

    pass


class InvalidBackendNameError(AnyTemplateError):
    """Raised when a backend name contains disallowed characters."""

    def __init__(self, backend_name: str):
        self.backend_name = backend_name
        super().__init__(f"Illegal template backend name: {backend_name!r}")


class BackendError(AnyTemplateError):
    """Base class for backend resolution failures."""

    pass


class UnknownBackendError(BackendError):
    """Raised when a backend name is not registered."""

    def __init__(self, backend_name: str, available: list[str] | None = None):
        self.backend_name = backend_name
        self.available = sorted(available or [])
        message = f"Unknown template backend: {backend_name}"
        if self.available:
            message += f" (available: {', '.join(self.available)})"
        super().__init__(message)


class BackendLoadError(BackendError):
    """Raised when a registered backend cannot be loaded."""

    def __init__(self, backend_name: str, reason: str):
        self.backend_name = backend_name
        self.reason = reason
        super().__init__(f"Template backend {backend_name} could not be loaded: {reason}")


class MissingSourceError(AnyTemplateError):
    """Raised when neither a filename nor literal source can be determined."""

    def __init__(self, slot_name: str | None = None):
        self.slot_name = slot_name
        where = f"template slot {slot_name!r}" if slot_name else "the default template slot"
        super().__init__(
            f"No template source for {where}: pass 'file' or 'string', "
            "or load from inside a handler"
        )


class ComponentError(AnyTemplateError):
    """Base class for embedded component dispatch failures."""

    pass


class UnknownHandlerError(ComponentError):
    """Raised when an embedded component names an unregistered handler."""

    def __init__(self, handler_name: str):
        self.handler_name = handler_name
        super().__init__(
            f"Can't dispatch to handler [{handler_name}]: handler is not registered"
        )


class HandlerNotCallableError(ComponentError):
    """Raised when a registered handler target cannot be invoked."""

    def __init__(self, handler_name: str, target: object = None):
        self.handler_name = handler_name
        self.target = target
        super().__init__(
            f"Can't dispatch to handler [{handler_name}]: target {target!r} is not callable"
        )


class EmbedSyntaxError(ComponentError):
    """Raised when an emulated embed tag has a malformed argument list."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Malformed embedded component call {text!r}: {reason}")


class DetachedSessionError(AnyTemplateError):
    """Raised when the owning application of a session no longer exists."""

    def __init__(self) -> None:
        super().__init__("The application that owns this template session is gone")

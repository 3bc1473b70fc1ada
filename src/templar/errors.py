"""Templar error hierarchy.

Every failure is raised to the immediate caller. Nothing is retried and no
error leaves engine or cache state modified. Read errors from the filesystem
are not wrapped: they surface as the original ``OSError``.
"""

from collections.abc import Sequence


class TemplarError(Exception):
    """Base class for all Templar errors."""


class TemplateNotFoundError(TemplarError, FileNotFoundError):
    """Raised when a template path cannot be resolved to an existing file."""

    def __init__(self, path: str, search_paths: Sequence[str] = ()) -> None:
        self.path = path
        self.search_paths = tuple(search_paths)
        if self.search_paths:
            message = f"Template not found: {path} (searched: {', '.join(self.search_paths)})"
        else:
            message = f"Template not found: {path}"
        super().__init__(message)

    def __str__(self) -> str:
        return self.args[0]


class NoFactoryForPathError(TemplarError):
    """Raised when no factory is supplied and none is bound to the path's extension."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Can't find a factory that can parse specified path ({path})")


class TemplateParseError(TemplarError):
    """Raised when a template body is malformed.

    Attributes:
        name: Template name the text was being bound to ("" when anonymous)
        message: Diagnostic supplied by the render backend
        lineno: Line of the offending construct, when known
    """

    def __init__(self, name: str, message: str, lineno: int | None = None) -> None:
        self.name = name
        self.message = message
        self.lineno = lineno
        label = name or "<anonymous>"
        full_message = f"Failed to parse template {label}"
        if lineno is not None:
            full_message += f" (line {lineno})"
        full_message += f": {message}"
        super().__init__(full_message)


class TemplateRenderError(TemplarError):
    """Raised when the render backend fails while executing a template."""

    def __init__(self, name: str, message: str) -> None:
        self.name = name
        self.message = message
        super().__init__(f"Failed to render template {name or '<anonymous>'}: {message}")

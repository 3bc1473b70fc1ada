"""Rendered-output contract shared by every template backend."""

import io
from abc import ABC, abstractmethod
from typing import Any, TextIO


def render_to_string(template: "Template", data: Any = None) -> str:
    """Render a template into an in-memory buffer and return its contents.

    Args:
        template: Template to render
        data: Input data passed through to ``render_to``

    Returns:
        Rendered text
    """
    buffer = io.StringIO()
    template.render_to(buffer, data)
    return buffer.getvalue()


class Template(ABC):
    """A compiled template that can be rendered any number of times.

    Templates are immutable once constructed and hold no reference back to
    the engine that produced them, so rendering never takes the engine lock.
    """

    @abstractmethod
    def render_to(self, writer: TextIO, data: Any = None) -> None:
        """Render the template into ``writer``.

        Args:
            writer: Text stream receiving the output
            data: Input data for the template
        """

    def render(self, data: Any = None) -> str:
        """Render the template and return the output as a string."""
        return render_to_string(self, data)


class StringTemplate(Template):
    """A constant template: renders its text verbatim and ignores data."""

    def __init__(self, text: str) -> None:
        self._text = text

    @property
    def text(self) -> str:
        return self._text

    def render(self, data: Any = None) -> str:
        return self._text

    def render_to(self, writer: TextIO, data: Any = None) -> None:
        writer.write(self._text)

    def __repr__(self) -> str:
        return f"StringTemplate({self._text!r})"

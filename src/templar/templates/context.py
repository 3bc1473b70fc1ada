"""Parse contexts: the function set made available to a template at parse time."""

from collections.abc import Callable, Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class TemplateParseContext(Protocol):
    """Carries the registered functions into a factory parse call."""

    def funcs(self) -> dict[str, Callable[..., Any]]:
        """Return the name -> callable mapping visible inside the template."""
        ...


class FunctionContext:
    """Mapping-backed parse context.

    The functions are copied on construction, so registrations made after
    the context was created never reach templates parsed with it.
    """

    def __init__(self, funcs: Mapping[str, Callable[..., Any]] | None = None) -> None:
        self._funcs: dict[str, Callable[..., Any]] = dict(funcs or {})

    def funcs(self) -> dict[str, Callable[..., Any]]:
        return dict(self._funcs)

    def __repr__(self) -> str:
        return f"FunctionContext({sorted(self._funcs)!r})"


class Variable:
    """A zero-argument function that returns a fixed value.

    Variables live in the same registry as functions. In a template they can
    be called (``{{ START_DIR() }}``) or printed directly (``{{ START_DIR }}``).
    """

    __slots__ = ("value",)

    def __init__(self, value: Any) -> None:
        self.value = value

    def __call__(self) -> Any:
        return self.value

    def __str__(self) -> str:
        return str(self.value)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Variable):
            return self.value == other.value
        return NotImplemented

    def __hash__(self) -> int:
        return hash(("Variable", repr(self.value)))

    def __repr__(self) -> str:
        return f"Variable({self.value!r})"

"""Context-aware escaping for the HTML backend.

Jinja2 autoescape applies one entity escaping everywhere, which is enough for
element bodies and quoted attributes but not for URLs or scripts. The
``HtmlContextEscaper`` extension scans the literal HTML around each ``{{ }}``
and wraps the expression in a filter for its context:

- URL attribute values (``href``, ``src``, ...): unsafe schemes become
  ``#ZgotmplZ`` and the value is percent-encoded.
- ``<script>`` bodies and ``on*`` handler attributes: the value is
  serialized as HTML-safe JSON.

Everything else falls through to plain autoescape. ``Markup`` values are
trusted in every context. The scan is linear: both branches of an
``{% if %}`` are read in sequence, and ``<style>`` is not handled.
"""

from collections.abc import Iterator
from enum import Enum
from typing import Any
from urllib.parse import quote

from jinja2 import Environment, Undefined
from jinja2.ext import Extension
from jinja2.lexer import (
    TOKEN_DATA,
    TOKEN_LPAREN,
    TOKEN_NAME,
    TOKEN_PIPE,
    TOKEN_RPAREN,
    TOKEN_VARIABLE_BEGIN,
    TOKEN_VARIABLE_END,
    Token,
    TokenStream,
)
from jinja2.utils import htmlsafe_json_dumps
from markupsafe import Markup

from templar.templates.context import Variable

#: Replacement for URLs whose scheme is not allowed
UNSAFE_URL = "#ZgotmplZ"

SAFE_URL_SCHEMES = frozenset({"http", "https", "mailto"})

URL_ATTRIBUTES = frozenset(
    {
        "action",
        "background",
        "cite",
        "codebase",
        "data",
        "formaction",
        "href",
        "longdesc",
        "manifest",
        "poster",
        "src",
        "usemap",
        "xlink:href",
    }
)

_RAW_TEXT_ELEMENTS = frozenset({"script", "style", "textarea", "title"})

# Characters left as-is when normalising a URL: RFC 3986 reserved plus "%"
_URL_SAFE_CHARS = "/:?#[]@!$&'()*+,;=%"


class HtmlContext(str, Enum):
    """Where an interpolated value lands in the HTML output."""

    TEXT = "text"
    ATTRIBUTE = "attribute"
    URL_START = "url_start"
    URL_PATH = "url_path"
    URL_QUERY = "url_query"
    SCRIPT = "script"
    SCRIPT_ATTRIBUTE = "script_attribute"
    RAW_TEXT = "raw_text"


class _State(Enum):
    TEXT = "text"
    TAG_OPEN = "tag_open"
    BANG = "bang"
    COMMENT = "comment"
    TAG_NAME = "tag_name"
    TAG = "tag"
    ATTR_NAME = "attr_name"
    AFTER_ATTR_NAME = "after_attr_name"
    BEFORE_VALUE = "before_value"
    VALUE = "value"
    RAW_TEXT = "raw_text"


class HtmlContextScanner:
    """Tracks the HTML context of a template's literal text, piece by piece."""

    def __init__(self) -> None:
        self._state = _State.TEXT
        self._tag = ""
        self._closing = False
        self._attr = ""
        self._quote = ""
        self._value = ""
        self._raw_tag = ""
        self._tail = ""

    @property
    def context(self) -> HtmlContext:
        state = self._state
        if state is _State.RAW_TEXT:
            return HtmlContext.SCRIPT if self._raw_tag == "script" else HtmlContext.RAW_TEXT
        if state not in (_State.VALUE, _State.BEFORE_VALUE):
            return HtmlContext.TEXT

        attr = self._attr.lower()
        if attr.startswith("on"):
            return HtmlContext.SCRIPT_ATTRIBUTE
        if attr in URL_ATTRIBUTES:
            if not self._value:
                return HtmlContext.URL_START
            if "?" in self._value or "#" in self._value:
                return HtmlContext.URL_QUERY
            return HtmlContext.URL_PATH
        return HtmlContext.ATTRIBUTE

    def mark_output(self) -> None:
        """Record that an interpolated value was written at the current position."""
        if self._state is _State.BEFORE_VALUE:
            self._state = _State.VALUE
            self._quote = ""
        if self._state is _State.VALUE:
            # Any placeholder character: the value is no longer at its start
            self._value += "x"

    def feed(self, text: str) -> None:
        for c in text:
            self._step(c)

    def _step(self, c: str) -> None:
        state = self._state

        if state is _State.TEXT:
            if c == "<":
                self._state = _State.TAG_OPEN

        elif state is _State.TAG_OPEN:
            if c.isalpha():
                self._start_tag(c, closing=False)
            elif c == "/":
                self._start_tag("", closing=True)
            elif c == "!":
                self._state = _State.BANG
                self._tail = ""
            else:
                self._state = _State.TEXT

        elif state is _State.BANG:
            self._tail += c
            if self._tail == "--":
                self._state = _State.COMMENT
                self._tail = ""
            elif c == ">":
                self._state = _State.TEXT

        elif state is _State.COMMENT:
            self._tail = (self._tail + c)[-3:]
            if self._tail == "-->":
                self._state = _State.TEXT

        elif state is _State.TAG_NAME:
            if c.isspace() or c == "/":
                self._state = _State.TAG
            elif c == ">":
                self._end_tag()
            else:
                self._tag += c

        elif state is _State.TAG:
            if c == ">":
                self._end_tag()
            elif not (c.isspace() or c == "/"):
                self._start_attr(c)

        elif state is _State.ATTR_NAME:
            if c == "=":
                self._state = _State.BEFORE_VALUE
            elif c.isspace():
                self._state = _State.AFTER_ATTR_NAME
            elif c == ">":
                self._end_tag()
            elif c == "/":
                self._state = _State.TAG
            else:
                self._attr += c

        elif state is _State.AFTER_ATTR_NAME:
            if c == "=":
                self._state = _State.BEFORE_VALUE
            elif c == ">":
                self._end_tag()
            elif c == "/":
                self._state = _State.TAG
            elif not c.isspace():
                self._start_attr(c)

        elif state is _State.BEFORE_VALUE:
            if c in "\"'":
                self._state = _State.VALUE
                self._quote = c
                self._value = ""
            elif c == ">":
                self._end_tag()
            elif not c.isspace():
                self._state = _State.VALUE
                self._quote = ""
                self._value = c

        elif state is _State.VALUE:
            if self._quote and c == self._quote:
                self._state = _State.TAG
            elif not self._quote and c.isspace():
                self._state = _State.TAG
            elif not self._quote and c == ">":
                self._end_tag()
            else:
                self._value += c

        elif state is _State.RAW_TEXT:
            end = "</" + self._raw_tag
            self._tail = (self._tail + c.lower())[-len(end):]
            if self._tail == end:
                self._tag = self._raw_tag
                self._closing = True
                self._state = _State.TAG

    def _start_tag(self, first: str, closing: bool) -> None:
        self._state = _State.TAG_NAME
        self._tag = first
        self._closing = closing

    def _start_attr(self, first: str) -> None:
        self._state = _State.ATTR_NAME
        self._attr = first
        self._value = ""

    def _end_tag(self) -> None:
        tag = self._tag.lower()
        if not self._closing and tag in _RAW_TEXT_ELEMENTS:
            self._state = _State.RAW_TEXT
            self._raw_tag = tag
            self._tail = ""
        else:
            self._state = _State.TEXT
        self._attr = ""
        self._value = ""


# =============================================================================
# Context filters
# =============================================================================


def _text(value: Any) -> str:
    # str() on a StrictUndefined raises UndefinedError
    return str(value)


def _json_default(value: Any) -> Any:
    if isinstance(value, Variable):
        return value.value
    return str(value)


def _json(value: Any) -> str:
    if isinstance(value, Undefined):
        value = _text(value)
    return str(htmlsafe_json_dumps(value, default=_json_default))


def filter_url(value: Any) -> Any:
    """Escape a value that starts a URL attribute.

    URLs with a scheme other than http, https or mailto are replaced by
    ``UNSAFE_URL``. A colon after the first "/" is not a scheme.
    """
    if isinstance(value, Markup):
        return value
    text = _text(value)
    scheme, sep, _ = text.partition(":")
    if sep and "/" not in scheme and scheme.lower() not in SAFE_URL_SCHEMES:
        return UNSAFE_URL
    return quote(text, safe=_URL_SAFE_CHARS)


def filter_url_path(value: Any) -> Any:
    """Normalise a value placed inside a URL, before any query."""
    if isinstance(value, Markup):
        return value
    return quote(_text(value), safe=_URL_SAFE_CHARS)


def filter_url_query(value: Any) -> Any:
    """Percent-encode a value placed in a URL query or fragment."""
    if isinstance(value, Markup):
        return value
    return quote(_text(value), safe="")


def filter_script(value: Any) -> Any:
    """Serialize a value for a ``<script>`` body."""
    if isinstance(value, Markup):
        return value
    return Markup(_json(value))


def filter_script_attribute(value: Any) -> Any:
    """Serialize a value for an event handler attribute.

    Returns plain text so autoescape still escapes the JSON quotes.
    """
    if isinstance(value, Markup):
        return value
    return _json(value)


_CONTEXT_FILTERS: dict[HtmlContext, str] = {
    HtmlContext.URL_START: "templar_url",
    HtmlContext.URL_PATH: "templar_url_path",
    HtmlContext.URL_QUERY: "templar_url_query",
    HtmlContext.SCRIPT: "templar_script",
    HtmlContext.SCRIPT_ATTRIBUTE: "templar_script_attribute",
}


class HtmlContextEscaper(Extension):
    """Jinja2 extension wrapping each ``{{ }}`` in the filter for its HTML context."""

    def __init__(self, environment: Environment) -> None:
        super().__init__(environment)
        environment.filters.update(
            {
                "templar_url": filter_url,
                "templar_url_path": filter_url_path,
                "templar_url_query": filter_url_query,
                "templar_script": filter_script,
                "templar_script_attribute": filter_script_attribute,
            }
        )

    def filter_stream(self, stream: TokenStream) -> Iterator[Token]:
        scanner = HtmlContextScanner()
        pending: str | None = None

        for token in stream:
            if token.type == TOKEN_DATA:
                scanner.feed(token.value)
            elif token.type == TOKEN_VARIABLE_BEGIN:
                pending = _CONTEXT_FILTERS.get(scanner.context)
                yield token
                if pending is not None:
                    yield Token(token.lineno, TOKEN_LPAREN, "(")
                continue
            elif token.type == TOKEN_VARIABLE_END:
                if pending is not None:
                    yield Token(token.lineno, TOKEN_RPAREN, ")")
                    yield Token(token.lineno, TOKEN_PIPE, "|")
                    yield Token(token.lineno, TOKEN_NAME, pending)
                    pending = None
                scanner.mark_output()
            yield token

"""Template factories: per-backend parsers with a name cache.

Both concrete factories wrap a Jinja2 environment. They differ only in
escaping: the text factory writes interpolated values verbatim, the HTML
factory escapes them for where they land in the page (see
``templar.templates.html``). Each factory instance is its own
namespace, so a named template can ``{% include %}``, ``{% import %}`` or
``{% extends %}`` any template previously parsed into the same factory.
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from typing import Any, TextIO

from jinja2 import BaseLoader, Environment, StrictUndefined, TemplateNotFound, Undefined
from jinja2 import Template as JinjaBackendTemplate
from jinja2 import TemplateError as JinjaTemplateError
from jinja2 import TemplateSyntaxError
from jinja2.ext import Extension

from templar.errors import TemplateParseError, TemplateRenderError
from templar.templates.base import Template
from templar.templates.context import TemplateParseContext
from templar.templates.html import HtmlContextEscaper

logger = logging.getLogger(__name__)


class TemplateFactory(ABC):
    """Parses template text for one backend and caches named results."""

    #: Short backend label ("text", "html"), used in diagnostics
    kind: str = "custom"

    def parse(self, context: TemplateParseContext, text: str) -> Template:
        """Parse anonymous template text.

        Equivalent to ``parse_with_name(context, "", text)``.
        """
        return self.parse_with_name(context, "", text)

    @abstractmethod
    def parse_with_name(self, context: TemplateParseContext, name: str, text: str) -> Template:
        """Parse template text and bind it to ``name`` in this factory's namespace.

        Args:
            context: Parse context carrying the functions visible to the template
            name: Template name ("" for an anonymous, uncached template)
            text: Template source

        Returns:
            Compiled template

        Raises:
            TemplateParseError: If the text is not valid for this backend
        """

    @abstractmethod
    def lookup(self, name: str) -> Template | None:
        """Return a previously parsed template by name, or None."""


def _as_context(data: Any) -> Mapping[str, Any]:
    """Convert render input into a Jinja2 context mapping.

    Mappings are used as-is, None is an empty context and anything else is
    exposed to the template as ``data``.
    """
    if data is None:
        return {}
    if isinstance(data, Mapping):
        return data
    return {"data": data}


class JinjaTemplate(Template):
    """A compiled Jinja2 template."""

    def __init__(self, name: str, template: JinjaBackendTemplate) -> None:
        self.name = name
        self._template = template

    @property
    def compiled(self) -> JinjaBackendTemplate:
        return self._template

    def render_to(self, writer: TextIO, data: Any = None) -> None:
        try:
            for chunk in self._template.generate(_as_context(data)):
                writer.write(chunk)
        except JinjaTemplateError as e:
            raise TemplateRenderError(self.name, str(e)) from e

    def __repr__(self) -> str:
        return f"JinjaTemplate({self.name!r})"


class _NamespaceLoader(BaseLoader):
    """Jinja2 loader serving templates already compiled by a factory.

    Returns the cached compiled template itself so that an included template
    keeps the functions it was parsed with.
    """

    def __init__(self, factory: "JinjaTemplateFactory") -> None:
        self._factory = factory

    def load(
        self,
        environment: Environment,
        name: str,
        globals: Mapping[str, Any] | None = None,
    ) -> JinjaBackendTemplate:
        template = self._factory.lookup(name)
        if not isinstance(template, JinjaTemplate):
            raise TemplateNotFound(name)
        return template.compiled

    def list_templates(self) -> list[str]:
        return self._factory.names()


class JinjaTemplateFactory(TemplateFactory):
    """Template factory backed by a Jinja2 environment.

    Re-parsing an existing name overwrites the cached entry. Templates that
    include it pick up the new definition on their next render. A failed
    parse leaves the cache untouched.
    """

    def __init__(
        self,
        autoescape: bool,
        trim_blocks: bool = False,
        lstrip_blocks: bool = False,
        keep_trailing_newline: bool = True,
        strict_undefined: bool = False,
        extensions: Sequence[type[Extension]] = (),
    ) -> None:
        """Initialize the factory.

        Args:
            autoescape: Escape interpolated values for HTML output
            trim_blocks: Remove the first newline after a block tag
            lstrip_blocks: Strip whitespace before a block tag
            keep_trailing_newline: Keep the final newline of the source
            strict_undefined: Raise on undefined variables instead of rendering ""
            extensions: Jinja2 extensions installed in the environment
        """
        self._templates: dict[str, JinjaTemplate] = {}
        # cache_size=0: lookups always go through the loader, so overwritten
        # names are never served stale from the environment cache
        self._env = Environment(
            loader=_NamespaceLoader(self),
            autoescape=autoescape,
            trim_blocks=trim_blocks,
            lstrip_blocks=lstrip_blocks,
            keep_trailing_newline=keep_trailing_newline,
            undefined=StrictUndefined if strict_undefined else Undefined,
            cache_size=0,
            extensions=list(extensions),
        )

    @property
    def environment(self) -> Environment:
        return self._env

    def parse_with_name(self, context: TemplateParseContext, name: str, text: str) -> Template:
        try:
            code = self._env.compile(text, name=name or None)
        except TemplateSyntaxError as e:
            raise TemplateParseError(name, e.message or str(e), e.lineno) from e

        compiled = self._env.template_class.from_code(
            self._env,
            code,
            self._env.make_globals(context.funcs()),
            None,
        )
        template = JinjaTemplate(name, compiled)

        if name:
            if name in self._templates:
                logger.debug("Replacing %s template %s", self.kind, name)
            self._templates[name] = template
        return template

    def lookup(self, name: str) -> Template | None:
        if not name:
            return None
        return self._templates.get(name)

    def names(self) -> list[str]:
        """Return the names of all cached templates, sorted."""
        return sorted(self._templates)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({len(self._templates)} templates)"


class TextTemplateFactory(JinjaTemplateFactory):
    """Factory for plain-text output: no escaping."""

    kind = "text"

    def __init__(self, **options: bool) -> None:
        super().__init__(autoescape=False, **options)


class HtmlTemplateFactory(JinjaTemplateFactory):
    """Factory for HTML output: values are escaped for their HTML context.

    Element bodies and attributes get entity escaping, URL attributes reject
    unsafe schemes and are percent-encoded, scripts get HTML-safe JSON.
    """

    kind = "html"

    def __init__(self, **options: bool) -> None:
        super().__init__(autoescape=True, extensions=[HtmlContextEscaper], **options)


_text_template_factory = TextTemplateFactory()
_html_template_factory = HtmlTemplateFactory()


def text_template_factory() -> TextTemplateFactory:
    """Return the process-wide text template factory."""
    return _text_template_factory


def html_template_factory() -> HtmlTemplateFactory:
    """Return the process-wide HTML template factory."""
    return _html_template_factory

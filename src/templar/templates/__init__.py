"""Template contract, parse contexts and the Jinja2-backed factories."""

from templar.templates.base import StringTemplate, Template, render_to_string
from templar.templates.context import FunctionContext, TemplateParseContext, Variable
from templar.templates.factory import (
    HtmlTemplateFactory,
    JinjaTemplate,
    JinjaTemplateFactory,
    TemplateFactory,
    TextTemplateFactory,
    html_template_factory,
    text_template_factory,
)
from templar.templates.html import HtmlContext, HtmlContextEscaper, HtmlContextScanner

__all__ = [
    "FunctionContext",
    "HtmlContext",
    "HtmlContextEscaper",
    "HtmlContextScanner",
    "HtmlTemplateFactory",
    "JinjaTemplate",
    "JinjaTemplateFactory",
    "StringTemplate",
    "Template",
    "TemplateFactory",
    "TemplateParseContext",
    "TextTemplateFactory",
    "Variable",
    "html_template_factory",
    "render_to_string",
    "text_template_factory",
]

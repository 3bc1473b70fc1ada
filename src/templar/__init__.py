"""Templar - a resolution and composition layer over Jinja2.

Templar puts a plain-text and an HTML-escaping Jinja2 backend behind one
``Template`` abstraction and treats named templates as discoverable
resources:

- search-path based file resolution with extension fallback
- extension to backend dispatch
- shared functions and variables injected into every parse
- a per-backend name cache so a template file is read and compiled once

A thread-safe, lazily built global engine backs the module-level helpers;
construct a ``SimpleTemplateEngine`` for isolated use.
"""

__version__ = "0.1.0"
__author__ = "Templar Contributors"

from templar.defaults import (
    add_template_extension,
    add_template_search_path,
    global_template_engine,
    load_template,
    new_default_engine,
    parse_html_template,
    parse_named_html_template,
    parse_named_template,
    parse_named_text_template,
    parse_template,
    parse_text_template,
    register_template_function,
    register_template_variable,
)
from templar.engine import SimpleTemplateEngine, TemplateEngine, ThreadSafeTemplateEngine
from templar.errors import (
    NoFactoryForPathError,
    TemplarError,
    TemplateNotFoundError,
    TemplateParseError,
    TemplateRenderError,
)
from templar.filesystem import FileSystem, LocalFileSystem
from templar.templates import (
    FunctionContext,
    HtmlTemplateFactory,
    JinjaTemplateFactory,
    StringTemplate,
    Template,
    TemplateFactory,
    TemplateParseContext,
    TextTemplateFactory,
    Variable,
    html_template_factory,
    text_template_factory,
)

__all__ = [
    "FileSystem",
    "FunctionContext",
    "HtmlTemplateFactory",
    "JinjaTemplateFactory",
    "LocalFileSystem",
    "NoFactoryForPathError",
    "SimpleTemplateEngine",
    "StringTemplate",
    "TemplarError",
    "Template",
    "TemplateEngine",
    "TemplateFactory",
    "TemplateNotFoundError",
    "TemplateParseContext",
    "TemplateParseError",
    "TemplateRenderError",
    "TextTemplateFactory",
    "ThreadSafeTemplateEngine",
    "Variable",
    "add_template_extension",
    "add_template_search_path",
    "global_template_engine",
    "html_template_factory",
    "load_template",
    "new_default_engine",
    "parse_html_template",
    "parse_named_html_template",
    "parse_named_template",
    "parse_named_text_template",
    "parse_template",
    "parse_text_template",
    "register_template_function",
    "register_template_variable",
    "text_template_factory",
]

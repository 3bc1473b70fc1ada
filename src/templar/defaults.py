"""Process-wide default engine and top-level convenience functions.

The global engine is built on first access and lives for the rest of the
process. It is a ``ThreadSafeTemplateEngine`` configured with:

- search paths ``<APP_FOLDER>/templates``, ``<START_DIR>/templates`` and
  ``./templates``, in that priority order
- ``.tmpl`` bound to the text factory, ``.htmpl`` to the HTML factory
- functions ``HOST_NAME`` and ``SHELL``
- variables ``START_DIR``, ``APP_LOCATION`` and ``APP_FOLDER``

Use ``new_default_engine()`` (or ``SimpleTemplateEngine`` directly) for an
isolated instance, e.g. in tests.
"""

import os
import socket
import sys
import threading
from collections.abc import Callable
from typing import Any

from templar.engine import SimpleTemplateEngine, TemplateEngine, ThreadSafeTemplateEngine
from templar.filesystem import FileSystem
from templar.templates.base import Template
from templar.templates.factory import (
    TemplateFactory,
    html_template_factory,
    text_template_factory,
)

TEMPLATES_FOLDER = "templates"
TEXT_TEMPLATE_EXTENSION = ".tmpl"
HTML_TEMPLATE_EXTENSION = ".htmpl"
DEFAULT_SHELL = "/bin/sh"


def _app_location() -> str:
    """Return the absolute path of the running program.

    Frozen applications report their executable; scripts report the script
    path; an interactive or ``-c`` session falls back to the interpreter.
    """
    if getattr(sys, "frozen", False):
        return os.path.abspath(sys.executable)
    script = sys.argv[0] if sys.argv else ""
    if script and os.path.isfile(script):
        return os.path.abspath(script)
    return os.path.abspath(sys.executable)


START_DIR = os.path.abspath(os.getcwd())
APP_LOCATION = _app_location()
APP_FOLDER = os.path.dirname(APP_LOCATION)


def host_name() -> str:
    """Return the machine's host name."""
    return socket.gethostname()


def user_shell() -> str:
    """Return the user's configured shell, ``/bin/sh`` when unset."""
    return os.environ.get("SHELL") or DEFAULT_SHELL


def default_search_paths() -> list[str]:
    """Return the conventional template folders in priority order."""
    return [
        os.path.join(APP_FOLDER, TEMPLATES_FOLDER),
        os.path.join(START_DIR, TEMPLATES_FOLDER),
        os.path.join(".", TEMPLATES_FOLDER),
    ]


def install_builtins(engine: TemplateEngine) -> TemplateEngine:
    """Register the built-in functions and variables on ``engine``."""
    return (
        engine.register_function("HOST_NAME", host_name)
        .register_function("SHELL", user_shell)
        .register_variable("START_DIR", START_DIR)
        .register_variable("APP_LOCATION", APP_LOCATION)
        .register_variable("APP_FOLDER", APP_FOLDER)
    )


def new_default_engine(filesystem: FileSystem | None = None) -> ThreadSafeTemplateEngine:
    """Build a new thread-safe engine with the default configuration."""
    engine = (
        SimpleTemplateEngine(filesystem)
        .add_template_search_path(*default_search_paths())
        .add_template_extension(text_template_factory(), TEXT_TEMPLATE_EXTENSION)
        .add_template_extension(html_template_factory(), HTML_TEMPLATE_EXTENSION)
    )
    install_builtins(engine)
    return ThreadSafeTemplateEngine(engine)


_global_engine: TemplateEngine | None = None
_global_engine_lock = threading.Lock()


def global_template_engine() -> TemplateEngine:
    """Return the process-wide engine, building it on first access."""
    global _global_engine

    if _global_engine is None:
        with _global_engine_lock:
            if _global_engine is None:
                _global_engine = new_default_engine()
    return _global_engine


# =============================================================================
# Convenience functions delegating to the global engine
# =============================================================================


def register_template_function(name: str, fn: Callable[..., Any]) -> TemplateEngine:
    return global_template_engine().register_function(name, fn)


def register_template_variable(name: str, value: Any) -> TemplateEngine:
    return global_template_engine().register_variable(name, value)


def parse_template(factory: TemplateFactory, text: str) -> Template:
    return global_template_engine().parse_template(factory, text)


def parse_text_template(text: str) -> Template:
    return parse_template(text_template_factory(), text)


def parse_html_template(text: str) -> Template:
    return parse_template(html_template_factory(), text)


def parse_named_template(factory: TemplateFactory, name: str, text: str) -> Template:
    return global_template_engine().parse_named_template(factory, name, text)


def parse_named_text_template(name: str, text: str) -> Template:
    return parse_named_template(text_template_factory(), name, text)


def parse_named_html_template(name: str, text: str) -> Template:
    return parse_named_template(html_template_factory(), name, text)


def add_template_extension(factory: TemplateFactory, *extensions: str) -> TemplateEngine:
    return global_template_engine().add_template_extension(factory, *extensions)


def add_template_search_path(*paths: str) -> TemplateEngine:
    return global_template_engine().add_template_search_path(*paths)


def load_template(path: str, factory: TemplateFactory | None = None) -> Template:
    """Load a template through the global engine's search paths."""
    return global_template_engine().load_template(path, factory)

"""Template engine: function registry, extension dispatch and file resolution.

``SimpleTemplateEngine`` is the unsynchronised core. ``ThreadSafeTemplateEngine``
wraps any engine and serialises every call behind one lock. Templates
returned by either are rendered without any engine involvement.

Loading a template by path runs in four steps:

1. Search: resolve the path against the search paths and known extensions.
2. Dispatch: pick the factory (explicit, or from the extension) and derive
   the template name from the resolved path.
3. Cache: return the factory's cached template for that name, if any.
4. Read and parse the file with the currently registered functions.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Self

from templar.errors import NoFactoryForPathError, TemplateNotFoundError
from templar.filesystem import FileSystem, LocalFileSystem
from templar.templates.base import Template
from templar.templates.context import FunctionContext, Variable
from templar.templates.factory import TemplateFactory

logger = logging.getLogger(__name__)

PathToNameTranslator = Callable[[str], str]
PathToFactoryTranslator = Callable[[str], TemplateFactory | None]


class TemplateEngine(ABC):
    """Interface shared by the plain and the thread-safe engine."""

    # =========================================================================
    # Translators
    # =========================================================================

    @property
    @abstractmethod
    def path_to_name_translator(self) -> PathToNameTranslator:
        """Function deriving a template name from a resolved path."""

    @path_to_name_translator.setter
    @abstractmethod
    def path_to_name_translator(self, translator: PathToNameTranslator) -> None: ...

    @property
    @abstractmethod
    def path_to_factory_translator(self) -> PathToFactoryTranslator:
        """Function picking a factory for a resolved path (None when unknown)."""

    @path_to_factory_translator.setter
    @abstractmethod
    def path_to_factory_translator(self, translator: PathToFactoryTranslator) -> None: ...

    # =========================================================================
    # Registration
    # =========================================================================

    @abstractmethod
    def register_function(self, name: str, fn: Callable[..., Any]) -> Self:
        """Make ``fn`` available as ``name`` in every template parsed afterwards."""

    @abstractmethod
    def register_variable(self, name: str, value: Any) -> Self:
        """Register a zero-argument function returning ``value``."""

    @abstractmethod
    def add_template_extension(self, factory: TemplateFactory, *extensions: str) -> Self:
        """Bind each extension (leading dot included) to ``factory``."""

    @abstractmethod
    def add_template_search_path(self, *paths: str) -> Self:
        """Append each path not already present to the search paths."""

    @property
    @abstractmethod
    def functions(self) -> dict[str, Callable[..., Any]]:
        """Copy of the function registry."""

    @property
    @abstractmethod
    def extensions(self) -> dict[str, TemplateFactory]:
        """Copy of the extension map, in registration order."""

    @property
    @abstractmethod
    def search_paths(self) -> tuple[str, ...]:
        """Search paths in priority order."""

    # =========================================================================
    # Parsing and loading
    # =========================================================================

    @abstractmethod
    def parse_template(self, factory: TemplateFactory, text: str) -> Template:
        """Parse anonymous text with the registered functions."""

    @abstractmethod
    def parse_named_template(self, factory: TemplateFactory, name: str, text: str) -> Template:
        """Parse text bound to ``name`` with the registered functions."""

    @abstractmethod
    def find_template(self, path: str) -> str:
        """Resolve ``path`` to an existing template file.

        Raises:
            TemplateNotFoundError: If no candidate exists
        """

    @abstractmethod
    def load_template(self, path: str, factory: TemplateFactory | None = None) -> Template:
        """Resolve, dispatch and parse a template file (cached by name).

        Raises:
            TemplateNotFoundError: If the path cannot be resolved
            NoFactoryForPathError: If no factory is given or bound to the extension
            TemplateParseError: If the file content is malformed
            OSError: If the resolved file cannot be read
        """


class SimpleTemplateEngine(TemplateEngine):
    """Unsynchronised engine. Callers share it across threads at their own risk."""

    def __init__(self, filesystem: FileSystem | None = None) -> None:
        """Initialize an empty engine.

        Args:
            filesystem: File access collaborator (local disk by default)
        """
        self._funcs: dict[str, Callable[..., Any]] = {}
        self._extensions: dict[str, TemplateFactory] = {}
        self._search_paths: list[str] = []
        self._filesystem: FileSystem = filesystem or LocalFileSystem()
        self._path_to_name_translator: PathToNameTranslator = self.name_for_path
        self._path_to_factory_translator: PathToFactoryTranslator = self.factory_for_path

    @property
    def path_to_name_translator(self) -> PathToNameTranslator:
        return self._path_to_name_translator

    @path_to_name_translator.setter
    def path_to_name_translator(self, translator: PathToNameTranslator) -> None:
        self._path_to_name_translator = translator

    @property
    def path_to_factory_translator(self) -> PathToFactoryTranslator:
        return self._path_to_factory_translator

    @path_to_factory_translator.setter
    def path_to_factory_translator(self, translator: PathToFactoryTranslator) -> None:
        self._path_to_factory_translator = translator

    def register_function(self, name: str, fn: Callable[..., Any]) -> Self:
        self._funcs[name] = fn
        return self

    def register_variable(self, name: str, value: Any) -> Self:
        return self.register_function(name, Variable(value))

    def add_template_extension(self, factory: TemplateFactory, *extensions: str) -> Self:
        for ext in extensions:
            self._extensions[ext] = factory
        return self

    def add_template_search_path(self, *paths: str) -> Self:
        for path in paths:
            if path not in self._search_paths:
                self._search_paths.append(path)
        return self

    @property
    def functions(self) -> dict[str, Callable[..., Any]]:
        return dict(self._funcs)

    @property
    def extensions(self) -> dict[str, TemplateFactory]:
        return dict(self._extensions)

    @property
    def search_paths(self) -> tuple[str, ...]:
        return tuple(self._search_paths)

    def parse_template(self, factory: TemplateFactory, text: str) -> Template:
        return factory.parse(FunctionContext(self._funcs), text)

    def parse_named_template(self, factory: TemplateFactory, name: str, text: str) -> Template:
        return factory.parse_with_name(FunctionContext(self._funcs), name, text)

    def find_template(self, path: str) -> str:
        if os.path.isabs(path):
            if not self._filesystem.exists(path):
                raise TemplateNotFoundError(path)
            return path

        for search_path in self._search_paths:
            full_path = os.path.abspath(os.path.join(search_path, path))
            if self._filesystem.exists(full_path):
                logger.debug("Resolved template %s to %s", path, full_path)
                return full_path

            for ext in self._extensions:
                candidate = full_path + ext
                if self._filesystem.exists(candidate):
                    logger.debug("Resolved template %s to %s", path, candidate)
                    return candidate

        raise TemplateNotFoundError(path, self._search_paths)

    def load_template(self, path: str, factory: TemplateFactory | None = None) -> Template:
        full_path = self.find_template(path)

        if factory is None:
            factory = self._path_to_factory_translator(full_path)
            if factory is None:
                raise NoFactoryForPathError(full_path)
        name = self._path_to_name_translator(full_path)

        cached = factory.lookup(name)
        if cached is not None:
            logger.debug("Template cache hit: %s (%s)", name, full_path)
            return cached

        content = self._filesystem.read_text(full_path)
        logger.debug("Parsing template %s from %s", name, full_path)
        return factory.parse_with_name(FunctionContext(self._funcs), name, content)

    # =========================================================================
    # Default translators
    # =========================================================================

    def _matching_extension(self, path: str) -> str | None:
        """Return the longest known extension the file name ends with."""
        base = os.path.basename(path)
        matches = [ext for ext in self._extensions if ext and base.endswith(ext)]
        if not matches:
            return None
        return max(matches, key=len)

    def name_for_path(self, path: str) -> str:
        """Default name translator: base name minus one known extension."""
        base = os.path.basename(path)
        ext = self._matching_extension(path)
        if ext is None:
            return base
        return base[: -len(ext)]

    def factory_for_path(self, path: str) -> TemplateFactory | None:
        """Default factory translator: factory bound to the path's extension."""
        ext = self._matching_extension(path)
        if ext is None:
            return None
        return self._extensions[ext]


class ThreadSafeTemplateEngine(TemplateEngine):
    """Serialises every call on the wrapped engine behind a single lock.

    Rendering a template obtained from this engine does not take the lock.
    """

    def __init__(self, engine: TemplateEngine) -> None:
        self._lock = threading.Lock()
        self._engine = engine

    @property
    def wrapped(self) -> TemplateEngine:
        return self._engine

    @property
    def path_to_name_translator(self) -> PathToNameTranslator:
        with self._lock:
            return self._engine.path_to_name_translator

    @path_to_name_translator.setter
    def path_to_name_translator(self, translator: PathToNameTranslator) -> None:
        with self._lock:
            self._engine.path_to_name_translator = translator

    @property
    def path_to_factory_translator(self) -> PathToFactoryTranslator:
        with self._lock:
            return self._engine.path_to_factory_translator

    @path_to_factory_translator.setter
    def path_to_factory_translator(self, translator: PathToFactoryTranslator) -> None:
        with self._lock:
            self._engine.path_to_factory_translator = translator

    def register_function(self, name: str, fn: Callable[..., Any]) -> Self:
        with self._lock:
            self._engine.register_function(name, fn)
        return self

    def register_variable(self, name: str, value: Any) -> Self:
        with self._lock:
            self._engine.register_variable(name, value)
        return self

    def add_template_extension(self, factory: TemplateFactory, *extensions: str) -> Self:
        with self._lock:
            self._engine.add_template_extension(factory, *extensions)
        return self

    def add_template_search_path(self, *paths: str) -> Self:
        with self._lock:
            self._engine.add_template_search_path(*paths)
        return self

    @property
    def functions(self) -> dict[str, Callable[..., Any]]:
        with self._lock:
            return self._engine.functions

    @property
    def extensions(self) -> dict[str, TemplateFactory]:
        with self._lock:
            return self._engine.extensions

    @property
    def search_paths(self) -> tuple[str, ...]:
        with self._lock:
            return self._engine.search_paths

    def parse_template(self, factory: TemplateFactory, text: str) -> Template:
        with self._lock:
            return self._engine.parse_template(factory, text)

    def parse_named_template(self, factory: TemplateFactory, name: str, text: str) -> Template:
        with self._lock:
            return self._engine.parse_named_template(factory, name, text)

    def find_template(self, path: str) -> str:
        with self._lock:
            return self._engine.find_template(path)

    def load_template(self, path: str, factory: TemplateFactory | None = None) -> Template:
        with self._lock:
            return self._engine.load_template(path, factory)

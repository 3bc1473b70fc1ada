"""Shared pytest fixtures for Templar tests.

Fixtures are organized by category:
- Path fixtures: fixture template trees on disk
- Factory fixtures: fresh factories, so no test shares a cache
- Engine fixtures: bare engines wired to disk or to an in-memory filesystem
"""

from pathlib import Path

import pytest

from templar.engine import SimpleTemplateEngine
from templar.templates.factory import HtmlTemplateFactory, TextTemplateFactory
from tests.fixtures import ALT_TEMPLATES_DIR, TEMPLATES_DIR, MemoryFileSystem


# =============================================================================
# Path Fixtures
# =============================================================================


@pytest.fixture
def templates_dir() -> Path:
    """Return the path to the fixture templates."""
    return TEMPLATES_DIR


@pytest.fixture
def alt_templates_dir() -> Path:
    """Return the path to the shadowing fixture templates."""
    return ALT_TEMPLATES_DIR


# =============================================================================
# Factory Fixtures
# =============================================================================


@pytest.fixture
def text_factory() -> TextTemplateFactory:
    """Return a text factory with an empty cache."""
    return TextTemplateFactory()


@pytest.fixture
def html_factory() -> HtmlTemplateFactory:
    """Return an HTML factory with an empty cache."""
    return HtmlTemplateFactory()


# =============================================================================
# Engine Fixtures
# =============================================================================


@pytest.fixture
def engine(
    templates_dir: Path,
    text_factory: TextTemplateFactory,
    html_factory: HtmlTemplateFactory,
) -> SimpleTemplateEngine:
    """Return a bare engine searching the fixture templates."""
    return (
        SimpleTemplateEngine()
        .add_template_search_path(str(templates_dir))
        .add_template_extension(text_factory, ".tmpl")
        .add_template_extension(html_factory, ".htmpl")
    )


@pytest.fixture
def memory_fs() -> MemoryFileSystem:
    """Return an empty in-memory filesystem."""
    return MemoryFileSystem()


@pytest.fixture
def memory_engine(
    memory_fs: MemoryFileSystem,
    text_factory: TextTemplateFactory,
) -> SimpleTemplateEngine:
    """Return a bare engine over the in-memory filesystem.

    Search paths: /a, /b. Extension: .ext -> text factory.
    """
    return (
        SimpleTemplateEngine(memory_fs)
        .add_template_search_path("/a", "/b")
        .add_template_extension(text_factory, ".ext")
    )

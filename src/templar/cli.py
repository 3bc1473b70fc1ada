"""Templar CLI interface.

Commands:
- render: Render a template to stdout or a file
- validate: Check a template's syntax
- which: Show how a template name resolves
- init: Write a default configuration file

Global options:
- --config: Path to configuration file
- --verbose: Enable verbose output with timestamps
- --quiet: Suppress info messages
- --ci: JSON log output
- --version: Show version and exit
"""

from dataclasses import replace
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from templar import __version__
from templar.config import (
    SearchConfig,
    TemplarConfig,
    create_default_config,
    create_engine,
    load_config,
)
from templar.engine import TemplateEngine
from templar.errors import NoFactoryForPathError, TemplarError, TemplateParseError
from templar.templates.factory import (
    HtmlTemplateFactory,
    TemplateFactory,
    TextTemplateFactory,
)
from templar.utils.logging import configure_from_cli, get_logger

app = typer.Typer(
    name="templar",
    help="Resolve, parse and render text and HTML templates",
    add_completion=False,
    no_args_is_help=True,
)

# Global state
_config: TemplarConfig | None = None
_logger = get_logger()


class Backend(str, Enum):
    """Backend selection for commands that parse templates."""

    TEXT = "text"
    HTML = "html"


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"templar {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to configuration file",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output with timestamps",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress info messages (warnings and errors only)",
        ),
    ] = False,
    ci: Annotated[
        bool,
        typer.Option(
            "--ci",
            help="Enable CI mode with JSON output",
        ),
    ] = False,
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit",
        ),
    ] = False,
) -> None:
    """Templar - template resolution and rendering.

    Templates are looked up by name in the search paths and parsed by the
    backend bound to their extension.
    """
    global _config

    configure_from_cli(verbose=verbose, quiet=quiet, ci=ci)

    try:
        _config = load_config(config_path=config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        _logger.error(f"Failed to load config: {e}")
        raise typer.Exit(1)

    if _config.config_path:
        _logger.debug(f"Loaded config from: {_config.config_path}")


# =============================================================================
# Helpers
# =============================================================================


def _build_engine(search_paths: list[str] | None) -> TemplateEngine:
    """Build an engine from the loaded config plus per-run search paths.

    The current directory is always searched last.
    """
    config = _config or TemplarConfig()
    extra_paths = [*(search_paths or []), *config.search.paths, "."]
    config = replace(
        config,
        search=SearchConfig(
            paths=extra_paths,
            include_defaults=config.search.include_defaults,
        ),
    )
    return create_engine(config, thread_safe=False, isolated=True)


def _jinja_options() -> dict[str, bool]:
    return (_config or TemplarConfig()).jinja.options()


def _factory_for(engine: TemplateEngine, path: str, backend: Backend | None) -> TemplateFactory:
    """Pick the factory for a resolved path, honouring an explicit backend."""
    options = _jinja_options()
    if backend is Backend.HTML:
        return HtmlTemplateFactory(**options)
    if backend is Backend.TEXT:
        return TextTemplateFactory(**options)
    factory = engine.path_to_factory_translator(path)
    if factory is None:
        raise NoFactoryForPathError(path)
    return factory


def _load_data(data_file: Path | None) -> Any:
    """Load render data from a YAML or JSON file."""
    if data_file is None:
        return None
    with open(data_file) as f:
        return yaml.safe_load(f)


# =============================================================================
# render command
# =============================================================================


@app.command()
def render(
    template: Annotated[
        str,
        typer.Argument(help="Template name or path (extension optional)"),
    ],
    data: Annotated[
        Path | None,
        typer.Option(
            "--data",
            "-d",
            help="YAML or JSON file with render data",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
    search_path: Annotated[
        list[str] | None,
        typer.Option(
            "--search-path",
            "-s",
            help="Additional template search path (repeatable)",
        ),
    ] = None,
    backend: Annotated[
        Backend | None,
        typer.Option(
            "--backend",
            "-b",
            help="Force a backend instead of dispatching on the extension",
        ),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option(
            "--output",
            "-o",
            help="Write output to this file instead of stdout",
        ),
    ] = None,
) -> None:
    """Render a template with optional data."""
    engine = _build_engine(search_path)

    try:
        context = _load_data(data)
        factory = None
        if backend is not None:
            factory = _factory_for(engine, template, backend)
        loaded = engine.load_template(template, factory)
        rendered = loaded.render(context)
    except (TemplarError, OSError, yaml.YAMLError) as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    if output is None:
        typer.echo(rendered, nl=False)
        return

    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(rendered, encoding="utf-8")
    _logger.info(f"Wrote {output} ({len(rendered)} characters)")


# =============================================================================
# validate command
# =============================================================================


@app.command()
def validate(
    template: Annotated[
        Path,
        typer.Argument(
            help="Path to template to validate",
            exists=True,
            dir_okay=False,
        ),
    ],
    backend: Annotated[
        Backend | None,
        typer.Option(
            "--backend",
            "-b",
            help="Backend to validate against (default: from extension, else text)",
        ),
    ] = None,
) -> None:
    """Validate a template's syntax."""
    engine = _build_engine(None)
    path = str(template.resolve())

    try:
        factory = _factory_for(engine, path, backend)
    except NoFactoryForPathError:
        factory = TextTemplateFactory(**_jinja_options())

    _logger.info(f"Validating {factory.kind} template: {template}")

    try:
        engine.parse_template(factory, template.read_text(encoding="utf-8"))
    except TemplateParseError as e:
        _logger.error(f"Template syntax error: {e.message}")
        line = f" at line {e.lineno}" if e.lineno is not None else ""
        typer.echo(f"❌ Template syntax error{line}: {e.message}")
        raise typer.Exit(1)

    typer.echo(f"✅ Template is valid: {template}")


# =============================================================================
# which command
# =============================================================================


@app.command()
def which(
    template: Annotated[
        str,
        typer.Argument(help="Template name or path (extension optional)"),
    ],
    search_path: Annotated[
        list[str] | None,
        typer.Option(
            "--search-path",
            "-s",
            help="Additional template search path (repeatable)",
        ),
    ] = None,
) -> None:
    """Show the file, name and backend a template resolves to."""
    engine = _build_engine(search_path)

    try:
        path = engine.find_template(template)
    except TemplarError as e:
        _logger.error(str(e))
        raise typer.Exit(1)

    factory = engine.path_to_factory_translator(path)
    typer.echo(f"path:    {path}")
    typer.echo(f"name:    {engine.path_to_name_translator(path)}")
    typer.echo(f"backend: {factory.kind if factory is not None else '-'}")


# =============================================================================
# init command
# =============================================================================


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            help="Overwrite existing config",
        ),
    ] = False,
) -> None:
    """Write a default templar.yaml in the current directory."""
    config_file = Path("templar.yaml")

    if config_file.exists() and not force:
        _logger.error(f"Config already exists: {config_file}")
        _logger.info("Use --force to overwrite")
        raise typer.Exit(1)

    config_file.write_text(create_default_config(), encoding="utf-8")
    _logger.info(f"Created {config_file}")
    typer.echo(f"Created {config_file}")


if __name__ == "__main__":
    app()

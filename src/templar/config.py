"""Templar configuration system.

Configuration is YAML-based and optional: an engine built without a config
file matches the process-wide default engine. Supports environment variable
substitution (${VAR}) in config files.

Configuration file discovery (in priority order):
1. CLI --config argument
2. ./.templar/config.yaml
3. ./templar.yaml
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from templar.defaults import (
    HTML_TEMPLATE_EXTENSION,
    TEXT_TEMPLATE_EXTENSION,
    default_search_paths,
    install_builtins,
)
from templar.engine import SimpleTemplateEngine, TemplateEngine, ThreadSafeTemplateEngine
from templar.filesystem import FileSystem
from templar.templates.factory import (
    HtmlTemplateFactory,
    TextTemplateFactory,
    html_template_factory,
    text_template_factory,
)

# =============================================================================
# Configuration Dataclasses
# =============================================================================


@dataclass
class SearchConfig:
    """Template search configuration.

    Attributes:
        paths: Extra search paths, tried after the defaults
        include_defaults: Whether to start from the conventional template folders
    """

    paths: list[str] = field(default_factory=list)
    include_defaults: bool = True


@dataclass
class ExtensionConfig:
    """Extension to backend bindings.

    Attributes:
        text: Extensions parsed by the text backend
        html: Extensions parsed by the HTML-escaping backend
    """

    text: list[str] = field(default_factory=lambda: [TEXT_TEMPLATE_EXTENSION])
    html: list[str] = field(default_factory=lambda: [HTML_TEMPLATE_EXTENSION])

    def __post_init__(self) -> None:
        """Validate extensions."""
        for ext in [*self.text, *self.html]:
            if not ext.startswith("."):
                raise ValueError(f"Template extension must start with '.': {ext!r}")


@dataclass
class JinjaConfig:
    """Options passed to both Jinja2 backends.

    Attributes:
        trim_blocks: Remove the first newline after a block tag
        lstrip_blocks: Strip leading whitespace before a block tag
        keep_trailing_newline: Keep the template's final newline
        strict_undefined: Fail on undefined variables instead of rendering ""
    """

    trim_blocks: bool = False
    lstrip_blocks: bool = False
    keep_trailing_newline: bool = True
    strict_undefined: bool = False

    @property
    def is_default(self) -> bool:
        return self == JinjaConfig()

    def options(self) -> dict[str, bool]:
        return {
            "trim_blocks": self.trim_blocks,
            "lstrip_blocks": self.lstrip_blocks,
            "keep_trailing_newline": self.keep_trailing_newline,
            "strict_undefined": self.strict_undefined,
        }


@dataclass
class TemplarConfig:
    """Top-level Templar configuration.

    Attributes:
        search: Search path settings
        extensions: Extension bindings
        jinja: Backend options
        variables: Extra template variables
    """

    search: SearchConfig = field(default_factory=SearchConfig)
    extensions: ExtensionConfig = field(default_factory=ExtensionConfig)
    jinja: JinjaConfig = field(default_factory=JinjaConfig)
    variables: dict[str, Any] = field(default_factory=dict)

    _config_path: Path | None = field(default=None, repr=False)

    @property
    def config_path(self) -> Path | None:
        """Get the path to the config file that was loaded."""
        return self._config_path


# =============================================================================
# Environment Variable Substitution
# =============================================================================


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in config values.

    Supports ${VAR} syntax for environment variable substitution.
    Example: ${HOME}/templates -> /home/me/templates

    Args:
        value: Config value (string, dict, list, or other)

    Returns:
        Value with environment variables substituted

    Raises:
        ValueError: If a referenced variable is not set
    """
    if isinstance(value, str):
        pattern = re.compile(r"\$\{([^}]+)\}")

        def replace_var(match: re.Match[str]) -> str:
            var_name = match.group(1)
            env_value = os.environ.get(var_name)
            if env_value is None:
                raise ValueError(f"Environment variable not set: {var_name}")
            return env_value

        return pattern.sub(replace_var, value)

    elif isinstance(value, dict):
        return {k: substitute_env_vars(v) for k, v in value.items()}

    elif isinstance(value, list):
        return [substitute_env_vars(v) for v in value]

    return value


# =============================================================================
# Config File Discovery
# =============================================================================


def find_config_file(start_path: Path | None = None) -> Path | None:
    """Find configuration file in standard locations.

    Search order:
    1. ./.templar/config.yaml
    2. ./templar.yaml

    Args:
        start_path: Starting directory for search (defaults to cwd)

    Returns:
        Path to config file if found, None otherwise
    """
    if start_path is None:
        start_path = Path.cwd()

    start_path = start_path.resolve()

    candidates = [
        start_path / ".templar" / "config.yaml",
        start_path / "templar.yaml",
    ]

    for candidate in candidates:
        if candidate.exists():
            return candidate

    return None


# =============================================================================
# Config Loading
# =============================================================================


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [str(v) for v in value]


def load_config_from_dict(data: dict[str, Any]) -> TemplarConfig:
    """Load configuration from a dictionary.

    Args:
        data: Configuration dictionary

    Returns:
        TemplarConfig instance

    Raises:
        ValueError: On unknown jinja options or invalid extensions
    """
    data = substitute_env_vars(data)

    config = TemplarConfig()

    if "search" in data:
        search_data = data["search"] or {}
        config.search = SearchConfig(
            paths=_as_list(search_data.get("paths")),
            include_defaults=search_data.get("include_defaults", True),
        )

    if "extensions" in data:
        ext_data = data["extensions"] or {}
        config.extensions = ExtensionConfig(
            text=_as_list(ext_data.get("text", config.extensions.text)),
            html=_as_list(ext_data.get("html", config.extensions.html)),
        )

    if "jinja" in data:
        jinja_data = data["jinja"] or {}
        valid_options = set(JinjaConfig().options())
        unknown = set(jinja_data) - valid_options
        if unknown:
            raise ValueError(
                f"Unknown jinja options: {sorted(unknown)}. Valid: {sorted(valid_options)}"
            )
        config.jinja = JinjaConfig(**{k: bool(v) for k, v in jinja_data.items()})

    if "variables" in data:
        config.variables = dict(data["variables"] or {})

    return config


def load_config(
    config_path: Path | None = None,
    auto_discover: bool = True,
) -> TemplarConfig:
    """Load configuration from file.

    Args:
        config_path: Explicit path to config file
        auto_discover: Whether to search for config file if not specified

    Returns:
        TemplarConfig instance

    Raises:
        FileNotFoundError: If config_path specified but doesn't exist
    """
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        found_path = config_path
    elif auto_discover:
        found_path = find_config_file()
    else:
        found_path = None

    if found_path is not None:
        with open(found_path) as f:
            data = yaml.safe_load(f) or {}
        config = load_config_from_dict(data)
        config._config_path = found_path
    else:
        config = TemplarConfig()

    return config


# =============================================================================
# Engine Construction
# =============================================================================


def create_engine(
    config: TemplarConfig | None = None,
    thread_safe: bool = True,
    filesystem: FileSystem | None = None,
    isolated: bool = False,
) -> TemplateEngine:
    """Build an engine from configuration.

    With default Jinja options the engine shares the process-wide factories
    (and their caches) with the global engine unless ``isolated`` is set;
    otherwise it gets its own.

    Args:
        config: Configuration (defaults when None)
        thread_safe: Wrap the engine in a ThreadSafeTemplateEngine
        filesystem: File access collaborator (local disk by default)
        isolated: Always build fresh factories with empty caches

    Returns:
        Configured engine
    """
    config = config or TemplarConfig()

    if config.jinja.is_default and not isolated:
        text_factory: TextTemplateFactory = text_template_factory()
        html_factory: HtmlTemplateFactory = html_template_factory()
    else:
        text_factory = TextTemplateFactory(**config.jinja.options())
        html_factory = HtmlTemplateFactory(**config.jinja.options())

    engine = SimpleTemplateEngine(filesystem)
    if config.search.include_defaults:
        engine.add_template_search_path(*default_search_paths())
    engine.add_template_search_path(*config.search.paths)
    engine.add_template_extension(text_factory, *config.extensions.text)
    engine.add_template_extension(html_factory, *config.extensions.html)

    install_builtins(engine)
    for name, value in config.variables.items():
        engine.register_variable(name, value)

    if thread_safe:
        return ThreadSafeTemplateEngine(engine)
    return engine


def create_default_config() -> str:
    """Create default configuration YAML content.

    Returns:
        YAML string with default configuration and comments
    """
    return '''# Templar Configuration

# Template search paths, tried in order after the defaults
# (<app folder>/templates, <start dir>/templates, ./templates)
search:
  include_defaults: true
  paths: []
  #  - "${HOME}/.templates"

# Extension to backend bindings
extensions:
  text: [".tmpl"]    # rendered verbatim
  html: [".htmpl"]   # values escaped for HTML

# Jinja2 backend options
jinja:
  trim_blocks: false
  lstrip_blocks: false
  keep_trailing_newline: true
  strict_undefined: false

# Extra variables available to every template
variables: {}
#  TEAM: "platform"
'''

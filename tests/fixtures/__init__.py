"""Test fixtures for Templar.

Template trees used by unit and integration tests:
- templates: text (.tmpl) and HTML (.htmpl) templates, one malformed
- alt_templates: a second tree shadowing ``greeting`` for precedence tests
"""

from pathlib import Path

# Path to fixtures directory
FIXTURES_DIR = Path(__file__).parent

TEMPLATES_DIR = FIXTURES_DIR / "templates"
ALT_TEMPLATES_DIR = FIXTURES_DIR / "alt_templates"


def get_template_path(name: str) -> Path:
    """Get path to a fixture template file.

    Args:
        name: File name inside the templates directory

    Returns:
        Path to the template file

    Raises:
        ValueError: If the file doesn't exist
    """
    path = TEMPLATES_DIR / name
    if not path.exists():
        raise ValueError(f"Fixture template not found: {name}")
    return path


class MemoryFileSystem:
    """In-memory FileSystem that records every existence check and read."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.reads: list[str] = []
        self.exists_calls: list[str] = []

    def exists(self, path: str) -> bool:
        self.exists_calls.append(path)
        return path in self.files

    def read_text(self, path: str) -> str:
        self.reads.append(path)
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

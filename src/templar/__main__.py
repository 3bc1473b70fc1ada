"""Entry point for running Templar as a module.

Usage:
    python -m templar [command] [options]

Example:
    python -m templar render greeting --data vars.yaml
    python -m templar which greeting
"""

from templar.cli import app

if __name__ == "__main__":
    app()

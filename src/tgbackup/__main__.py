"""Allow running as ``python -m tgbackup``."""

from .cli import app

if __name__ == "__main__":
    app()

"""
Entry point for ``python -m slotkeeper``.
"""

from .cli.app import app

if __name__ == "__main__":
    app()

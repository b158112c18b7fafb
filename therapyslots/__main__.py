"""
Convenience entry point for running therapyslots directly.

Usage: python -m therapyslots [command] [options]
"""

from .cli.app import app

if __name__ == "__main__":
    app()

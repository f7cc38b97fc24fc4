"""Entry point for `python -m winstall`."""

from winstall.cli import app

if __name__ == "__main__":
    app()

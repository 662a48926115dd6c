"""threadrelay CLI entrypoint."""

from threadrelay.cli import app

if __name__ == "__main__":
    app()

"""Main entry point for ``python -m readledger``."""

from readledger.cli import app


def main():
    """Run the readledger command line."""
    app()


if __name__ == "__main__":
    main()

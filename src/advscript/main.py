"""Entry-point for launching the CLI application."""
from __future__ import annotations

import sys

from .presentation.cli.app import main as cli_main


def main() -> None:
    """Run the CLI presentation layer."""
    cli_main(sys.argv[1:])


if __name__ == "__main__":
    main()

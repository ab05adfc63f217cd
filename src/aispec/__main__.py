# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.

"""Entry point for running aispec as a module.

Usage:
    python -m aispec
"""

from aispec.cli.app import app


def main() -> None:
    """Main entry point for the aispec CLI."""
    app()


if __name__ == "__main__":
    main()

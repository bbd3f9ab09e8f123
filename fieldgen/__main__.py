# File: fieldgen/__main__.py
"""
fieldgen — Module entry point.

Allows running the generator directly via::

    python -m fieldgen -c fieldgen.yaml --all

This module simply delegates to the CLI entry point defined in ``fieldgen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from fieldgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()

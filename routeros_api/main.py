"""Main entry point for the RouterOS API client.

This module provides the ``routeros-api`` console script:
1. Parses options and loads configuration (see cli.py)
2. Sets up logging
3. Runs the requested command and maps its outcome to an exit code
"""

import sys

import click

from routeros_api.cli import cli, console


def main(args: list[str] | None = None) -> int:
    """Main entry point for the RouterOS API client.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    try:
        result = cli.main(args=args, prog_name="routeros-api", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        return e.exit_code
    except click.Abort:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        return 130
    return result if isinstance(result, int) else 0


if __name__ == "__main__":
    sys.exit(main())

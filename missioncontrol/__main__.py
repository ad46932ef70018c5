"""Command-line entry for missioncontrol.

Runs the dashboard server via the package's ``run_server()`` entrypoint.
"""

from __future__ import annotations

import argparse
import sys
from typing import NoReturn

from . import run_server


def _create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the missioncontrol CLI.

    Returns:
        Configured argument parser
    """
    parser = argparse.ArgumentParser(
        prog="missioncontrol",
        description="Mission Control - personal dashboard backend",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m missioncontrol                        # Start on PORT from env (default 3000)
  python -m missioncontrol --port 8080            # Start on port 8080
  python -m missioncontrol --config config.yaml   # Overlay settings from a YAML file
        """,
    )

    parser.add_argument(
        "--port",
        type=int,
        metavar="PORT",
        help="Port number for the web server (default: 3000, or from PORT env var)",
    )
    parser.add_argument(
        "--host",
        metavar="HOST",
        help="Address to bind (default: 0.0.0.0, or from HOST env var)",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Optional YAML or JSON file overriding environment configuration",
    )

    return parser


def main(argv: list[str] | None = None) -> NoReturn:
    """Run the missioncontrol CLI."""
    parser = _create_parser()
    args = parser.parse_args(argv)

    try:
        run_server(args)
    except (OSError, ValueError, RuntimeError) as exc:
        print(f"missioncontrol: failed to start: {exc}", file=sys.stderr)
        sys.exit(1)
    sys.exit(0)


if __name__ == "__main__":
    main()

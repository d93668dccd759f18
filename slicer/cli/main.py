"""Entry point for the command-line interface."""

from __future__ import annotations

import argparse
import sys

from slicer.log import configure_logging, logger
from slicer.settings import load_slicer_settings

from .commands import COMMANDS


def build_parser() -> argparse.ArgumentParser:
    """Construct argument parser for CLI commands."""
    parser = argparse.ArgumentParser(prog="slicer", description="Slicer selection engine CLI")
    parser.add_argument(
        "--settings",
        help="path to JSON/TOML slicer settings",
    )
    sub = parser.add_subparsers(dest="command", required=True)
    for name, cmd in COMMANDS.items():
        p = sub.add_parser(name, help=cmd.help)
        cmd.add_arguments(p)
        p.set_defaults(func=cmd.func)
    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    configure_logging()
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        args.slicer_settings = load_slicer_settings(args.settings) if args.settings else None
        args.func(args)
    except (ValueError, OSError) as exc:
        logger.error("%s failed: %s", args.command, exc)
        sys.stderr.write(f"error: {exc}\n")
        return 2
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

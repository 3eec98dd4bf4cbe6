"""Argument parser for the tflsctl CLI."""

from __future__ import annotations

import argparse
from pathlib import Path

DEFAULT_CONFIG_POLL = 2.0


def _add_install_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Install without asking for confirmation.",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the tflsctl argument parser."""
    parser = argparse.ArgumentParser(
        prog="tflsctl",
        description="tflsctl - install and run the Terraform language server.",
    )

    # Global options
    parser.add_argument(
        "--version",
        action="store_true",
        help="Show tflsctl version and exit.",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (info-level) logging.",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce logging output to errors only.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        type=Path,
        help="Path to config file (default: .tflsctl.yml in the project root).",
    )
    parser.add_argument(
        "--binary",
        metavar="PATH",
        type=Path,
        help="Use this terraform-ls binary instead of installing one.",
    )
    parser.add_argument(
        "--releases-url",
        metavar="URL",
        help="Base URL of the terraform-ls release feed.",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    # install
    install = subparsers.add_parser(
        "install",
        help="Install or upgrade terraform-ls.",
    )
    install.add_argument(
        "--dir",
        metavar="DIR",
        type=Path,
        help="Install directory (default: ~/.tflsctl/bin/terraform-ls).",
    )
    _add_install_options(install)

    # status
    status = subparsers.add_parser(
        "status",
        help="Show platform, install location and installed version.",
    )
    status.add_argument(
        "--check-latest",
        action="store_true",
        help="Also query the release feed for the newest version.",
    )

    # enable / disable
    enable = subparsers.add_parser(
        "enable",
        help="Enable the language server and install it if needed.",
    )
    _add_install_options(enable)
    subparsers.add_parser(
        "disable",
        help="Disable the language server.",
    )

    # serve
    serve = subparsers.add_parser(
        "serve",
        help="Run one language server per outermost workspace root.",
    )
    serve.add_argument(
        "roots",
        nargs="+",
        metavar="ROOT",
        help="Workspace root directories.",
    )
    serve.add_argument(
        "--config-poll",
        metavar="SECONDS",
        type=float,
        default=DEFAULT_CONFIG_POLL,
        help=f"Interval for checking config files for changes (default: {DEFAULT_CONFIG_POLL}).",
    )
    _add_install_options(serve)

    return parser

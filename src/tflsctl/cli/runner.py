"""CLI runner that dispatches to commands."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version
from typing import Dict, Iterable, Optional

from tflsctl.cli.arguments import build_parser
from tflsctl.cli.commands import Command, InstallCommand, ServeCommand, StatusCommand, ToggleCommand
from tflsctl.cli.config_bridge import ConfigBridge
from tflsctl.cli.exit_codes import EXIT_INVALID_USAGE, EXIT_SUCCESS
from tflsctl.config import ConfigError, load_config
from tflsctl.core.logging import configure_logging, get_logger

LOGGER = get_logger(__name__)


def get_version() -> str:
    try:
        return version("tflsctl")
    except PackageNotFoundError:
        # Fallback for editable installs that have not yet built metadata.
        from tflsctl import __version__

        return __version__


class CLIRunner:
    """Parses arguments, loads configuration and runs a command."""

    def __init__(self) -> None:
        self._version = get_version()
        commands = [
            InstallCommand(),
            StatusCommand(self._version),
            ToggleCommand(enabled=True),
            ToggleCommand(enabled=False),
            ServeCommand(),
        ]
        self._commands: Dict[str, Command] = {c.name: c for c in commands}

    @property
    def commands(self) -> Dict[str, Command]:
        return dict(self._commands)

    def run(self, argv: Optional[Iterable[str]] = None) -> int:
        """Run the CLI.

        Args:
            argv: Command-line arguments (defaults to sys.argv).

        Returns:
            Exit code.
        """
        parser = build_parser()
        argv_list = list(argv) if argv is not None else None

        try:
            args = parser.parse_args(argv_list)
        except SystemExit as e:
            # --help exits with 0, usage errors with 2
            return EXIT_SUCCESS if e.code in (0, None) else EXIT_INVALID_USAGE

        # Configure logging as early as possible.
        configure_logging(debug=args.debug, verbose=args.verbose, quiet=args.quiet)

        if args.version:
            print(self._version)
            return EXIT_SUCCESS

        if not args.command:
            parser.print_help()
            return EXIT_SUCCESS

        try:
            config = load_config(
                project_root=ConfigBridge.project_root(args),
                cli_config_path=args.config,
                cli_overrides=ConfigBridge.args_to_overrides(args),
            )
        except ConfigError as e:
            LOGGER.error(str(e))
            return EXIT_INVALID_USAGE

        return self._commands[args.command].execute(args, config)

"""
CLI -- Process entry point and top-level error boundary

    tsunami [--project DIR] [--tsserver CMD] [--log-level L] [serve]
    tsunami symbols [--prefix P]
    tsunami organize-imports FILE

serve (the default) is what an editor launches in place of tsserver:
load config and tsconfig, prime every project file, spawn the server,
then multiplex stdin/stdout until the editor hangs up.

Exit codes: 0 on clean shutdown, 1 on an unexpected error, 2 when
startup cannot complete.
"""

import argparse
import logging
import os
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

import orjson

from .config import Config, ConfigManager
from .context import TsunamiContext
from .errors import ConfigError, FatalStartupError
from .logs import configure_logging
from .orchestrator import IOPool, OrchestratorConfig
from .project import TsProject
from .protocol import CommandProcessor, FetchSymbolLocationsCommand, FrameWriter, StreamMultiplexer, SYMBOL_LOCATIONS
from .server import ServerProcessManager
from . import __version__

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_STARTUP = 2


class TsunamiCLI:
    """Runs one subcommand against one project directory."""

    def __init__(self, project_dir: Path, args: argparse.Namespace):
        self.project_dir = Path(project_dir).resolve()
        self.args = args
        self.config_manager = ConfigManager(self.project_dir)
        self.config = self._load_config()

    def _load_config(self) -> Config:
        config = self.config_manager.load()
        if self.args.tsserver:
            config.server.command = self.args.tsserver
        if self.args.log_level:
            config.logging.level = self.args.log_level
        error = config.validate()
        if error:
            raise ConfigError(error)
        return config

    def setup_logging(self) -> None:
        configure_logging(self.config.logging.level, self.config_manager.resolve_log_file(self.config))

    def _load_context(self) -> TsunamiContext:
        project = TsProject.load(self.project_dir, self.config.project.tsconfig)
        context = TsunamiContext.build(project)
        context.prime()
        return context

    def _pool(self) -> IOPool:
        try:
            return IOPool(OrchestratorConfig.from_env())
        except ValueError as e:
            raise ConfigError(str(e)) from e

    # =========================================================================
    # Subcommands
    # =========================================================================

    def serve(self) -> int:
        """Interpose between the editor on stdin/stdout and the analysis server."""
        context = self._load_context()
        server = ServerProcessManager(self.config.server.argv, cwd=self.project_dir)
        server.start()
        pool = None
        try:
            pool = self._pool()
            multiplexer = StreamMultiplexer(
                CommandProcessor(context),
                sys.stdin.buffer,
                FrameWriter(sys.stdout.buffer),
                server.stdin,
                server.stdout,
                pool=pool,
            )
            multiplexer.run()
        finally:
            if pool is not None:
                pool.shutdown(wait=False)
            server.stop(timeout=self.config.server.shutdown_timeout)
        logger.info("Editor disconnected, shutting down")
        return EXIT_OK

    def symbols(self) -> int:
        """Print the exported-symbol locations of the whole project."""
        context = self._load_context()
        command = FetchSymbolLocationsCommand(
            command=SYMBOL_LOCATIONS,
            seq=0,
            raw={"command": SYMBOL_LOCATIONS, "seq": 0, "arguments": {"prefix": self.args.prefix}},
        )
        response = CommandProcessor(context).respond(command)
        sys.stdout.write(orjson.dumps(response.body, option=orjson.OPT_INDENT_2).decode() + "\n")
        return EXIT_OK if response.success else EXIT_ERROR

    def organize_imports(self) -> int:
        """Print a file with its imports organized. The file is not modified."""
        context = TsunamiContext.build()
        path = str(Path(self.args.file).resolve())
        result = context.sorter.organize_imports(context.documents.acquire(path))
        if not result.ok:
            print(f"Error: {result.error}", file=sys.stderr)
            return EXIT_ERROR
        sys.stdout.write(result.text)
        return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tsunami",
        description="tsunami -- TypeScript analysis server interposer",
        epilog="Answers symbol and import queries locally, forwards everything else to tsserver."
    )

    parser.add_argument(
        '--project', '-p',
        default=os.environ.get("TSUNAMI_PROJECT_PATH", "."),
        help='Project directory (default: TSUNAMI_PROJECT_PATH or current)'
    )
    parser.add_argument(
        '--tsserver',
        help='Analysis server command line (overrides config and TSUNAMI_TSSERVER)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        type=str.upper,
        help='Log level (overrides config and TSUNAMI_LOG_LEVEL)'
    )
    parser.add_argument(
        '--version', '-V',
        action='version',
        version=f'tsunami {__version__}'
    )

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser('serve', help='Run as the editor-facing server (default)')

    p = subparsers.add_parser('symbols', help='Print exported symbol locations as JSON')
    p.add_argument('--prefix', default=None, help='Logged only; filtering is up to the caller')

    p = subparsers.add_parser('organize-imports', help='Print FILE with its imports organized')
    p.add_argument('file', help='Source file')

    return parser


_HANDLERS: Dict[str, Callable[[TsunamiCLI], int]] = {
    'serve': TsunamiCLI.serve,
    'symbols': TsunamiCLI.symbols,
    'organize-imports': TsunamiCLI.organize_imports,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Every error ends here: it is logged, then turned into an exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or 'serve'

    try:
        cli = TsunamiCLI(Path(args.project), args)
        cli.setup_logging()
        logger.info("tsunami %s: %s in %s", __version__, command, cli.project_dir)
        logger.debug("Configuration: %s", cli.config.to_dict())
        return _HANDLERS[command](cli)
    except FatalStartupError as e:
        logger.error("Startup failed: %s", e)
        print(f"tsunami: {e}", file=sys.stderr)
        return EXIT_STARTUP
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_ERROR
    except Exception as e:
        logger.exception("Fatal error")
        print(f"tsunami: fatal error: {e}", file=sys.stderr)
        return EXIT_ERROR


if __name__ == '__main__':
    sys.exit(main())

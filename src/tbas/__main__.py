"""Command line entry point: run a BASIC program file or start a REPL on stdin."""

import argparse
from datetime import datetime, timezone
import glob
import logging
from logging.handlers import RotatingFileHandler
import os
import sys

from tbas.tbas import TBAS
from tbas.tbas_config import TBASConfig
from tbas.tbas_console import TBASDirectoryFileStore, TBASStdioConsole
from tbas.tbas_error import TBASError


def setup_logging() -> None:
    """Configure logging with timestamped files and rotation."""
    log_dir = os.path.expanduser("~/.tbas/logs")
    os.makedirs(log_dir, exist_ok=True)

    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d-%H-%M-%S-%f")[:23]
    log_file = os.path.join(log_dir, f"{timestamp}.log")

    # Keep up to 50 log files, max 1MB each
    handler = RotatingFileHandler(
        log_file,
        maxBytes=1024*1024,
        backupCount=49,
        encoding='utf-8'
    )

    logging.basicConfig(
        level=logging.DEBUG,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[handler]
    )

    cleanup_old_logs(log_dir, max_logs=50)


def cleanup_old_logs(log_dir: str, max_logs: int) -> None:
    """Remove oldest log files if we exceed maximum count."""
    log_files = glob.glob(os.path.join(log_dir, "*.log*"))
    log_files.sort(key=os.path.getctime)

    while len(log_files) > max_logs:
        try:
            os.remove(log_files.pop(0))

        except OSError:
            pass


def parse_arguments() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Terran BASIC interpreter",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start an interactive session
  python -m tbas

  # Run a saved program
  python -m tbas games/hangman.bas
        """
    )

    parser.add_argument(
        'program',
        nargs='?',
        help='Program file to load and run'
    )

    parser.add_argument(
        '--config',
        help='JSON settings file'
    )

    parser.add_argument(
        '--root',
        default='.',
        help='Directory used by SAVE, LOAD and CATALOG (default: current directory)'
    )

    return parser.parse_args()


def main() -> int:
    """Main entry point."""
    args = parse_arguments()
    setup_logging()
    logger = logging.getLogger("main")

    config = TBASConfig.load(args.config) if args.config else TBASConfig()
    session = TBAS(config, TBASStdioConsole(), TBASDirectoryFileStore(args.root))

    if args.program:
        with open(args.program, 'r', encoding='utf-8') as f:
            source = f.read()

        try:
            session.run_program(source)

        except TBASError as e:
            logger.error("Program failed: %s", e)
            session.console.print(e.summary() + "\n")
            return 1

        return 0

    session.console.print(config.prompt + "\n")
    while True:
        try:
            line = session.console.read_line()

        except (EOFError, KeyboardInterrupt):
            break

        if not session.submit_line(line):
            break

    return 0


if __name__ == "__main__":
    sys.exit(main())

"""CLI entry point."""

import sys
import os

from common.logging_config import setup_logging
from cli.commands import dispatch_command
from cli.constants import HELP_TEXT
from cli.parser import ParseError, parse_tokens


def run_once(argv: list[str]) -> int:
    """
    Run a single command given on the command line.

    Returns:
        Process exit code
    """
    if argv[0] in ("help", "--help", "-h"):
        print(HELP_TEXT)
        return 0

    try:
        cmd_obj = parse_tokens(argv)
    except ParseError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    result = dispatch_command(cmd_obj)
    print(result)
    return 1 if result.startswith("Error") or "failed" in result.split("\n", 1)[0] else 0


def main() -> None:
    """Entry point for CLI."""
    argv = sys.argv[1:]
    debug = '--debug' in argv
    if debug:
        argv.remove('--debug')

    log_level = 'DEBUG' if debug else os.getenv('LOG_LEVEL', 'WARNING')
    logger = setup_logging('cli', log_level=log_level)

    if debug:
        logger.info("Debug logging enabled")

    logger.info("CLI starting...")
    try:
        if argv:
            sys.exit(run_once(argv))

        from cli.repl import repl_loop
        repl_loop()
    except Exception as e:
        logger.error(f"CLI error: {e}", exc_info=True)
        raise
    finally:
        logger.info("CLI exiting")


if __name__ == "__main__":
    main()

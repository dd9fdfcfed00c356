"""
CLI entry point for the ngcmacro-run command.

Reads a macro program file, executes it and prints one line per command group.
"""

import argparse
import json
import logging
import sys

from ngcmacro import config
from ngcmacro.config import TRACE
from ngcmacro.macro import Evaluator, parse
from ngcmacro.utils.errors import MacroError

logger = logging.getLogger("ngcmacro.cli.run")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run an RS274/NGC macro program")
    parser.add_argument("file", help="Program file to execute")
    parser.add_argument("--strict", action="store_true",
                        help="Reading an undefined variable is an error instead of 0")
    parser.add_argument("--max-iterations", type=int, default=None,
                        help=f"Loop iteration cap (default: {config.MAX_LOOP_ITERATIONS})")
    parser.add_argument("--dump-variables", action="store_true",
                        help="Print all variable scopes as JSON after the run")

    parser.add_argument("-v", "--verbose", action="count", default=0,
                        help="Increase verbosity; -v=INFO, -vv=DEBUG, -vvv=TRACE")
    parser.add_argument("-q", "--quiet", action="store_true",
                        help="Only log errors")
    parser.add_argument("--log-level", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Set specific log level")
    return parser


def _log_level(args: argparse.Namespace) -> int:
    if args.log_level:
        if args.log_level == "TRACE":
            return TRACE
        return getattr(logging, args.log_level)
    if args.verbose >= 3:
        return TRACE
    if args.verbose >= 2:
        return logging.DEBUG
    if args.verbose == 1:
        return logging.INFO
    if args.quiet:
        return logging.ERROR
    if config.TRACE_ENABLED:
        return TRACE
    return getattr(logging, config.LOG_LEVEL_DEFAULT)


def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    args = _build_parser().parse_args(argv)

    logging.basicConfig(
        level=_log_level(args),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        with open(args.file, "r") as f:
            source = f.read()
    except OSError as e:
        logger.error(f"Cannot read {args.file}: {e}")
        return 1

    def on_comment(text: str, line: int) -> None:
        logger.info(f"comment line {line}: {text.strip()}")

    try:
        evaluator = Evaluator(
            parse(source, on_comment=on_comment),
            strict_undefined=args.strict or None,
            max_loop_iterations=args.max_iterations,
        )
        commands = evaluator.process_program()
    except MacroError as e:
        logger.debug("Run aborted", exc_info=True)
        print(str(e), file=sys.stderr)
        return 1

    for group in commands:
        print(group)
    if args.dump_variables:
        print(json.dumps(evaluator.dump_variables(), indent=2, sort_keys=True))
    return 0


def main_entry():
    """Entry point for the ngcmacro-run command."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()

#!/usr/bin/env python3
"""
cli.py - Thin CLI wrapper for the npm feed authentication check.

Parses arguments, configures logging and delegates to run_auth_check().
The exit code reflects the overall result.
"""

import argparse
import sys
from typing import List, Optional

from .cli_ui import print_result
from .config import CONFIG_FILENAME, AuthCheckConfig
from .logging_utils import add_logging_arguments, setup_logging
from .main import run_auth_check
from .types import EXIT_FAILURE


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="azure-auth-check",
        description="Azure DevOps npm Auth Check",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help=f"Path to {CONFIG_FILENAME} (defaults to ./{CONFIG_FILENAME})",
    )
    parser.add_argument("--cwd", metavar="PATH", help="Project directory (defaults to current working directory)")
    parser.add_argument("--global-npmrc", metavar="PATH", help="Override path to global ~/.npmrc")
    parser.add_argument("--local-npmrc", metavar="PATH", help="Override path to project .npmrc")
    add_logging_arguments(parser)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entrypoint - thin wrapper delegating to run_auth_check()."""
    parser = build_parser()

    try:
        args, unknown = parser.parse_known_args(argv)
    except SystemExit as e:
        # --help exits 0; a missing option value exits non-zero
        return EXIT_FAILURE if e.code else 0

    if unknown:
        print(f"Unknown option: {unknown[0]}", file=sys.stderr)
        parser.print_help()
        return EXIT_FAILURE

    setup_logging(verbose=args.verbose, quiet=args.silent, log_file=args.log_file)
    cfg = AuthCheckConfig.from_args(args)

    try:
        result = run_auth_check(cfg)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        return EXIT_FAILURE
    except Exception as e:
        print(f"An error occurred: {e}", file=sys.stderr)
        return EXIT_FAILURE

    print_result(result)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())

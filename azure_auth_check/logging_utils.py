"""
Console logging for azure-auth-check.

All status output goes through the "azure_auth_check" logger, so the CLI
flags apply everywhere:

    default      INFO and above, plain text
    --verbose    adds DEBUG records tagged with the module name
    --silent     ERROR only

Messages may span several lines and may begin with blank lines used as
spacing; the level tag goes in front of the first line of text only.
"""

import argparse
import logging
import sys
from typing import Optional

ROOT_LOGGER = "azure_auth_check"
FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class ConsoleFormatter(logging.Formatter):
    """Plain INFO lines, tagged warnings and errors, DEBUG tagged with the module."""

    TAGS = {
        logging.DEBUG: "[debug {name}] ",
        logging.WARNING: "WARNING: ",
        logging.ERROR: "ERROR: ",
        logging.CRITICAL: "CRITICAL: ",
    }

    def format(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if record.exc_info:
            message = f"{message}\n{self.formatException(record.exc_info)}"

        tag = self.TAGS.get(record.levelno)
        if not tag:
            return message

        body = message.lstrip("\n")
        spacing = message[: len(message) - len(body)]
        return f"{spacing}{tag.format(name=record.name)}{body}"


def setup_logging(
    verbose: bool = False,
    quiet: bool = False,
    log_file: Optional[str] = None,
) -> logging.Logger:
    """
    (Re)configure the package logger for one CLI run.

    quiet wins over verbose. A log file always receives DEBUG records,
    whatever the console shows.
    """
    if quiet:
        console_level = logging.ERROR
    elif verbose:
        console_level = logging.DEBUG
    else:
        console_level = logging.INFO

    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(ConsoleFormatter())
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

    logger.setLevel(logging.DEBUG if log_file else console_level)
    return logger


def get_logger(name: str) -> logging.Logger:
    """Logger for `name` (usually __name__), always under the package root."""
    if name == ROOT_LOGGER or name.startswith(f"{ROOT_LOGGER}."):
        return logging.getLogger(name)
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def add_logging_arguments(parser: argparse.ArgumentParser) -> None:
    """Add -v/--verbose, --silent (mutually exclusive) and --log-file."""
    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    verbosity.add_argument(
        "--silent",
        action="store_true",
        help="Suppress output unless action is required",
    )
    parser.add_argument("--log-file", metavar="PATH", help="Also write a debug log to PATH")

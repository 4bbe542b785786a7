"""Shared CLI utilities and argument parsers."""

import argparse

from .. import transaction
from ..__logger__ import create_logger
from ..config import Config, find_config_file, load_config


def create_global_parser() -> argparse.ArgumentParser:
    """Create a parser with global options that can be used as a parent."""
    parser = argparse.ArgumentParser(add_help=False)
    # Suppressed defaults keep flags given before the subcommand intact.
    add_verbosity_args(parser, default=argparse.SUPPRESS)
    parser.add_argument(
        "-c",
        "--config",
        metavar="FILE",
        default=argparse.SUPPRESS,
        help="Path to configuration file",
    )
    return parser


def add_verbosity_args(parser: argparse.ArgumentParser, default=False) -> None:
    """Add verbosity-related arguments to a parser."""
    group = parser.add_argument_group("Output options")
    group.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=default,
        help="Enable verbose output",
    )
    group.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default,
        help="Suppress non-essential output",
    )
    group.add_argument(
        "--debug",
        action="store_true",
        default=default,
        help="Enable debug output",
    )


def get_log_level(args: argparse.Namespace, config: Config | None = None) -> str:
    """Determine log level from parsed arguments.

    Command line flags win over the ``quiet``/``verbose`` settings of the
    configuration file.

    Args:
        args: Parsed command line arguments
        config: Loaded configuration, if any

    Returns:
        Log level string (DEBUG, INFO, WARNING, ERROR)
    """
    if getattr(args, "debug", False):
        return "DEBUG"
    elif getattr(args, "quiet", False):
        return "WARNING"
    elif getattr(args, "verbose", False):
        return "DEBUG"
    elif config is not None and config.global_config.quiet:
        return "WARNING"
    elif config is not None and config.global_config.verbose:
        return "DEBUG"
    else:
        return "INFO"


def load_optional_config(args: argparse.Namespace) -> tuple[Config, list[str]]:
    """Load the configuration file if one exists, defaults otherwise.

    Raises:
        ConfigError: If an explicit or discovered file is invalid
    """
    config_path = find_config_file(getattr(args, "config", None))
    if config_path is None:
        return Config(), []
    return load_config(config_path)


def setup_logging(args: argparse.Namespace, config: Config) -> None:
    """Configure console/file logging and the transaction log."""
    create_logger(
        level=get_log_level(args, config), log_file=config.global_config.log_file
    )
    transaction.set_transaction_log(config.global_config.transaction_log)

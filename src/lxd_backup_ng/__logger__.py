# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/__logger__.py
A common logger for displaying through rich.
"""

import logging
from typing import Optional

from rich.console import Console
from rich.logging import RichHandler

# Initialize basic console and handler
cons = Console(stderr=True)
rich_handler = RichHandler(console=cons, show_path=False)
logger = logging.getLogger("lxd_backup_ng")


def create_logger(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Helper function to setup logging for console and optional log file."""
    # pylint: disable=global-statement
    global cons, rich_handler

    cons = Console(stderr=True)
    rich_handler = RichHandler(console=cons, show_path=False)

    handlers: list[logging.Handler] = [rich_handler]
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s %(levelname)s (%(threadName)s) %(name)s: %(message)s"
            )
        )
        handlers.append(file_handler)

    logging.basicConfig(
        format="(%(threadName)s) %(message)s",
        datefmt="%H:%M:%S",
        level=level,
        handlers=handlers,
        force=True,
    )
    logger.setLevel(level)

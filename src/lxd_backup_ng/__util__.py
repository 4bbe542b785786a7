# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/__util__.py
Common errors and helpers shared among modules.
"""

import logging
import os
import subprocess

logger = logging.getLogger(__name__)


class AbortError(Exception):
    """Fatal error that stops the run before any stage starts."""


class ProviderError(Exception):
    """A snapshot provider request failed to submit or complete."""


class StorageError(Exception):
    """Object storage could not accept, commit or abort an object."""


class CompressionError(Exception):
    """The compressor could not accept data or flush its trailing state."""


class ChannelClosedError(Exception):
    """Send or close attempted on an already closed handoff channel."""


class ExportError(Exception):
    """The snapshot export process failed.

    Attributes:
        returncode: Exit status of the process, None if it never started
        stderr: Diagnostic text captured from the process
    """

    def __init__(self, message, returncode=None, stderr=""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


def exec_subprocess(command, method="check_output", **kwargs):
    """Run a command through the subprocess module.

    The environment is inherited unless ``env`` is given explicitly.
    ``OSError`` raised while starting the command is propagated unchanged.
    """
    logger.debug("Executing: %s", command)
    kwargs.setdefault("env", os.environ.copy())
    return getattr(subprocess, method)(command, **kwargs)


def log_heading(caption):
    """Formatted heading for logging output sections."""
    return f"{'-' * 10} {caption} {'-' * 10}"


def format_duration(seconds: float) -> str:
    """Human readable duration, e.g. ``1m 05s``."""
    seconds = int(round(seconds))
    if seconds < 60:
        return f"{seconds}s"
    minutes, seconds = divmod(seconds, 60)
    if minutes < 60:
        return f"{minutes}m {seconds:02d}s"
    hours, minutes = divmod(minutes, 60)
    return f"{hours}h {minutes:02d}m"

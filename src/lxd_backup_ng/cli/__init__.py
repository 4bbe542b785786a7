"""Command line interface for lxd-backup-ng."""

from .dispatcher import main

__all__ = ["main"]

"""lxd-backup-ng: lxd_backup_ng/__init__.py."""


__version__ = "0.3.0"

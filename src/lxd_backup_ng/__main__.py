"""lxd-backup-ng: lxd_backup_ng/__main__.py.

Snapshot every LXD container on a ZFS pool and stream the snapshots,
LZW compressed, to object storage.
"""

import sys

from .cli import main

if __name__ == "__main__":
    sys.exit(main())

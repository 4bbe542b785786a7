# pyright: standard

"""lxd-backup-ng: lxd_backup_ng/storage/__init__.py."""

import logging

from .. import __util__
from .common import ObjectStore, WriteSink
from .local import LocalObjectStore

logger = logging.getLogger(__name__)

BACKENDS = ("s3", "local")

__all__ = ["BACKENDS", "LocalObjectStore", "ObjectStore", "WriteSink", "choose_store"]


def choose_store(backend, bucket, options=None) -> ObjectStore:
    """
    Build the object store for ``backend``.

    Args:
        backend (str): One of ``BACKENDS``.
        bucket (str): Bucket name, or the root directory for ``local``.
        options (dict): Backend specific settings (region, endpoint_url,
            profile, part_size).

    Returns:
        ObjectStore: The configured store.

    Raises:
        AbortError: If the backend is unknown or cannot be set up.
    """
    options = options or {}
    if backend == "local":
        store = LocalObjectStore(bucket)
    elif backend == "s3":
        from .s3 import S3ObjectStore

        try:
            store = S3ObjectStore(bucket, **options)
        except ValueError as e:
            raise __util__.AbortError(f"Invalid S3 settings: {e}") from e
    else:
        raise __util__.AbortError(f"Unknown storage backend: {backend}")
    logger.debug("Object store created: %r", store)
    return store

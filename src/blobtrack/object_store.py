"""Content-addressed object store for blobtrack.

Objects are raw payload bytes stored under their content address, sharded by
the first two hex characters:

    .blobtrack/objects/ab/<remaining 62 hex chars>

Key properties:
- Write-once: a put for an address that already exists is a no-op
- Atomic publication via temp file + rename, fsync'd for durability
- Stored objects are read-only (0o444) from the moment they become visible
- Addresses are validated before use in paths (no traversal)

Two processes racing to store the same address converge on identical bytes,
so puts need no locking.
"""

from __future__ import annotations
import contextlib
import logging
import os
import re
import tempfile
from pathlib import Path

from .errors import ObjectNotFoundError, StorageError
from .hashing import hash_blob
from .utils import fsync_dir

logger = logging.getLogger(__name__)

# ---- Safety validators ------------------------------------------------------

_HEX64 = re.compile(r"^[0-9a-f]{64}$")

def _validate_address(address: str) -> str:
    """Validate a content address before it is turned into a path.

    Raises:
        ValueError: If the address is not 64 lowercase hex characters
    """
    if not _HEX64.fullmatch(address):
        raise ValueError(f"Invalid content address (must be 64 lowercase hex chars): {address!r}")
    return address

# ---- ObjectStore ------------------------------------------------------------

class ObjectStore:
    """Sharded, deduplicating store of raw payloads keyed by content address.

    Attributes:
        objdir: Root of the object tree (``.blobtrack/objects``)
    """

    def __init__(self, objdir: Path):
        self.objdir = Path(objdir)

    def path_for(self, address: str) -> Path:
        """Get the on-disk path for an address.

        Raises:
            ValueError: If the address format is invalid
        """
        _validate_address(address)
        return self.objdir / address[:2] / address[2:]

    def has(self, address: str) -> bool:
        """Check whether an object is stored under ``address``."""
        try:
            return self.path_for(address).exists()
        except ValueError:
            return False

    def put(self, address: str, payload: bytes) -> bool:
        """Store ``payload`` under ``address`` unless it is already present.

        The caller is responsible for ``address`` matching the payload; use
        :meth:`put_bytes` to have the store compute it.

        Args:
            address: Content address of the payload
            payload: Raw bytes to store

        Returns:
            True if the object was written, False if it already existed

        Raises:
            StorageError: If the shard directory or the object can't be written
        """
        dst = self.path_for(address)

        if dst.exists():
            logger.debug("Object %s already stored, skipping write", address[:12])
            return False

        try:
            dst.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError.wrap("create object directory", dst.parent, e) from e

        # Write to a temp file in the shard directory so the rename is atomic
        tmppath = None
        try:
            with tempfile.NamedTemporaryFile(
                prefix=".obj-",
                dir=str(dst.parent),
                delete=False
            ) as tmp:
                tmppath = Path(tmp.name)
                tmp.write(payload)
                tmp.flush()
                os.fsync(tmp.fileno())

            os.chmod(tmppath, 0o444)
            os.replace(str(tmppath), str(dst))
        except OSError as e:
            if tmppath is not None:
                with contextlib.suppress(OSError):
                    tmppath.unlink()
            raise StorageError.wrap("write object", dst, e) from e

        fsync_dir(dst.parent)
        logger.debug("Stored object %s (%d bytes)", address[:12], len(payload))
        return True

    def put_bytes(self, payload: bytes) -> str:
        """Hash and store a payload, returning its address."""
        address = hash_blob(payload)
        self.put(address, payload)
        return address

    def put_file(self, path: Path) -> str:
        """Read, hash and store a file, returning its address.

        Raises:
            StorageError: If the file can't be read or the object can't be written
        """
        try:
            payload = Path(path).read_bytes()
        except OSError as e:
            raise StorageError.wrap("read", path, e) from e
        return self.put_bytes(payload)

    def get(self, address: str) -> bytes:
        """Read the payload stored under ``address``.

        Raises:
            ValueError: If the address format is invalid
            ObjectNotFoundError: If nothing is stored under the address
            StorageError: If the object exists but can't be read
        """
        src = self.path_for(address)
        if not src.exists():
            raise ObjectNotFoundError(address, src)
        try:
            return src.read_bytes()
        except OSError as e:
            raise StorageError.wrap("read object", src, e) from e

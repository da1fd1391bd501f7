"""Content addressing for blobtrack objects.

An address is the SHA-256 of the payload framed as ``blob <size>\\0<bytes>``.
The length prefix keeps payloads that would concatenate to the same bytes
from colliding on the same address.
"""

from pathlib import Path
import hashlib
import os

CHUNK_SIZE = 8192


def blob_header(size: int) -> bytes:
    """Return the framing header for a payload of ``size`` bytes."""
    return b"blob " + str(size).encode("ascii") + b"\x00"


def hash_blob(payload: bytes) -> str:
    """Compute the content address of a byte payload.

    Args:
        payload: Raw bytes to address

    Returns:
        64-character lowercase hex SHA-256 digest
    """
    sha256 = hashlib.sha256()
    sha256.update(blob_header(len(payload)))
    sha256.update(payload)
    return sha256.hexdigest()


def hash_file(path: Path) -> str:
    """Compute the content address of a file without loading it whole.

    The header needs the size up front, so it is taken from ``fstat`` on
    the open handle before streaming the body.
    """
    sha256 = hashlib.sha256()
    with path.open("rb") as f:
        size = os.fstat(f.fileno()).st_size
        sha256.update(blob_header(size))
        for chunk in iter(lambda: f.read(CHUNK_SIZE), b""):
            sha256.update(chunk)
    return sha256.hexdigest()


__all__ = [
    "blob_header",
    "hash_blob",
    "hash_file",
]

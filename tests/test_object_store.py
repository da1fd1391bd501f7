"""Test ObjectStore implementation."""

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from blobtrack.errors import ObjectNotFoundError, StorageError
from blobtrack.hashing import hash_blob
from blobtrack.object_store import ObjectStore, _validate_address


class TestAddressValidation:
    """Test address validation for security."""

    def test_valid_address(self):
        """Test valid 64-hex address."""
        address = "abcd1234" + "0" * 56
        assert _validate_address(address) == address

    def test_invalid_length(self):
        """Test invalid hex length."""
        with pytest.raises(ValueError, match="64 lowercase hex"):
            _validate_address("abcd")

    def test_uppercase_rejected(self):
        """Addresses are lowercase only."""
        with pytest.raises(ValueError):
            _validate_address("A" * 64)

    def test_path_traversal_attempt(self):
        """Test path traversal in address is blocked."""
        with pytest.raises(ValueError):
            _validate_address("../../../etc/passwd" + "0" * 45)


class TestObjectStoreBasic:
    """Test basic ObjectStore functionality."""

    @pytest.fixture
    def store(self, tmp_path):
        return ObjectStore(tmp_path / "objects")

    def test_path_for_sharding(self, store):
        """Two-char prefix directory, remaining 62 chars as filename."""
        address = "ab" + "c" * 62
        path = store.path_for(address)

        assert path.parent.name == "ab"
        assert path.name == "c" * 62
        assert path.parent.parent == store.objdir

    def test_has_nonexistent(self, store):
        assert not store.has("0" * 64)

    def test_has_invalid_address(self, store):
        """Invalid addresses are simply not present."""
        assert not store.has("not-an-address")

    def test_put_writes_payload(self, store):
        """Payload lands at the sharded path."""
        payload = b"hello"
        address = hash_blob(payload)

        assert store.put(address, payload) is True

        path = store.path_for(address)
        assert path.read_bytes() == payload
        assert store.has(address)

    def test_put_creates_shard_directory(self, store):
        """Shard directory is created on demand, objects dir included."""
        assert not store.objdir.exists()
        address = store.put_bytes(b"data")
        assert store.path_for(address).parent.is_dir()

    def test_put_tolerates_existing_shard(self, store):
        """Two objects sharing a prefix share a directory."""
        a = "ab" + "1" * 62
        b = "ab" + "2" * 62
        store.put(a, b"one")
        store.put(b, b"two")
        assert sorted(p.name for p in (store.objdir / "ab").iterdir()) == ["1" * 62, "2" * 62]

    def test_objects_are_read_only(self, store):
        """Stored objects can't be modified in place."""
        address = store.put_bytes(b"immutable")
        mode = store.path_for(address).stat().st_mode
        assert not mode & (stat.S_IWUSR | stat.S_IWGRP | stat.S_IWOTH)

    def test_no_temp_files_left(self, store):
        """Only the object itself remains in the shard directory."""
        address = store.put_bytes(b"clean")
        shard = store.path_for(address).parent
        assert [p.name for p in shard.iterdir()] == [address[2:]]


class TestIdempotentPut:
    """Storing the same content twice leaves a single untouched object."""

    @pytest.fixture
    def store(self, tmp_path):
        return ObjectStore(tmp_path / "objects")

    def test_second_put_is_noop(self, store):
        payload = b"same content"
        address = hash_blob(payload)

        assert store.put(address, payload) is True
        path = store.path_for(address)
        before = path.stat()

        assert store.put(address, payload) is False

        after = path.stat()
        assert after.st_mtime_ns == before.st_mtime_ns
        assert after.st_ino == before.st_ino
        assert path.read_bytes() == payload

    def test_exactly_one_object_file(self, store):
        store.put_bytes(b"dup")
        store.put_bytes(b"dup")
        files = [p for p in store.objdir.rglob("*") if p.is_file()]
        assert len(files) == 1

    def test_second_put_does_not_rewrite(self, store):
        """An existing object is never opened for writing again."""
        address = store.put_bytes(b"once")
        with patch("blobtrack.object_store.tempfile.NamedTemporaryFile") as mock_tmp:
            assert store.put(address, b"once") is False
            mock_tmp.assert_not_called()


class TestPutFailures:
    """Filesystem failures surface as StorageError."""

    def test_unwritable_objects_dir(self, tmp_path):
        objdir = tmp_path / "objects"
        objdir.mkdir()
        store = ObjectStore(objdir)

        with patch.object(Path, "mkdir", side_effect=PermissionError(13, "Permission denied")):
            with pytest.raises(StorageError, match="Permission denied") as exc_info:
                store.put_bytes(b"payload")

        assert exc_info.value.path is not None
        assert isinstance(exc_info.value.cause, PermissionError)

    def test_failed_write_cleans_temp_file(self, tmp_path):
        store = ObjectStore(tmp_path / "objects")
        address = hash_blob(b"payload")

        with patch("blobtrack.object_store.os.replace", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(StorageError, match="No space left"):
                store.put(address, b"payload")

        shard = store.path_for(address).parent
        assert list(shard.iterdir()) == []
        assert not store.has(address)

    def test_put_file_missing_source(self, tmp_path):
        store = ObjectStore(tmp_path / "objects")
        with pytest.raises(StorageError, match="Failed to read"):
            store.put_file(tmp_path / "missing.txt")


class TestGet:
    """Test reading objects back."""

    @pytest.fixture
    def store(self, tmp_path):
        return ObjectStore(tmp_path / "objects")

    def test_get_returns_payload(self, store):
        payload = os.urandom(1024)
        address = store.put_bytes(payload)
        assert store.get(address) == payload

    def test_get_missing(self, store):
        with pytest.raises(ObjectNotFoundError):
            store.get("f" * 64)

    def test_get_invalid_address(self, store):
        with pytest.raises(ValueError):
            store.get("xyz")

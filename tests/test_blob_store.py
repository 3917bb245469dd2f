import pytest

from drivecore.core.exceptions import StorageError
from drivecore.utils.blob_store import LocalBlobStore, build_blob_key, stored_blob


class TestLocalBlobStore:
    def test_put_exists_delete(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))

        ref = store.put("u1/2024/01/abc.txt", b"data")

        assert store.exists(ref)
        assert (tmp_path / "u1" / "2024" / "01" / "abc.txt").read_bytes() == b"data"
        store.delete(ref)
        assert not store.exists(ref)

    def test_deleting_missing_blob_is_not_an_error(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))

        store.delete("u1/nothing.txt")

    def test_path_escape_is_refused(self, tmp_path):
        store = LocalBlobStore(str(tmp_path / "root"))

        with pytest.raises(StorageError):
            store.put("../outside.txt", b"x")

    def test_key_keeps_extension(self):
        key = build_blob_key("u1", "Report.PDF")

        assert key.startswith("u1/")
        assert key.endswith(".pdf")
        assert build_blob_key("u1", "Report.PDF") != key


class TestStoredBlob:
    def test_blob_is_kept_when_block_succeeds(self, blob_store):
        with stored_blob(blob_store, "k", b"x") as ref:
            pass

        assert blob_store.exists(ref)

    def test_blob_is_removed_when_block_fails(self, blob_store):
        with pytest.raises(RuntimeError):
            with stored_blob(blob_store, "k", b"x"):
                raise RuntimeError("commit failed")

        assert not blob_store.exists("k")

    def test_cleanup_failure_keeps_original_error(self, blob_store):
        blob_store.fail_delete = True

        with pytest.raises(RuntimeError):
            with stored_blob(blob_store, "k", b"x"):
                raise RuntimeError("commit failed")


class TestLocalBlobRead:
    def test_get_returns_stored_bytes(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))
        ref = store.put("u1/a.bin", b"\x00\x01payload")

        assert store.get(ref) == b"\x00\x01payload"

    def test_missing_blob_raises_storage_error(self, tmp_path):
        store = LocalBlobStore(str(tmp_path))

        with pytest.raises(StorageError):
            store.get("u1/missing.bin")

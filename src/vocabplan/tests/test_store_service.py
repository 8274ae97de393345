"""Tests for the blob store."""
import pytest
from sqlalchemy.orm import Session

from vocabplan.exceptions import StaleWriteError
from vocabplan.models.models import UserBlob
from vocabplan.services.store_service import BlobStore


def test_load_missing_blob(store: BlobStore) -> None:
    """Test that an absent blob loads as nothing at version zero."""
    assert store.load("u1", "plan") == (None, 0)


def test_save_and_load(store: BlobStore) -> None:
    """Test round trip and version growth."""
    assert store.save("u1", "progress", {"apple": {"stage": 1}}) == 1
    assert store.save("u1", "progress", {"apple": {"stage": 2}}) == 2
    assert store.load("u1", "progress") == ({"apple": {"stage": 2}}, 2)


def test_blobs_are_scoped_per_user(store: BlobStore) -> None:
    """Test that users never see each other's blobs."""
    store.save("u1", "plan", {"id": "a"})
    store.save("u2", "plan", {"id": "b"})
    assert store.load("u1", "plan")[0] == {"id": "a"}
    assert store.load("u2", "plan")[0] == {"id": "b"}
    assert sorted(store.get_user_ids()) == ["u1", "u2"]


def test_stale_write_is_rejected(store: BlobStore) -> None:
    """Test that a save based on an outdated version fails."""
    store.save("u1", "plan", {"id": "a"}, expected_version=0)
    store.save("u1", "plan", {"id": "b"}, expected_version=1)

    with pytest.raises(StaleWriteError) as exc_info:
        store.save("u1", "plan", {"id": "c"}, expected_version=1)
    assert exc_info.value.expected_version == 1
    assert exc_info.value.current_version == 2
    assert store.load("u1", "plan") == ({"id": "b"}, 2)


def test_first_write_expects_version_zero(store: BlobStore) -> None:
    """Test that a blob created elsewhere makes a first write stale."""
    store.save("u1", "plan", {"id": "a"})
    with pytest.raises(StaleWriteError):
        store.save("u1", "plan", {"id": "b"}, expected_version=0)


def test_corrupt_blob_is_ignored(store: BlobStore, db: Session) -> None:
    """Test that undecodable data loads as nothing but keeps its version."""
    db.add(UserBlob(user_id="u1", key="progress", value="{oops", version=3))
    db.commit()
    assert store.load("u1", "progress") == (None, 3)


def test_delete_and_clear(store: BlobStore) -> None:
    """Test removing blobs."""
    store.save("u1", "plan", {})
    store.save("u1", "progress", {})
    store.save("u2", "plan", {})

    assert store.delete("u1", "plan")
    assert not store.delete("u1", "plan")
    assert store.clear_user("u1") == 1
    assert store.load("u1", "progress") == (None, 0)
    assert store.get_user_ids() == ["u2"]


def test_unicode_is_kept(store: BlobStore) -> None:
    """Test that non-ascii text survives storage."""
    store.save("u1", "test_history", [{"mistakes": ["苹果"]}])
    assert store.load("u1", "test_history")[0] == [{"mistakes": ["苹果"]}]


def test_save_many(store: BlobStore) -> None:
    """Test saving several blobs together."""
    versions = store.save_many("u1", {"plan": {"id": "a"}, "progress": {}}, {"plan": 0, "progress": 0})
    assert versions == {"plan": 1, "progress": 1}

    versions = store.save_many("u1", {"plan": {"id": "b"}, "progress": {"apple": {}}}, versions)
    assert versions == {"plan": 2, "progress": 2}
    assert store.load("u1", "plan") == ({"id": "b"}, 2)


def test_save_many_is_all_or_nothing(store: BlobStore) -> None:
    """Test that one stale blob keeps every blob of the batch unwritten."""
    store.save("u1", "plan", {"id": "a"})
    store.save("u1", "progress", {"apple": {}})
    store.save("u1", "progress", {"apple": {}, "banana": {}})

    with pytest.raises(StaleWriteError) as exc_info:
        store.save_many("u1", {"plan": {"id": "b"}, "progress": {}}, {"plan": 1, "progress": 1})

    assert exc_info.value.key == "progress"
    assert store.load("u1", "plan") == ({"id": "a"}, 1)
    assert store.load("u1", "progress") == ({"apple": {}, "banana": {}}, 2)


if __name__ == "__main__":
    pytest.main([__file__])

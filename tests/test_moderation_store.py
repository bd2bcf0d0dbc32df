"""Tests for the moderation store."""

import threading

import pytest

from fotofi.storage.moderation_store import (
    ImageNotFoundError,
    ImageRecord,
    ImageStatus,
    InMemoryModerationStore,
    ModerationAction,
)


@pytest.fixture
def store():
    """Create a fresh moderation store for each test."""
    return InMemoryModerationStore()


def make_record(image_id, file_name="photo.jpg"):
    return ImageRecord(
        id=image_id,
        url=f"https://media.test/{file_name}",
        file_name=file_name,
        uploaded_at="2024-05-01T12:00:00.000Z",
    )


def test_new_record_is_pending(store):
    store.add(make_record("img-1"))

    retrieved = store.get("img-1")
    assert retrieved is not None
    assert retrieved.status == ImageStatus.PENDING


def test_get_nonexistent_record(store):
    assert store.get("nope") is None


def test_list_all_keeps_every_status_in_upload_order(store):
    for image_id in ["a", "b", "c"]:
        store.add(make_record(image_id))
    store.set_status("b", ModerationAction.REJECT)

    assert [record.id for record in store.list_all()] == ["a", "b", "c"]


def test_approve_moves_image_to_gallery(store):
    store.add(make_record("a"))
    store.add(make_record("b"))

    updated = store.set_status("b", ModerationAction.APPROVE)

    assert updated.status == ImageStatus.APPROVED
    assert [record.id for record in store.list_approved()] == ["b"]


def test_reject_after_approve_hides_image(store):
    store.add(make_record("a"))
    store.set_status("a", ModerationAction.APPROVE)
    store.set_status("a", ModerationAction.REJECT)

    assert store.get("a").status == ImageStatus.REJECTED
    assert store.list_approved() == []


def test_set_status_unknown_image(store):
    with pytest.raises(ImageNotFoundError):
        store.set_status("missing", ModerationAction.APPROVE)


def test_returned_records_are_copies(store):
    store.add(make_record("a"))

    copy = store.get("a")
    copy.status = ImageStatus.APPROVED

    assert store.get("a").status == ImageStatus.PENDING


def test_public_dict_hides_status():
    record = make_record("a", file_name="123-photo.jpg")

    assert record.to_public_dict() == {
        "id": "a",
        "url": "https://media.test/123-photo.jpg",
        "fileName": "123-photo.jpg",
        "uploadedAt": "2024-05-01T12:00:00.000Z",
    }
    assert record.to_dict()["status"] == "pending"


def test_concurrent_adds_are_all_kept(store):
    def add_many(prefix):
        for i in range(200):
            store.add(make_record(f"{prefix}-{i}"))

    threads = [threading.Thread(target=add_many, args=(name,)) for name in "abcd"]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(store.list_all()) == 800

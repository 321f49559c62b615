"""
Unit tests for the storage port

Every test runs against the SQLAlchemy store and the in-memory store.
"""

from datetime import datetime, timedelta

import pytest

from sendeasy.core.exceptions import PasswordCollision, StorageFailure
from sendeasy.core.schemas.transfer import FileItemCreate

pytestmark = pytest.mark.unit

NOW = datetime(2024, 3, 10, 9, 30)


def _file(name="photo.png", url="/api/files/download/abc_photo.png", is_image=True):
    return FileItemCreate(name=name, size=10, type="image/png" if is_image else "text/plain",
                          url=url, is_image=is_image)


def _session(store, password="ABC123", device_id="device-1", created_at=NOW, hours=24):
    return store.insert_session(password, device_id, created_at, created_at + timedelta(hours=hours))


class TestSessions:
    def test_insert_and_lookup(self, store):
        session = _session(store)

        assert session.is_active
        assert store.get_session(session.id) == session
        assert store.find_session_by_password("ABC123", NOW).id == session.id
        assert store.find_active_session_for_device("device-1", NOW).id == session.id

    def test_expired_session_not_found_by_password(self, store):
        session = _session(store)
        assert store.find_session_by_password("ABC123", session.expires_at) is None
        assert store.find_active_session_for_device("device-1", session.expires_at) is None

    def test_duplicate_active_password_collides(self, store):
        _session(store)
        with pytest.raises(PasswordCollision):
            _session(store, device_id="device-2")

    def test_password_reusable_after_deactivation(self, store):
        first = _session(store)
        assert store.deactivate_device_sessions("device-1") == 1

        second = _session(store)
        assert second.id != first.id
        assert store.get_session(first.id).is_active is False
        assert store.find_session_by_password("ABC123", NOW).id == second.id

    def test_unknown_session(self, store):
        assert store.get_session("missing") is None


class TestBlocks:
    def test_create_block_with_items(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=24), "hello", [_file()])

        assert block.session_id == session.id
        assert [item.content for item in block.text_items] == ["hello"]
        assert [item.name for item in block.file_items] == ["photo.png"]
        assert block.images == block.file_items
        assert block.files == []

    def test_create_block_without_text(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=24), None, [])
        assert block.text_items == []
        assert block.file_items == []

    def test_create_block_for_unknown_session_fails(self, store):
        with pytest.raises(StorageFailure):
            store.create_block("missing", NOW, NOW + timedelta(hours=24), "hello", [])

    def test_list_newest_first_and_hides_expired(self, store):
        session = _session(store)
        old = store.create_block(session.id, NOW, NOW + timedelta(hours=1), "old", [])
        new = store.create_block(session.id, NOW + timedelta(minutes=5), NOW + timedelta(hours=24), "new", [])

        assert [b.id for b in store.list_blocks(session.id, NOW + timedelta(minutes=10))] == [new.id, old.id]
        assert [b.id for b in store.list_blocks(session.id, NOW + timedelta(hours=1))] == [new.id]
        assert [b.id for b in store.list_blocks(session.id, NOW + timedelta(hours=1), include_expired=True)] == [
            new.id, old.id,
        ]

    def test_update_expiry_clears_flag(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=1), "x", [])
        store.mark_blocks_expired(NOW + timedelta(hours=2))

        updated = store.update_block_expiry(block.id, NOW + timedelta(days=2))
        assert updated.expires_at == NOW + timedelta(days=2)
        assert updated.is_expired is False
        assert store.update_block_expiry("missing", NOW) is None

    def test_delete_block_cascades(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=24), "x", [_file()])

        result = store.delete_block(block.id)
        assert result.count == 1
        assert result.file_urls == ["/api/files/download/abc_photo.png"]
        assert store.get_block(block.id) is None
        assert store.delete_text_item(block.text_items[0].id) is False
        assert store.delete_block(block.id).count == 0

    def test_delete_items(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=24), "x", [_file()])

        assert store.delete_text_item(block.text_items[0].id) is True
        result = store.delete_file_item(block.file_items[0].id)
        assert result.count == 1
        assert result.file_urls == [block.file_items[0].url]

        remaining = store.get_block(block.id)
        assert remaining is not None
        assert remaining.text_items == [] and remaining.file_items == []


class TestSweeping:
    def test_mark_expired_is_idempotent(self, store):
        session = _session(store)
        store.create_block(session.id, NOW, NOW + timedelta(hours=1), "x", [])

        assert store.mark_blocks_expired(NOW) == 0
        assert store.mark_blocks_expired(NOW + timedelta(hours=1)) == 1
        assert store.mark_blocks_expired(NOW + timedelta(hours=1)) == 0

    def test_purge_blocks(self, store):
        session = _session(store, hours=72)
        expired = store.create_block(session.id, NOW, NOW + timedelta(hours=1), "x", [_file()])
        live = store.create_block(session.id, NOW, NOW + timedelta(hours=48), "y", [])

        result = store.purge_blocks_expired_before(NOW + timedelta(hours=2))
        assert result.count == 1
        assert result.file_urls == [expired.file_items[0].url]
        assert store.get_block(expired.id) is None
        assert store.get_block(live.id) is not None

    def test_purge_sessions_takes_blocks_along(self, store):
        session = _session(store)
        block = store.create_block(session.id, NOW, NOW + timedelta(hours=48), "x", [_file()])

        result = store.purge_sessions_expired_before(NOW + timedelta(hours=25))
        assert result.count == 1
        assert result.file_urls == [block.file_items[0].url]
        assert store.get_session(session.id) is None
        assert store.get_block(block.id) is None

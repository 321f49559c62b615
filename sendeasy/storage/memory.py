"""Dict-backed implementation of the storage port."""

import threading
from datetime import datetime
from typing import Dict, List, Optional

from sendeasy.core.exceptions import PasswordCollision, StorageFailure
from sendeasy.core.schemas.session import SessionRecord
from sendeasy.core.schemas.transfer import (
    FileItemCreate,
    FileItemRecord,
    TextItemRecord,
    TransferBlockRecord,
)
from sendeasy.db.base import new_id
from sendeasy.storage.base import PurgeResult, TransferStore


class InMemoryTransferStore(TransferStore):
    """
    Process-local store with the same uniqueness and cascade rules as the
    relational store. Records are copied in and out so callers never share
    state with the store.
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._sessions: Dict[str, SessionRecord] = {}
        self._blocks: Dict[str, TransferBlockRecord] = {}
        self._text_items: Dict[str, TextItemRecord] = {}
        self._file_items: Dict[str, FileItemRecord] = {}

    def _assemble(self, block: TransferBlockRecord) -> TransferBlockRecord:
        text_items = sorted(
            (item for item in self._text_items.values() if item.transfer_block_id == block.id),
            key=lambda item: item.created_at,
        )
        file_items = sorted(
            (item for item in self._file_items.values() if item.transfer_block_id == block.id),
            key=lambda item: item.created_at,
        )
        return block.model_copy(
            update={
                "text_items": [item.model_copy() for item in text_items],
                "file_items": [item.model_copy() for item in file_items],
            }
        )

    def _remove_block(self, block_id: str) -> List[str]:
        self._blocks.pop(block_id, None)
        for item_id in [i.id for i in self._text_items.values() if i.transfer_block_id == block_id]:
            del self._text_items[item_id]
        urls = []
        for item_id in [i.id for i in self._file_items.values() if i.transfer_block_id == block_id]:
            urls.append(self._file_items.pop(item_id).url)
        return urls

    # Sessions

    def find_active_session_for_device(self, device_id: str, now: datetime) -> Optional[SessionRecord]:
        with self._lock:
            matches = [
                s for s in self._sessions.values()
                if s.device_id == device_id and s.is_valid_at(now)
            ]
            if not matches:
                return None
            return max(matches, key=lambda s: s.created_at).model_copy()

    def deactivate_device_sessions(self, device_id: str) -> int:
        with self._lock:
            changed = 0
            for session_id, record in list(self._sessions.items()):
                if record.device_id == device_id and record.is_active:
                    self._sessions[session_id] = record.model_copy(update={"is_active": False})
                    changed += 1
            return changed

    def insert_session(
        self, password: str, device_id: str, created_at: datetime, expires_at: datetime
    ) -> SessionRecord:
        with self._lock:
            for record in self._sessions.values():
                if not record.is_active:
                    continue
                if record.password == password or record.device_id == device_id:
                    raise PasswordCollision("An active session already uses this password")
            record = SessionRecord(
                id=new_id(),
                password=password,
                device_id=device_id,
                created_at=created_at,
                expires_at=expires_at,
                is_active=True,
            )
            self._sessions[record.id] = record
            return record.model_copy()

    def find_session_by_password(self, password: str, now: datetime) -> Optional[SessionRecord]:
        with self._lock:
            for record in self._sessions.values():
                if record.password == password and record.is_valid_at(now):
                    return record.model_copy()
            return None

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self._lock:
            record = self._sessions.get(session_id)
            return record.model_copy() if record else None

    # Transfer blocks

    def create_block(
        self,
        session_id: str,
        created_at: datetime,
        expires_at: datetime,
        text_content: Optional[str],
        files: List[FileItemCreate],
    ) -> TransferBlockRecord:
        with self._lock:
            if session_id not in self._sessions:
                # Mirrors the foreign key violation of the relational store
                raise StorageFailure(f"Session {session_id} does not exist")
            block = TransferBlockRecord(
                id=new_id(),
                session_id=session_id,
                created_at=created_at,
                expires_at=expires_at,
                is_expired=False,
            )
            self._blocks[block.id] = block
            if text_content is not None:
                item = TextItemRecord(
                    id=new_id(),
                    transfer_block_id=block.id,
                    content=text_content,
                    created_at=created_at,
                )
                self._text_items[item.id] = item
            for descriptor in files:
                file_item = FileItemRecord(
                    id=new_id(),
                    transfer_block_id=block.id,
                    created_at=created_at,
                    **descriptor.model_dump(),
                )
                self._file_items[file_item.id] = file_item
            return self._assemble(block)

    def get_block(self, block_id: str) -> Optional[TransferBlockRecord]:
        with self._lock:
            block = self._blocks.get(block_id)
            return self._assemble(block) if block else None

    def list_blocks(
        self, session_id: str, now: datetime, include_expired: bool = False
    ) -> List[TransferBlockRecord]:
        with self._lock:
            blocks = [
                b for b in self._blocks.values()
                if b.session_id == session_id and (include_expired or now < b.expires_at)
            ]
            blocks.sort(key=lambda b: b.id)
            blocks.sort(key=lambda b: b.created_at, reverse=True)
            return [self._assemble(b) for b in blocks]

    def update_block_expiry(self, block_id: str, expires_at: datetime) -> Optional[TransferBlockRecord]:
        with self._lock:
            block = self._blocks.get(block_id)
            if block is None:
                return None
            block = block.model_copy(update={"expires_at": expires_at, "is_expired": False})
            self._blocks[block_id] = block
            return self._assemble(block)

    def delete_block(self, block_id: str) -> PurgeResult:
        with self._lock:
            if block_id not in self._blocks:
                return PurgeResult()
            return PurgeResult(count=1, file_urls=self._remove_block(block_id))

    def delete_text_item(self, item_id: str) -> bool:
        with self._lock:
            return self._text_items.pop(item_id, None) is not None

    def delete_file_item(self, item_id: str) -> PurgeResult:
        with self._lock:
            item = self._file_items.pop(item_id, None)
            if item is None:
                return PurgeResult()
            return PurgeResult(count=1, file_urls=[item.url])

    # Sweeping

    def mark_blocks_expired(self, now: datetime) -> int:
        with self._lock:
            changed = 0
            for block_id, block in list(self._blocks.items()):
                if block.expires_at <= now and not block.is_expired:
                    self._blocks[block_id] = block.model_copy(update={"is_expired": True})
                    changed += 1
            return changed

    def purge_blocks_expired_before(self, cutoff: datetime) -> PurgeResult:
        with self._lock:
            expired = [b.id for b in self._blocks.values() if b.expires_at < cutoff]
            urls: List[str] = []
            for block_id in expired:
                urls.extend(self._remove_block(block_id))
            return PurgeResult(count=len(expired), file_urls=urls)

    def purge_sessions_expired_before(self, cutoff: datetime) -> PurgeResult:
        with self._lock:
            expired = [s.id for s in self._sessions.values() if s.expires_at < cutoff]
            urls: List[str] = []
            for session_id in expired:
                del self._sessions[session_id]
                for block_id in [b.id for b in self._blocks.values() if b.session_id == session_id]:
                    urls.extend(self._remove_block(block_id))
            return PurgeResult(count=len(expired), file_urls=urls)

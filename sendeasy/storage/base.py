"""
Storage port for sessions, transfer blocks and their items.

The lifecycle services depend only on this interface. Two implementations
exist: ``SqlAlchemyTransferStore`` for the relational database and
``InMemoryTransferStore`` for tests and throwaway deployments. Both must
enforce the same rules:

- at most one active session per password and per device; a violation on
  insert raises ``PasswordCollision``
- deleting a session or block removes all of its descendants
- every mutating call either fully applies or raises ``StorageFailure``
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel

from sendeasy.core.schemas.session import SessionRecord
from sendeasy.core.schemas.transfer import FileItemCreate, TransferBlockRecord


class PurgeResult(BaseModel):
    """Rows removed by a delete and the file URLs whose bytes are now orphaned"""

    count: int = 0
    file_urls: List[str] = []


class TransferStore(ABC):
    # Sessions

    @abstractmethod
    def find_active_session_for_device(self, device_id: str, now: datetime) -> Optional[SessionRecord]:
        """Active session of the device with ``now < expires_at``."""

    @abstractmethod
    def deactivate_device_sessions(self, device_id: str) -> int:
        """Flip every active session of the device to inactive."""

    @abstractmethod
    def insert_session(
        self, password: str, device_id: str, created_at: datetime, expires_at: datetime
    ) -> SessionRecord:
        """Insert an active session. Raises ``PasswordCollision`` on a uniqueness violation."""

    @abstractmethod
    def find_session_by_password(self, password: str, now: datetime) -> Optional[SessionRecord]:
        """Active, unexpired session holding ``password``."""

    @abstractmethod
    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        ...

    # Transfer blocks

    @abstractmethod
    def create_block(
        self,
        session_id: str,
        created_at: datetime,
        expires_at: datetime,
        text_content: Optional[str],
        files: List[FileItemCreate],
    ) -> TransferBlockRecord:
        """Insert a block with at most one text item and the given file items."""

    @abstractmethod
    def get_block(self, block_id: str) -> Optional[TransferBlockRecord]:
        ...

    @abstractmethod
    def list_blocks(
        self, session_id: str, now: datetime, include_expired: bool = False
    ) -> List[TransferBlockRecord]:
        """Blocks of a session, newest first, with children.

        Without ``include_expired`` only blocks with ``now < expires_at`` are returned.
        """

    @abstractmethod
    def update_block_expiry(self, block_id: str, expires_at: datetime) -> Optional[TransferBlockRecord]:
        """Set ``expires_at`` and clear ``is_expired``. None when the block does not exist."""

    @abstractmethod
    def delete_block(self, block_id: str) -> PurgeResult:
        ...

    @abstractmethod
    def delete_text_item(self, item_id: str) -> bool:
        ...

    @abstractmethod
    def delete_file_item(self, item_id: str) -> PurgeResult:
        ...

    # Sweeping

    @abstractmethod
    def mark_blocks_expired(self, now: datetime) -> int:
        """Set ``is_expired`` on blocks with ``expires_at <= now``; returns rows changed."""

    @abstractmethod
    def purge_blocks_expired_before(self, cutoff: datetime) -> PurgeResult:
        """Delete blocks with ``expires_at < cutoff`` and their items."""

    @abstractmethod
    def purge_sessions_expired_before(self, cutoff: datetime) -> PurgeResult:
        """Delete sessions with ``expires_at < cutoff`` and everything below them."""

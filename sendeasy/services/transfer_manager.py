"""
Transfer Lifecycle Manager - creates, lists, extends and deletes transfer blocks
"""

import logging
from datetime import timedelta, tzinfo
from typing import List, Optional, Sequence, Tuple

from sendeasy.core.exceptions import (
    NotFound,
    PayloadTooLarge,
    SessionInvalid,
    StorageFailure,
    ValidationError,
)
from sendeasy.core.schemas.transfer import (
    FileDescriptor,
    FileItemCreate,
    TransferBlockRecord,
)
from sendeasy.core.utils.clock import Clock, end_of_next_day, utcnow
from sendeasy.services.file_storage import FileStorage
from sendeasy.storage.base import TransferStore

logger = logging.getLogger(__name__)

# (name, size, media type, bytes) for uploads that arrive as raw bytes
RawUpload = Tuple[str, int, str, bytes]


def is_image_type(media_type: str) -> bool:
    return media_type.lower().startswith("image/")


class TransferManager:
    """
    Owns the transfer block rules.

    New blocks live for ``transfer_ttl`` (rolling). Each file, inline or
    uploaded, must fit in ``max_file_bytes`` when that is set. Extending
    moves the expiry to the end of the next calendar day in ``tz``. Deletes are
    idempotent and report whether a row was removed; the stored bytes are
    cleaned up afterwards on a best-effort basis.
    """

    def __init__(
        self,
        store: TransferStore,
        file_storage: FileStorage,
        transfer_ttl: timedelta = timedelta(hours=24),
        tz: Optional[tzinfo] = None,
        max_file_bytes: Optional[int] = None,
        clock: Clock = utcnow,
    ):
        self.store = store
        self.file_storage = file_storage
        self.transfer_ttl = transfer_ttl
        self.tz = tz
        self.max_file_bytes = max_file_bytes
        self.clock = clock

    def _require_valid_session(self, session_id: str) -> None:
        if not session_id:
            raise ValidationError("Session ID is required")
        session = self.store.get_session(session_id)
        if session is None or not session.is_valid_at(self.clock()):
            raise SessionInvalid("Invalid or expired session")

    def _check_size(self, name: str, data: bytes) -> None:
        if self.max_file_bytes is not None and len(data) > self.max_file_bytes:
            raise PayloadTooLarge(f"File '{name}' exceeds the {self.max_file_bytes} byte limit")

    def _discard_files(self, urls: Sequence[str]) -> None:
        for url in urls:
            self.file_storage.delete(url)

    def _store_files(
        self, descriptors: Sequence[FileDescriptor], uploads: Sequence[RawUpload]
    ) -> Tuple[List[FileItemCreate], List[str]]:
        """Save inline bytes; return item metadata and the URLs saved here.

        Bytes saved before a failure are deleted again.
        """
        items: List[FileItemCreate] = []
        saved_urls: List[str] = []
        try:
            for descriptor in descriptors:
                size = descriptor.size
                if descriptor.url is not None:
                    url = descriptor.url
                else:
                    try:
                        data = descriptor.decode_content()
                    except ValueError as e:
                        raise ValidationError(str(e)) from e
                    self._check_size(descriptor.name, data)
                    # Record what was stored, not what the client declared
                    size = len(data)
                    url = self.file_storage.save(data, descriptor.name, descriptor.type)
                    saved_urls.append(url)
                items.append(FileItemCreate(
                    name=descriptor.name,
                    size=size,
                    type=descriptor.type,
                    url=url,
                    is_image=is_image_type(descriptor.type),
                ))
            for name, size, media_type, data in uploads:
                self._check_size(name, data)
                url = self.file_storage.save(data, name, media_type)
                saved_urls.append(url)
                items.append(FileItemCreate(
                    name=name,
                    size=size,
                    type=media_type,
                    url=url,
                    is_image=is_image_type(media_type),
                ))
        except (StorageFailure, ValidationError, PayloadTooLarge):
            self._discard_files(saved_urls)
            raise
        return items, saved_urls

    def create_transfer_block(
        self,
        session_id: str,
        text_content: Optional[str] = None,
        files: Sequence[FileDescriptor] = (),
        uploads: Sequence[RawUpload] = (),
    ) -> TransferBlockRecord:
        """Create a block under a valid session.

        Whitespace-only text is dropped silently; other text becomes exactly
        one trimmed text item. Each file becomes one file item.

        Raises:
            SessionInvalid: if the session is missing, inactive or expired
            ValidationError: if a file's inline content is not base64
            PayloadTooLarge: if a file is over ``max_file_bytes``
            StorageFailure: if saving bytes or the metadata insert fails
        """
        self._require_valid_session(session_id)

        text = text_content.strip() if text_content else ""
        items, saved_urls = self._store_files(files, uploads)

        now = self.clock()
        try:
            block = self.store.create_block(
                session_id=session_id,
                created_at=now,
                expires_at=now + self.transfer_ttl,
                text_content=text or None,
                files=items,
            )
        except StorageFailure:
            self._discard_files(saved_urls)
            raise

        logger.info(
            "Created transfer block",
            extra={
                "block_id": block.id,
                "session_id": session_id,
                "text_items": len(block.text_items),
                "file_items": len(block.file_items),
            },
        )
        return block

    def get_transfer_blocks(
        self, session_id: str, include_expired: bool = False
    ) -> List[TransferBlockRecord]:
        """Blocks of a session, newest first.

        Expired blocks are left out unless ``include_expired`` is set, in
        which case blocks past expiry but not yet purged are returned with
        ``is_expired`` set.
        """
        now = self.clock()
        blocks = self.store.list_blocks(session_id, now, include_expired=include_expired)
        return [
            block.model_copy(update={"is_expired": True})
            if not block.is_expired and block.expires_at <= now
            else block
            for block in blocks
        ]

    def extend_transfer_block(self, block_id: str) -> TransferBlockRecord:
        """Move expiry to 23:59:59.999 of the next calendar day and clear the expired flag.

        Raises:
            NotFound: if the block does not exist
        """
        block = self.store.get_block(block_id)
        if block is None:
            raise NotFound("Transfer block not found")

        new_expiry = end_of_next_day(self.clock(), self.tz)
        if block.expires_at > new_expiry:
            # Expiry only ever moves forward
            new_expiry = block.expires_at

        updated = self.store.update_block_expiry(block_id, new_expiry)
        if updated is None:
            raise NotFound("Transfer block not found")

        logger.info("Extended transfer block", extra={"block_id": block_id, "expires_at": new_expiry})
        return updated

    def delete_transfer_block(self, block_id: str) -> bool:
        result = self.store.delete_block(block_id)
        if result.count:
            logger.info("Deleted transfer block", extra={"block_id": block_id})
            self._discard_files(result.file_urls)
        return bool(result.count)

    def delete_text_item(self, item_id: str) -> bool:
        deleted = self.store.delete_text_item(item_id)
        if deleted:
            logger.info("Deleted text item", extra={"item_id": item_id})
        return deleted

    def delete_file_item(self, item_id: str) -> bool:
        result = self.store.delete_file_item(item_id)
        if result.count:
            logger.info("Deleted file item", extra={"item_id": item_id})
            self._discard_files(result.file_urls)
        return bool(result.count)

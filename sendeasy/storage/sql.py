"""Relational implementation of the storage port on SQLAlchemy."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Generator, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from sendeasy.core.exceptions import PasswordCollision, StorageFailure
from sendeasy.core.schemas.session import SessionRecord
from sendeasy.core.schemas.transfer import FileItemCreate, TransferBlockRecord
from sendeasy.db.models import FileItem, ShareSession, TextItem, TransferBlock
from sendeasy.storage.base import PurgeResult, TransferStore

logger = logging.getLogger(__name__)

_WITH_ITEMS = (selectinload(TransferBlock.text_items), selectinload(TransferBlock.file_items))


class SqlAlchemyTransferStore(TransferStore):
    """
    Store backed by a SQLAlchemy session.

    Each mutating call is one committed unit of work. Deletes go through the
    ORM with children loaded, so the cascade is applied here as well as by
    the ``ON DELETE CASCADE`` foreign keys.
    """

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _unit_of_work(self, action: str, commit: bool = True) -> Generator[Session, None, None]:
        try:
            yield self.db
            if commit:
                self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while {action}: {e}", extra={"error_type": type(e).__name__})
            raise StorageFailure(f"Database error while {action}") from e

    # Sessions

    def find_active_session_for_device(self, device_id: str, now: datetime) -> Optional[SessionRecord]:
        with self._unit_of_work("looking up device session", commit=False) as db:
            row = db.scalar(
                select(ShareSession)
                .where(
                    ShareSession.device_id == device_id,
                    ShareSession.is_active.is_(True),
                    ShareSession.expires_at > now,
                )
                .order_by(ShareSession.created_at.desc())
                .limit(1)
            )
            return SessionRecord.model_validate(row) if row else None

    def deactivate_device_sessions(self, device_id: str) -> int:
        with self._unit_of_work("deactivating device sessions") as db:
            result = db.execute(
                update(ShareSession)
                .where(ShareSession.device_id == device_id, ShareSession.is_active.is_(True))
                .values(is_active=False)
            )
        return result.rowcount or 0

    def insert_session(
        self, password: str, device_id: str, created_at: datetime, expires_at: datetime
    ) -> SessionRecord:
        row = ShareSession(
            password=password,
            device_id=device_id,
            created_at=created_at,
            expires_at=expires_at,
            is_active=True,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise PasswordCollision("An active session already uses this password") from e
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error while creating session: {e}")
            raise StorageFailure("Database error while creating session") from e
        with self._unit_of_work("reading created session", commit=False):
            return SessionRecord.model_validate(row)

    def find_session_by_password(self, password: str, now: datetime) -> Optional[SessionRecord]:
        with self._unit_of_work("validating password", commit=False) as db:
            row = db.scalar(
                select(ShareSession).where(
                    ShareSession.password == password,
                    ShareSession.is_active.is_(True),
                    ShareSession.expires_at > now,
                )
            )
            return SessionRecord.model_validate(row) if row else None

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        with self._unit_of_work("loading session", commit=False) as db:
            row = db.get(ShareSession, session_id)
            return SessionRecord.model_validate(row) if row else None

    # Transfer blocks

    def create_block(
        self,
        session_id: str,
        created_at: datetime,
        expires_at: datetime,
        text_content: Optional[str],
        files: List[FileItemCreate],
    ) -> TransferBlockRecord:
        with self._unit_of_work("creating transfer block") as db:
            block = TransferBlock(
                session_id=session_id,
                created_at=created_at,
                expires_at=expires_at,
                is_expired=False,
            )
            if text_content is not None:
                block.text_items.append(TextItem(content=text_content, created_at=created_at))
            for descriptor in files:
                block.file_items.append(
                    FileItem(created_at=created_at, **descriptor.model_dump())
                )
            db.add(block)
            db.flush()
            block_id = block.id
        created = self.get_block(block_id)
        if created is None:
            raise StorageFailure("Transfer block vanished after insert")
        return created

    def get_block(self, block_id: str) -> Optional[TransferBlockRecord]:
        with self._unit_of_work("loading transfer block", commit=False) as db:
            row = db.scalar(select(TransferBlock).options(*_WITH_ITEMS).where(TransferBlock.id == block_id))
            return TransferBlockRecord.model_validate(row) if row else None

    def list_blocks(
        self, session_id: str, now: datetime, include_expired: bool = False
    ) -> List[TransferBlockRecord]:
        query = select(TransferBlock).options(*_WITH_ITEMS).where(TransferBlock.session_id == session_id)
        if not include_expired:
            query = query.where(TransferBlock.expires_at > now)
        query = query.order_by(TransferBlock.created_at.desc(), TransferBlock.id)
        with self._unit_of_work("listing transfer blocks", commit=False) as db:
            return [TransferBlockRecord.model_validate(row) for row in db.scalars(query)]

    def update_block_expiry(self, block_id: str, expires_at: datetime) -> Optional[TransferBlockRecord]:
        with self._unit_of_work("extending transfer block") as db:
            result = db.execute(
                update(TransferBlock)
                .where(TransferBlock.id == block_id)
                .values(expires_at=expires_at, is_expired=False)
            )
        if not result.rowcount:
            return None
        return self.get_block(block_id)

    def delete_block(self, block_id: str) -> PurgeResult:
        with self._unit_of_work("deleting transfer block") as db:
            row = db.scalar(select(TransferBlock).options(*_WITH_ITEMS).where(TransferBlock.id == block_id))
            if row is None:
                return PurgeResult()
            urls = [item.url for item in row.file_items]
            db.delete(row)
        return PurgeResult(count=1, file_urls=urls)

    def delete_text_item(self, item_id: str) -> bool:
        with self._unit_of_work("deleting text item") as db:
            row = db.get(TextItem, item_id)
            if row is None:
                return False
            db.delete(row)
        return True

    def delete_file_item(self, item_id: str) -> PurgeResult:
        with self._unit_of_work("deleting file item") as db:
            row = db.get(FileItem, item_id)
            if row is None:
                return PurgeResult()
            url = row.url
            db.delete(row)
        return PurgeResult(count=1, file_urls=[url])

    # Sweeping

    def mark_blocks_expired(self, now: datetime) -> int:
        with self._unit_of_work("marking expired blocks") as db:
            result = db.execute(
                update(TransferBlock)
                .where(TransferBlock.expires_at <= now, TransferBlock.is_expired.is_(False))
                .values(is_expired=True)
            )
        return result.rowcount or 0

    def purge_blocks_expired_before(self, cutoff: datetime) -> PurgeResult:
        with self._unit_of_work("purging expired blocks") as db:
            rows = list(db.scalars(
                select(TransferBlock).options(*_WITH_ITEMS).where(TransferBlock.expires_at < cutoff)
            ))
            urls = [item.url for row in rows for item in row.file_items]
            for row in rows:
                db.delete(row)
        return PurgeResult(count=len(rows), file_urls=urls)

    def purge_sessions_expired_before(self, cutoff: datetime) -> PurgeResult:
        with self._unit_of_work("purging expired sessions") as db:
            rows = list(db.scalars(
                select(ShareSession)
                .options(
                    selectinload(ShareSession.blocks).selectinload(TransferBlock.text_items),
                    selectinload(ShareSession.blocks).selectinload(TransferBlock.file_items),
                )
                .where(ShareSession.expires_at < cutoff)
            ))
            urls = [item.url for row in rows for block in row.blocks for item in block.file_items]
            for row in rows:
                db.delete(row)
        return PurgeResult(count=len(rows), file_urls=urls)

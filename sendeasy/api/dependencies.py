"""Dependency providers that assemble the lifecycle services for each request."""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from sendeasy.core.config import settings
from sendeasy.core.passwords import PasswordGenerator
from sendeasy.core.utils.clock import Clock, resolve_timezone, utcnow
from sendeasy.db.session import get_db, get_db_sync
from sendeasy.services.file_storage import FileStorage, create_file_storage
from sendeasy.services.session_manager import SessionManager
from sendeasy.services.sweeper import ExpirationSweeper, SweepReport
from sendeasy.services.transfer_manager import TransferManager
from sendeasy.storage.base import TransferStore
from sendeasy.storage.sql import SqlAlchemyTransferStore


def get_store(db: Session = Depends(get_db)) -> TransferStore:
    return SqlAlchemyTransferStore(db)


@lru_cache(maxsize=1)
def get_file_storage() -> FileStorage:
    return create_file_storage(settings)


def get_clock() -> Clock:
    return utcnow


def get_session_manager(
    store: TransferStore = Depends(get_store),
    clock: Clock = Depends(get_clock),
) -> SessionManager:
    return SessionManager(
        store,
        password_generator=PasswordGenerator(settings.password_policy),
        session_ttl=timedelta(hours=settings.session_ttl_hours),
        clock=clock,
    )


def get_transfer_manager(
    store: TransferStore = Depends(get_store),
    file_storage: FileStorage = Depends(get_file_storage),
    clock: Clock = Depends(get_clock),
) -> TransferManager:
    return TransferManager(
        store,
        file_storage,
        transfer_ttl=timedelta(hours=settings.transfer_ttl_hours),
        tz=resolve_timezone(settings.timezone),
        max_file_bytes=settings.max_upload_bytes,
        clock=clock,
    )


def run_sweep_once(clock: Clock = utcnow) -> SweepReport:
    """Open a database session and run one expiration sweep."""
    with get_db_sync() as db:
        sweeper = ExpirationSweeper(
            SqlAlchemyTransferStore(db),
            file_storage=get_file_storage(),
            grace=timedelta(hours=settings.expired_grace_hours),
            clock=clock,
        )
        return sweeper.sweep()

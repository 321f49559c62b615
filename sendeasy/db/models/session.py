from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sendeasy.db.base import Base

if TYPE_CHECKING:
    from sendeasy.db.models.transfer import TransferBlock


class ShareSession(Base):
    """A password-authenticated context binding one device to its transfer blocks"""

    # Base provides: id, created_at
    password: Mapped[str] = mapped_column(String(6), nullable=False)
    device_id: Mapped[str] = mapped_column(String, nullable=False, index=True)
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    blocks: Mapped[List["TransferBlock"]] = relationship(
        "TransferBlock",
        back_populates="session",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        # At most one active session per password and per device
        Index(
            "uq_share_session_active_password",
            "password",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
        Index(
            "uq_share_session_active_device_id",
            "device_id",
            unique=True,
            sqlite_where=text("is_active = 1"),
            postgresql_where=text("is_active"),
        ),
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<ShareSession(id={self.id!r}, device_id={self.device_id!r}, is_active={self.is_active})>"

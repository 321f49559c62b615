from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from sendeasy.db.base import Base

# Handle circular imports
if TYPE_CHECKING:
    from sendeasy.db.models.session import ShareSession


class TransferBlock(Base):
    """One send event: zero or one text item and any number of file items"""

    session_id: Mapped[str] = mapped_column(
        ForeignKey("share_session.id", ondelete="CASCADE"), nullable=False, index=True
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, index=True)
    is_expired: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # Relationships
    session: Mapped["ShareSession"] = relationship("ShareSession", back_populates="blocks")
    text_items: Mapped[List["TextItem"]] = relationship(
        "TextItem",
        back_populates="block",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="TextItem.created_at",
    )
    file_items: Mapped[List["FileItem"]] = relationship(
        "FileItem",
        back_populates="block",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FileItem.created_at",
    )

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<TransferBlock(id={self.id!r}, session_id={self.session_id!r}, expires_at={self.expires_at})>"


class TextItem(Base):
    """Free text attached to a transfer block"""

    transfer_block_id: Mapped[str] = mapped_column(
        ForeignKey("transfer_block.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    block: Mapped["TransferBlock"] = relationship("TransferBlock", back_populates="text_items")


class FileItem(Base):
    """Metadata for a stored file; the bytes belong to the file storage adapter"""

    transfer_block_id: Mapped[str] = mapped_column(
        ForeignKey("transfer_block.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String, nullable=False)
    size: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String, nullable=False)
    url: Mapped[str] = mapped_column(String, nullable=False)
    is_image: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    block: Mapped["TransferBlock"] = relationship("TransferBlock", back_populates="file_items")

    def __repr__(self) -> str:  # pragma: no cover - debug helper
        return f"<FileItem(id={self.id!r}, name={self.name!r}, type={self.type!r})>"

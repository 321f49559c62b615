"""Transfer block and item schema definitions."""
import base64
import binascii
from typing import List, Optional

from pydantic import Field, computed_field, model_validator

from sendeasy.core.schemas.common import CamelModel, UtcDateTime


class TextItemRecord(CamelModel):
    """Schema for a text item"""

    id: str
    transfer_block_id: str
    content: str
    created_at: UtcDateTime


class FileItemRecord(CamelModel):
    """Schema for a file item"""

    id: str
    transfer_block_id: str
    name: str
    size: int
    type: str
    url: str
    is_image: bool
    created_at: UtcDateTime


class TransferBlockRecord(CamelModel):
    """Schema for a transfer block with its children"""

    id: str
    session_id: str
    created_at: UtcDateTime
    expires_at: UtcDateTime
    is_expired: bool = False
    text_items: List[TextItemRecord] = []
    file_items: List[FileItemRecord] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def images(self) -> List[FileItemRecord]:
        return [item for item in self.file_items if item.is_image]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def files(self) -> List[FileItemRecord]:
        return [item for item in self.file_items if not item.is_image]


class FileDescriptor(CamelModel):
    """
    A file submitted with a transfer.

    Exactly one of ``content`` (base64 bytes to store) or ``url`` (bytes
    already stored by the file storage adapter) must be given.
    """

    name: str = Field(..., min_length=1, description="Original file name")
    size: int = Field(..., ge=0, description="Size in bytes")
    type: str = Field("application/octet-stream", description="Media type")
    content: Optional[str] = Field(None, description="Base64 encoded bytes")
    url: Optional[str] = Field(None, description="Pointer to already stored bytes")

    @model_validator(mode="after")
    def _exactly_one_source(self) -> "FileDescriptor":
        if (self.content is None) == (self.url is None):
            raise ValueError("exactly one of 'content' or 'url' is required")
        return self

    def decode_content(self) -> bytes:
        if self.content is None:
            raise ValueError("descriptor has no inline content")
        try:
            return base64.b64decode(self.content, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"content of '{self.name}' is not valid base64") from e


class FileItemCreate(CamelModel):
    """File metadata handed to the store once the bytes are stored"""

    name: str
    size: int
    type: str
    url: str
    is_image: bool


class CreateTransferRequest(CamelModel):
    """Schema for creating a transfer block"""

    session_id: str = Field(..., min_length=1)
    text_content: Optional[str] = None
    files: List[FileDescriptor] = []


class UploadResponse(CamelModel):
    transfer_block: TransferBlockRecord


class TransferHistoryResponse(CamelModel):
    transfer_blocks: List[TransferBlockRecord]


class ExtendExpirationResponse(CamelModel):
    success: bool
    new_expires_at: UtcDateTime


class DeleteResponse(CamelModel):
    deleted: bool

"""Database models"""

from sendeasy.db.models.session import ShareSession
from sendeasy.db.models.transfer import FileItem, TextItem, TransferBlock

__all__ = [
    "ShareSession",
    "TransferBlock",
    "TextItem",
    "FileItem",
]

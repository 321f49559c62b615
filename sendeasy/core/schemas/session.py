"""Session schema definitions."""
from datetime import datetime
from typing import List, Optional

from pydantic import Field

from sendeasy.core.schemas.common import CamelModel, UtcDateTime
from sendeasy.core.schemas.transfer import TransferBlockRecord


class SessionRecord(CamelModel):
    """A session as stored"""

    id: str
    password: str
    device_id: str
    created_at: UtcDateTime
    expires_at: UtcDateTime
    is_active: bool = True

    def is_valid_at(self, now: datetime) -> bool:
        """Active and not yet expired; ``expires_at`` itself is already invalid."""
        return self.is_active and now < self.expires_at


class CreateSessionRequest(CamelModel):
    """Schema for creating or fetching the session of a device"""

    device_id: str = Field(..., description="Client-generated stable device identifier")


class CreateSessionResponse(CamelModel):
    """Schema for the created or reused session"""

    session: SessionRecord
    password: str
    created: bool = Field(..., description="False when an unexpired session was reused")


class ValidatePasswordRequest(CamelModel):
    """Schema for receiving by password"""

    password: str = Field(..., description="6-character session password")


class SessionValidationResponse(CamelModel):
    """Schema for a password check; an unknown password is valid=False, not an error"""

    valid: bool
    session_id: Optional[str] = None
    expires_at: Optional[UtcDateTime] = None


class SessionDetail(SessionRecord):
    """Schema for a session with its live transfer blocks"""

    transfers: List[TransferBlockRecord] = []

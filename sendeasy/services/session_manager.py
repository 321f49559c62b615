"""
Session Manager - creates, reuses and validates password-gated sessions
"""

import logging
from datetime import timedelta
from typing import Optional, Tuple

from sendeasy.core.exceptions import PasswordCollision, StorageFailure, ValidationError
from sendeasy.core.passwords import PasswordGenerator, is_well_formed, normalize_password
from sendeasy.core.schemas.session import SessionRecord
from sendeasy.core.utils.clock import Clock, utcnow
from sendeasy.storage.base import TransferStore

logger = logging.getLogger(__name__)


class SessionManager:
    """
    Owns the session rules.

    A device has at most one active session. Asking again while it is
    unexpired returns the same session and password; otherwise previous
    sessions of the device are deactivated (kept until swept) and a new one
    is created. Validity is ``SessionRecord.is_valid_at``; reading a session
    never renews it.
    """

    def __init__(
        self,
        store: TransferStore,
        password_generator: Optional[PasswordGenerator] = None,
        session_ttl: timedelta = timedelta(hours=24),
        clock: Clock = utcnow,
    ):
        self.store = store
        self.password_generator = password_generator or PasswordGenerator()
        self.session_ttl = session_ttl
        self.clock = clock

    def create_or_get_session(self, device_id: str) -> Tuple[SessionRecord, bool]:
        """Return ``(session, created)`` for the device.

        Raises:
            ValidationError: if ``device_id`` is blank
            StorageFailure: if the store fails or the password collides twice
        """
        device_id = (device_id or "").strip()
        if not device_id:
            raise ValidationError("Device ID is required")

        now = self.clock()
        existing = self.store.find_active_session_for_device(device_id, now)
        if existing is not None:
            logger.info("Reusing unexpired session", extra={"session_id": existing.id})
            return existing, False

        self.store.deactivate_device_sessions(device_id)
        expires_at = now + self.session_ttl

        password = self.password_generator.generate(device_id)
        try:
            session = self.store.insert_session(password, device_id, now, expires_at)
        except PasswordCollision:
            logger.warning("Session password collided, retrying with a random password")
            password = self.password_generator.generate_random()
            try:
                session = self.store.insert_session(password, device_id, now, expires_at)
            except PasswordCollision as e:
                raise StorageFailure("Could not allocate a unique session password") from e

        logger.info(
            "Created session",
            extra={"session_id": session.id, "expires_at": session.expires_at},
        )
        return session, True

    def validate_session(self, password: str) -> Optional[SessionRecord]:
        """Look up the active, unexpired session holding ``password``.

        Matching is case-insensitive. An unknown or expired password returns
        None; only storage problems raise.
        """
        if password is None or not password.strip():
            raise ValidationError("Password is required")
        normalized = normalize_password(password)
        if not is_well_formed(normalized):
            raise ValidationError("Password must be 6 letters or digits")

        session = self.store.find_session_by_password(normalized, self.clock())
        if session is None:
            logger.debug("Password did not match an active session")
        return session

    def get_session(self, session_id: str) -> Optional[SessionRecord]:
        return self.store.get_session(session_id)

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from sendeasy.api.dependencies import get_session_manager, get_transfer_manager
from sendeasy.core.config import settings
from sendeasy.core.limiter import limiter
from sendeasy.core.schemas.session import (
    CreateSessionRequest,
    CreateSessionResponse,
    SessionDetail,
    SessionValidationResponse,
    ValidatePasswordRequest,
)
from sendeasy.services.session_manager import SessionManager
from sendeasy.services.transfer_manager import TransferManager

# Create router
router = APIRouter(
    responses={
        400: {"description": "Invalid input"},
        503: {"description": "Storage unavailable"},
    },
)


@router.post(
    "",
    response_model=CreateSessionResponse,
    summary="Create or Get Session",
    responses={201: {"description": "New session created"}, 200: {"description": "Unexpired session reused"}},
)
@limiter.limit(settings.rate_limit_write_endpoints)
def create_session(
    request: Request,
    response: Response,
    payload: CreateSessionRequest,
    sessions: SessionManager = Depends(get_session_manager),
) -> CreateSessionResponse:
    """
    Return the device's unexpired session, or create a new one.

    Asking again before expiry returns the same session and password.
    """
    session, created = sessions.create_or_get_session(payload.device_id)
    response.status_code = status.HTTP_201_CREATED if created else status.HTTP_200_OK
    return CreateSessionResponse(session=session, password=session.password, created=created)


@router.post(
    "/validate",
    response_model=SessionValidationResponse,
    summary="Validate Session Password",
)
@limiter.limit(settings.rate_limit_validate_endpoints)
def validate_session(
    request: Request,
    payload: ValidatePasswordRequest,
    sessions: SessionManager = Depends(get_session_manager),
) -> SessionValidationResponse:
    """
    Check a password entered on the receiving side.

    An unknown or expired password is reported as ``valid: false``.
    Rate limit: validate endpoints limit per minute per IP address.
    """
    session = sessions.validate_session(payload.password)
    if session is None:
        return SessionValidationResponse(valid=False)
    return SessionValidationResponse(valid=True, session_id=session.id, expires_at=session.expires_at)


@router.get(
    "/{session_id}",
    response_model=SessionDetail,
    summary="Get Session",
    responses={404: {"description": "Session not found"}},
)
@limiter.limit(settings.rate_limit_read_endpoints)
def get_session(
    request: Request,
    session_id: str,
    sessions: SessionManager = Depends(get_session_manager),
    transfers: TransferManager = Depends(get_transfer_manager),
) -> SessionDetail:
    """Get a session with its live transfer blocks, newest first."""
    session = sessions.get_session(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Session not found",
        )
    return SessionDetail(
        **session.model_dump(),
        transfers=transfers.get_transfer_blocks(session_id),
    )

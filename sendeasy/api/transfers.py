from typing import List, Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Query,
    Request,
    UploadFile,
    status,
)

from sendeasy.api.dependencies import get_transfer_manager
from sendeasy.core.config import settings
from sendeasy.core.limiter import limiter
from sendeasy.core.schemas.transfer import (
    CreateTransferRequest,
    DeleteResponse,
    ExtendExpirationResponse,
    TransferHistoryResponse,
    UploadResponse,
)
from sendeasy.services.transfer_manager import RawUpload, TransferManager

# Create router
router = APIRouter(
    responses={
        401: {"description": "Invalid or expired session"},
        503: {"description": "Storage unavailable"},
    },
)


@router.post(
    "",
    response_model=UploadResponse,
    summary="Create Transfer Block",
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit(settings.rate_limit_write_endpoints)
def create_transfer(
    request: Request,
    payload: CreateTransferRequest,
    transfers: TransferManager = Depends(get_transfer_manager),
) -> UploadResponse:
    """
    Create a transfer block from a JSON body.

    Files carry either base64 ``content`` or the ``url`` of already stored bytes.
    """
    block = transfers.create_transfer_block(
        payload.session_id,
        text_content=payload.text_content,
        files=payload.files,
    )
    return UploadResponse(transfer_block=block)


@router.post(
    "/upload",
    response_model=UploadResponse,
    summary="Upload Files and Text",
    status_code=status.HTTP_201_CREATED,
    responses={413: {"description": "File too large"}},
)
@limiter.limit(settings.rate_limit_write_endpoints)
def upload_content(
    request: Request,
    session_id: str = Form(..., alias="sessionId"),
    text_content: Optional[str] = Form(None, alias="textContent"),
    files: Optional[List[UploadFile]] = File(None),
    transfers: TransferManager = Depends(get_transfer_manager),
) -> UploadResponse:
    """Create a transfer block from a multipart form (``sessionId``, ``textContent``, ``files``)."""
    uploads: List[RawUpload] = []
    for upload in files or []:
        data = upload.file.read(settings.max_upload_bytes + 1)
        if len(data) > settings.max_upload_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"File '{upload.filename}' exceeds {settings.max_upload_mb} MB",
            )
        uploads.append((
            upload.filename or "file",
            len(data),
            upload.content_type or "application/octet-stream",
            data,
        ))

    block = transfers.create_transfer_block(session_id, text_content=text_content, uploads=uploads)
    return UploadResponse(transfer_block=block)


@router.get(
    "/history/{session_id}",
    response_model=TransferHistoryResponse,
    summary="Get Transfer History",
)
@limiter.limit(settings.rate_limit_read_endpoints)
def get_transfer_history(
    request: Request,
    session_id: str,
    include_expired: bool = Query(False, description="Also return expired blocks not yet purged"),
    transfers: TransferManager = Depends(get_transfer_manager),
) -> TransferHistoryResponse:
    """List the blocks of a session, newest first."""
    blocks = transfers.get_transfer_blocks(session_id, include_expired=include_expired)
    return TransferHistoryResponse(transfer_blocks=blocks)


@router.put(
    "/extend/{block_id}",
    response_model=ExtendExpirationResponse,
    summary="Extend Transfer Block",
    responses={404: {"description": "Transfer block not found"}},
)
@limiter.limit(settings.rate_limit_write_endpoints)
def extend_transfer_block(
    request: Request,
    block_id: str,
    transfers: TransferManager = Depends(get_transfer_manager),
) -> ExtendExpirationResponse:
    """Keep a block until the end of tomorrow."""
    block = transfers.extend_transfer_block(block_id)
    return ExtendExpirationResponse(success=True, new_expires_at=block.expires_at)


@router.delete("/block/{block_id}", response_model=DeleteResponse, summary="Delete Transfer Block")
@limiter.limit(settings.rate_limit_write_endpoints)
def delete_transfer_block(
    request: Request,
    block_id: str,
    transfers: TransferManager = Depends(get_transfer_manager),
) -> DeleteResponse:
    """Delete a block with its items. Deleting an unknown id reports ``deleted: false``."""
    return DeleteResponse(deleted=transfers.delete_transfer_block(block_id))


@router.delete("/text/{item_id}", response_model=DeleteResponse, summary="Delete Text Item")
@limiter.limit(settings.rate_limit_write_endpoints)
def delete_text_item(
    request: Request,
    item_id: str,
    transfers: TransferManager = Depends(get_transfer_manager),
) -> DeleteResponse:
    return DeleteResponse(deleted=transfers.delete_text_item(item_id))


@router.delete("/file/{item_id}", response_model=DeleteResponse, summary="Delete File Item")
@limiter.limit(settings.rate_limit_write_endpoints)
def delete_file_item(
    request: Request,
    item_id: str,
    transfers: TransferManager = Depends(get_transfer_manager),
) -> DeleteResponse:
    return DeleteResponse(deleted=transfers.delete_file_item(item_id))

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import FileResponse

from sendeasy.api.dependencies import get_file_storage
from sendeasy.core.config import settings
from sendeasy.core.limiter import limiter
from sendeasy.services.file_storage import FileStorage, LocalFileStorage

router = APIRouter()


@router.get("/download/{stored_name}", summary="Download File")
@limiter.limit(settings.rate_limit_read_endpoints)
def download_file(
    request: Request,
    stored_name: str,
    file_storage: FileStorage = Depends(get_file_storage),
) -> FileResponse:
    """Stream locally stored bytes. Names that leave the upload directory are rejected."""
    path = file_storage.resolve(stored_name) if isinstance(file_storage, LocalFileStorage) else None
    if path is None or not path.is_file():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="File not found",
        )
    # Stored names are "<hex>_<original name>"
    download_name = stored_name.split("_", 1)[-1]
    return FileResponse(path, filename=download_name)

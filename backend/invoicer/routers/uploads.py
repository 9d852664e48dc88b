from fastapi import APIRouter, Depends, File, HTTPException, Response, UploadFile
from typing import Optional
import logging

from invoicer.config import settings
from invoicer.exceptions import NotFoundError
from invoicer.schemas.invoice import LogoUploadResponse
from invoicer.services.storage_service import StorageService, get_storage_service, validate_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["uploads"])


@router.post("/api/upload/logo", response_model=LogoUploadResponse)
async def upload_logo(
    logo: Optional[UploadFile] = File(None),
    storage: StorageService = Depends(get_storage_service),
):
    """Upload a logo image (image/*, up to 5MB) for use on invoices"""
    if logo is None or not logo.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    # read one byte past the limit so oversized files are detected without buffering them whole
    file_content = await logo.read(settings.max_upload_bytes + 1)
    validate_image_upload(logo.content_type, len(file_content))

    key = storage.upload_file(file_content, logo.filename, logo.content_type)
    logger.info(f"Logo uploaded: {logo.filename} ({len(file_content)} bytes) -> {key}")
    return LogoUploadResponse(logo_url=storage.get_file_url(key))


@router.get("/uploads/{key}")
def serve_upload(key: str, storage: StorageService = Depends(get_storage_service)):
    """Serve an uploaded file"""
    try:
        content = storage.download_file(key)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="File not found")
    return Response(
        content=content,
        media_type=storage.content_type_for(key),
        headers={"Content-Disposition": f'inline; filename="{key}"'},
    )

"""
Storage of proof-of-loan and proof-of-payment images.
"""
import logging
import os
import uuid
from typing import List, Optional
from fastapi import HTTPException, UploadFile, status
from lendtrack.core.config import settings

logger = logging.getLogger(__name__)


def get_file_url(file_path: str) -> str:
    """Convert file path to URL for static file serving."""
    # e.g. "lendtrack/static/abc.jpg" -> "/static/abc.jpg"
    filename = os.path.basename(file_path)
    return f"/static/{filename}"


async def store_images(files: Optional[List[UploadFile]]) -> List[str]:
    """Validate and save uploaded images; returns their static URLs."""
    urls = []
    for file in files or []:
        if not file or not file.filename:
            continue
        if file.content_type not in settings.ALLOWED_IMAGE_TYPES:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid file type. Allowed types: {', '.join(settings.ALLOWED_IMAGE_TYPES)}"
            )
        content = await file.read()
        if len(content) > settings.MAX_UPLOAD_SIZE:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"File too large. Maximum size: {settings.MAX_UPLOAD_SIZE // (1024 * 1024)}MB"
            )
        
        os.makedirs(settings.UPLOAD_DIR, exist_ok=True)
        extension = os.path.splitext(file.filename)[1] or ".jpg"
        file_path = os.path.join(settings.UPLOAD_DIR, f"{uuid.uuid4().hex}{extension}")
        with open(file_path, "wb") as f:
            f.write(content)
        urls.append(get_file_url(file_path))
    
    if urls:
        logger.info("Stored %s image(s)", len(urls))
    return urls

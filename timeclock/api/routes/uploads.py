import logging
from typing import Optional
from urllib.parse import urlparse

import requests
from fastapi import APIRouter, Depends, File, HTTPException, Request, Response, UploadFile, status

from timeclock.api.deps import DashboardContext, get_dashboard_context, get_storage
from timeclock.core.config import settings
from timeclock.core.security import resolve_principal
from timeclock.services.image_storage import ImageStorage, StorageError, read_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Images"])

PROXY_TIMEOUT = 10


def allowed_image_host(storage: ImageStorage) -> str:
    return (settings.IMAGE_HOST or storage.public_host).strip().lower()


def is_allowed_image_url(url: str, allowed_host: str) -> bool:
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https"):
        return False
    return bool(allowed_host) and (parsed.hostname or "").lower() == allowed_host


@router.post("/upload/image")
async def upload_image(
    file: Optional[UploadFile] = File(None),
    ctx: DashboardContext = Depends(get_dashboard_context),
    storage: ImageStorage = Depends(get_storage),
):
    """Employee profile photo uploaded from the dashboard."""
    content = await read_image_upload(file)
    try:
        result = storage.upload(content, settings.EMPLOYEE_IMAGE_FOLDER)
    except StorageError as e:
        logger.error("Image upload failed: %s", e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to upload image")
    return {"url": result["url"]}


@router.get("/image")
def proxy_image(
    request: Request,
    url: Optional[str] = None,
    storage: ImageStorage = Depends(get_storage),
):
    """
    Stream a stored image through the API so clients never hit the storage
    host directly. Only URLs on the image host are fetched.
    """
    if resolve_principal(request) is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

    url = (url or "").strip()
    if not url:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing url")
    if not is_allowed_image_url(url, allowed_image_host(storage)):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid image URL")

    try:
        upstream = requests.get(url, timeout=PROXY_TIMEOUT, allow_redirects=False)
    except requests.RequestException as e:
        logger.error("Image proxy fetch failed for %s: %s", url, e)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to load image")

    # Redirects are not followed, a 3xx is a miss
    if not upstream.ok or upstream.status_code >= 300:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Image not found")

    return Response(
        content=upstream.content,
        media_type=upstream.headers.get("content-type") or "image/jpeg",
        headers={"Cache-Control": "private, max-age=3600"},
    )

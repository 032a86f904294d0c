"""
Upload API endpoint.

Stores a file for the current user and returns its URL. Storage failures
are not reported as errors: the response carries ``url: null`` instead,
so callers must treat a null URL as a failed upload.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from careconnect.api.v1.auth import get_current_user
from careconnect.models import User
from careconnect.schemas.common import CamelModel
from careconnect.services import upload_relay

logger = logging.getLogger(__name__)

router = APIRouter()


class UploadResponse(CamelModel):
    message: Optional[str] = None
    url: Optional[str] = None


@router.post("", response_model=UploadResponse)
async def upload_file(
    file: Optional[UploadFile] = File(None),
    upload_type: str = Form("posts", alias="type"),
    current_user: User = Depends(get_current_user),
):
    """
    Upload a file (multipart field ``file``) of type posts, profile or cover.
    """
    if file is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No file uploaded",
        )

    try:
        content = await file.read()
        url = upload_relay.store_upload(
            current_user.id, file.filename, content, upload_type or "posts"
        )
    except Exception:
        # Don't expose error details to the client
        logger.error("Error uploading file for user %s", current_user.id, exc_info=True)
        return UploadResponse(url=None)

    return UploadResponse(message="File uploaded successfully", url=url)

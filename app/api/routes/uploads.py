import logging

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from app.core.config import settings
from app.models.user import User
from app.schemas.ai import UploadResponse
from app.services.auth_service import get_current_user
from app.services.storage_service import public_url, save_audio

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


async def read_audio(audio: UploadFile) -> bytes:
    """Read an uploaded ``audio`` part, rejecting non-audio and oversized files."""
    content_type = audio.content_type or ""
    if not content_type.startswith("audio/"):
        raise HTTPException(status_code=400, detail=f"Only audio files are allowed. Received: {content_type or 'unknown'}")

    content = await audio.read()
    if not content:
        raise HTTPException(status_code=400, detail="Uploaded audio file is empty")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Uploaded audio file is too large")
    return content


@router.post("", response_model=UploadResponse)
async def upload_audio(audio: UploadFile = File(...), user: User = Depends(get_current_user)):
    content = await read_audio(audio)
    filename = save_audio(audio.filename, content)
    logger.info("Upload from %s stored as %s (%s)", user.id, filename, audio.content_type)
    return UploadResponse(file_name=filename, file_url=public_url(filename))

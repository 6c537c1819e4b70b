import os
import uuid
import logging
from datetime import datetime
from pathlib import Path
from fastapi import APIRouter, UploadFile, File, HTTPException, Depends

from itemscan.api.dependencies import get_orchestrator
from itemscan.api.schemas import CombinedAnalysisResult
from itemscan.core.config import settings
from itemscan.services.orchestrator import ParallelAnalysisOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["analyze"])


def _safe_filename(name: str) -> str:
    """Sanitize filename to prevent path traversal."""
    bad = '<>:"/\\|?*'
    for ch in bad:
        name = name.replace(ch, "_")
    return name.strip() or "image"


async def _save_upload(image: UploadFile) -> Path:
    """Validate and store an uploaded image, returning its path."""
    ctype = (image.content_type or "").lower()
    if ctype not in set(settings.ALLOWED_MIME):
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {ctype}")

    data = await image.read()
    fname = _safe_filename(image.filename or "image.bin")

    if not data:
        raise HTTPException(status_code=400, detail=f"File {fname} is empty")

    if len(data) > settings.MAX_IMAGE_MB * 1024 * 1024:
        raise HTTPException(status_code=400, detail=f"File {fname} exceeds {settings.MAX_IMAGE_MB}MB")

    upload_dir = Path(settings.DATA_ROOT) / "uploads" / datetime.now().date().isoformat()
    os.makedirs(upload_dir, exist_ok=True)

    path = upload_dir / f"{uuid.uuid4().hex}_{fname}"
    with open(path, "wb") as out:
        out.write(data)

    logger.info(f"Stored upload {fname} ({len(data)} bytes) at {path}")
    return path


@router.post("/analyze", response_model=CombinedAnalysisResult)
async def analyze(
    image: UploadFile = File(...),
    orchestrator: ParallelAnalysisOrchestrator = Depends(get_orchestrator),
):
    """
    Analyze an uploaded photo with Google Vision and Amazon Rekognition.

    Provider failures do not change the status code: the body carries
    success=False and the error message.
    """
    path = await _save_upload(image)
    return await orchestrator.analyze(str(path))

# routes/chapters.py
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from app.core.logging import get_logger
from app.core.resources import get_service
from media.models import AnalyzePagesRequest
from media.service import MediaService

router = APIRouter(tags=["chapters"])
logger = get_logger(__name__)


def _pages_payload(pages):
    return [p.model_dump(by_alias=True, mode="json") for p in pages]


@router.post("/upload-zip")
def upload_zip(
    serieID: Annotated[Optional[str], Form()] = None,
    index: Annotated[Optional[str], Form()] = None,
    volume: Annotated[Optional[str], Form()] = None,
    file: Annotated[Optional[UploadFile], File()] = None,
    service: MediaService = Depends(get_service),
):
    logger.info("POST:upload-zip:start serie=%s volume=%s index=%s", serieID, volume, index)
    key, pages = service.upload_zip(
        serie_id=serieID, volume=volume, index=index,
        filename=file.filename if file else None,
        stream=file.file if file else None,
    )
    logger.info("POST:upload-zip:end serie=%s chapter=%s pages=%d", serieID, key, len(pages))
    return {"message": "Chapter extracted.", "chapter": key, "pages": _pages_payload(pages)}


@router.post("/analyze-pages")
def analyze_pages(req: AnalyzePagesRequest, service: MediaService = Depends(get_service)):
    key, pages = service.analyze_pages(req)
    return {"message": "Pages analyzed.", "chapter": key, "pages": _pages_payload(pages)}

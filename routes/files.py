# routes/files.py
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.core.logging import get_logger
from app.core.resources import get_service
from media.service import MediaService

router = APIRouter(tags=["files"])
logger = get_logger(__name__)


@router.post("/upload")
def upload_file(
    name: Annotated[Optional[str], Form()] = None,
    type: Annotated[Optional[str], Form()] = None,
    id: Annotated[Optional[str], Form()] = None,
    file: Annotated[Optional[UploadFile], File()] = None,
    imagem: Annotated[Optional[UploadFile], File()] = None,  # nom de champ des anciens clients
    service: MediaService = Depends(get_service),
):
    logger.info("POST:upload:start type=%s id=%s name=%s", type, id, name)
    part = file or imagem
    final, stored = service.upload(
        name=name, kind=type, id=id,
        filename=part.filename if part else None,
        stream=part.file if part else None,
    )
    return {
        "message": "Upload successful.",
        "file": {"path": service.public_path(final), **stored.model_dump(by_alias=True, mode="json")},
    }


@router.delete("/remove")
def remove_file(
    name: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    id: Optional[str] = Query(None),
    service: MediaService = Depends(get_service),
):
    removed = service.remove(name=name, kind=type, id=id)
    logger.info("DELETE:remove type=%s id=%s name=%s (%d file(s))", type, id, name, len(removed))
    return {
        "message": "File removed.",
        "removed": [service.public_path(p) for p in removed],
    }

# ----------------- listings -----------------

def _listing(service: MediaService, kind: str, id: Optional[str] = None, chapter: Optional[str] = None):
    files = service.list_files(kind, id, chapter)
    return {"files": [f.model_dump(by_alias=True, mode="json") for f in files]}


@router.get("/user/{id}/files")
def list_user_files(id: str, service: MediaService = Depends(get_service)):
    return _listing(service, "user", id)

@router.get("/assets/files")
def list_assets(service: MediaService = Depends(get_service)):
    return _listing(service, "assets")

@router.get("/series/{id}/files")
def list_series_files(id: str, service: MediaService = Depends(get_service)):
    return _listing(service, "series", id)

@router.get("/series/{id}/assets/files")
def list_series_assets(id: str, service: MediaService = Depends(get_service)):
    return _listing(service, "series-assets", id)

@router.get("/series/{id}/chapters/{cap}/files")
def list_chapter_files(id: str, cap: str, service: MediaService = Depends(get_service)):
    return _listing(service, "series-chapter", id, cap)

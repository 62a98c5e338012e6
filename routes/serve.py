# routes/serve.py
# Lecture par nom logique : l'extension est retrouvée côté serveur (ExtensionMatcher).
from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from app.core.resources import get_service
from media.service import MediaService

router = APIRouter(tags=["serve"])


@router.get("/image/{name}")
def get_image(name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("image", name))

@router.get("/user/{id}/{name}")
def get_user_file(id: str, name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("user", name, id))

@router.get("/assets/{name}")
def get_asset(name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("assets", name))

@router.get("/series/{id}/{name}")
def get_series_file(id: str, name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("series", name, id))

@router.get("/series/{id}/assets/{name}")
def get_series_asset(id: str, name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("series-assets", name, id))

@router.get("/series/{id}/chapters/{cap}/{name}")
def get_chapter_page(id: str, cap: str, name: str, service: MediaService = Depends(get_service)):
    return FileResponse(service.locate("series-chapter", name, id, cap))

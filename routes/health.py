import os

from fastapi import APIRouter, Depends, Request

from adapters.storage.local import LocalStorage
from app.core.logging import get_logger
from app.core.resources import get_all_settings, get_storage

logger = get_logger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

@router.get("/") # GET : /health/
def health_check(request: Request, storage: LocalStorage = Depends(get_storage)):
    logger.info("health check")
    root = storage.root
    return {
        "status": "healthy",
        "ready": bool(getattr(request.app.state, "ready", False)),
        "storage": {
            "root": str(root),
            "writable": root.is_dir() and os.access(root, os.W_OK),
        },
    }

@router.get("/settings") # GET : /health/settings
def get_all_config():
    return get_all_settings().model_dump(mode="json")

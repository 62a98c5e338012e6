# app/main.py
from app.core.config import get_settings
from app.core.logging import setup_logging, get_logger
setup_logging(get_settings().app.log_level)

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.storage.base import (
    ArchiveError, FileTooLarge, NotFound, PathEscape, StorageError, StorageIOError, ValidationError,
)
from app.core.middleware import ReadinessMiddleware, RequestContextMiddleware
from app.core.resources import get_storage
from routes import api_router

log = get_logger(__name__)

# premier match gagnant : sous-classes avant leurs parents
_STATUS_BY_ERROR = (
    (ValidationError, 400),
    (PathEscape, 400),
    (NotFound, 404),
    (FileTooLarge, 413),
    (ArchiveError, 500),
    (StorageIOError, 500),
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.ready = False
    settings = get_settings()
    # instancie le stockage tôt : racine et temp créées (ou erreur) avant la 1re requête
    storage = app.dependency_overrides.get(get_storage, get_storage)()
    log.info("%s (%s) serving %s on port %d", settings.app.name, settings.app.env, storage.root, settings.app.port)
    app.state.ready = True
    try:
        yield
    finally:
        app.state.ready = False
        log.info("%s stopped", settings.app.name)


app = FastAPI(title="mediastore", lifespan=lifespan)

app.add_middleware(ReadinessMiddleware, is_ready=lambda: getattr(app.state, "ready", False))
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().app.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)
# ajouté en dernier = exécuté en premier : le request_id couvre aussi les 503
app.add_middleware(RequestContextMiddleware)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    status = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 500)
    if status >= 500:
        log.error("%s %s failed: %s: %s", request.method, request.url.path, type(exc).__name__, exc)
    else:
        log.info("%s %s rejected (%d): %s", request.method, request.url.path, status, exc)
    if isinstance(exc, ValidationError) and len(exc.errors) > 1:
        return JSONResponse({"errors": exc.errors}, status_code=status)
    return JSONResponse({"error": str(exc)}, status_code=status)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()]
    log.info("%s %s rejected (400): %s", request.method, request.url.path, errors)
    return JSONResponse({"errors": errors}, status_code=400)


app.include_router(api_router)


def run() -> None:
    """Lance uvicorn sur app.host / app.port (settings.yaml, APP_HOST / PORT)."""
    import uvicorn

    cfg = get_settings().app
    uvicorn.run(app, host=cfg.host, port=cfg.port, log_config=None, log_level=cfg.log_level.lower())


if __name__ == "__main__":
    run()

# python -m app.main  (ou: mediastore)
# uvicorn app.main:app --reload --port 4000 --log-level debug

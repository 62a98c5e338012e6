# app/core/middleware.py
# Middlewares HTTP : contexte de requête (request_id, durée, taille) et porte de démarrage.
from __future__ import annotations
import time
from typing import Callable, Iterable

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import JSONResponse, Response

from .logging import get_logger, new_request_id, request_id_var

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Pour chaque requête :
    - reprend le X-Request-Id du client ou en génère un (renvoyé dans la réponse),
    - logue méthode, chemin, taille déclarée du corps (uploads), statut et durée.
    """

    def __init__(self, app, header_name: str = REQUEST_ID_HEADER) -> None: # type: ignore[no-untyped-def]
        super().__init__(app)
        self.header_name = header_name
        self.log = get_logger("mediastore.http")

    async def dispatch(self, request: Request, call_next: Callable): # type: ignore[override]
        rid = request.headers.get(self.header_name) or new_request_id()
        token = request_id_var.set(rid)
        started = time.perf_counter()
        status = 500
        length = request.headers.get("content-length")
        if length:
            self.log.info("> %s %s (%s B)", request.method, request.url.path, length)
        else:
            self.log.info("> %s %s", request.method, request.url.path)
        try:
            response: Response = await call_next(request)
            status = response.status_code
        finally:
            elapsed = (time.perf_counter() - started) * 1000
            self.log.info("< %s %s %d in %.1f ms", request.method, request.url.path, status, elapsed)
            request_id_var.reset(token)
        response.headers[self.header_name] = rid
        return response


class ReadinessMiddleware(BaseHTTPMiddleware):
    """Répond 503 (Retry-After) tant que le lifespan n'a pas monté le stockage."""

    def __init__(self, app, *, is_ready: Callable[[], bool],
                 always_open: Iterable[str] = ("/health", "/docs", "/openapi.json")) -> None: # type: ignore[no-untyped-def]
        super().__init__(app)
        self._is_ready = is_ready
        self._always_open = tuple(always_open)

    async def dispatch(self, request: Request, call_next: Callable): # type: ignore[override]
        if not request.url.path.startswith(self._always_open) and not self._is_ready():
            return JSONResponse({"error": "Service is starting, retry shortly."},
                                status_code=503, headers={"Retry-After": "2"})
        return await call_next(request)

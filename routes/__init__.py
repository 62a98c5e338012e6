# routes/__init__.py
from fastapi import APIRouter

import routes.chapters as chapters_routes
import routes.files as files_routes
import routes.health as health_routes
import routes.serve as serve_routes

# pas de préfixe : les chemins publics sont ceux historiques (/upload, /series/:id/...)
api_router = APIRouter()
api_router.include_router(health_routes.router)
api_router.include_router(files_routes.router)
api_router.include_router(chapters_routes.router)
# en dernier : les routes /{name} capturent tout segment restant
api_router.include_router(serve_routes.router)

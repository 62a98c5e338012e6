# Ressources singletons (branchement centralisé des adapters) :
# petit module d'injection de dépendances consommé par les routes (Depends) et surchargé dans les tests.

from functools import lru_cache

from fastapi import Depends

from adapters.storage.local import LocalStorage
from app.core.config import get_settings
from media.service import MediaService


@lru_cache
def get_all_settings():
    return get_settings()

@lru_cache
def get_storage() -> LocalStorage:
    # la racine vient de settings.storage (figée dans StorageConfig)
    return LocalStorage.from_settings()

def get_service(storage: LocalStorage = Depends(get_storage)) -> MediaService:
    return MediaService(storage)

# adapters/storage/base.py
# storage : racine/temp depuis settings, allow-list, quotas, résolution sandboxée, remplacement par nom logique.
from __future__ import annotations
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Sequence, Tuple

if TYPE_CHECKING:  # pragma: no cover
    from app.core.config import StorageCfg
    from media.models import StoredFile

# base.py définit le contrat indépendant du support (FS local, S3…)

DEFAULT_EXTENSIONS: Tuple[str, ...] = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".svg", ".txt", ".pdf", ".zip",
)
RASTER_EXTENSIONS: Tuple[str, ...] = (".jpg", ".jpeg", ".png", ".gif", ".webp")


# ----------------------- erreurs -----------------------
class StorageError(Exception):
    """Racine de toutes les erreurs du stockage (mappées en HTTP dans app.main)."""


class ValidationError(StorageError):
    """Champ requis manquant ou invalide : détecté avant toute écriture disque."""

    def __init__(self, message: str, errors: Optional[Sequence[str]] = None) -> None:
        super().__init__(message)
        self.errors: List[str] = list(errors or [message])


class InvalidKind(ValidationError): ...
class MissingId(ValidationError): ...
class ExtensionNotAllowed(ValidationError): ...

class PathEscape(StorageError): ...
class NotFound(StorageError): ...
class FileTooLarge(StorageError): ...
class ArchiveError(StorageError): ...
class StorageIOError(StorageError): ...
class MoveError(StorageIOError): ...


def _dotted(ext: str) -> str:
    ext = str(ext).strip().lower()
    return ext if ext.startswith(".") else f".{ext}"


@dataclass(frozen=True)
class StorageConfig:
    """Configuration immuable passée à chaque composant à la construction."""
    root: Path
    temp_dirname: str = "temp"
    allowed_extensions: Tuple[str, ...] = DEFAULT_EXTENSIONS
    raster_extensions: Tuple[str, ...] = RASTER_EXTENSIONS
    max_file_size_mb: int = 64
    chunk_size: int = 1024 * 1024
    serialize_writes: bool = True

    def __post_init__(self) -> None:
        # racine absolue normalisée, extensions en lowercase avec le point (ordre conservé)
        object.__setattr__(self, "root", Path(self.root).expanduser().absolute())
        object.__setattr__(self, "allowed_extensions", tuple(_dotted(e) for e in self.allowed_extensions))
        object.__setattr__(self, "raster_extensions", tuple(_dotted(e) for e in self.raster_extensions))

    @property
    def temp_dir(self) -> Path:
        return self.root / self.temp_dirname

    @property
    def max_bytes(self) -> Optional[int]:
        # 0/None => illimité
        return int(self.max_file_size_mb) * 1024 * 1024 if self.max_file_size_mb else None

    def is_allowed(self, ext: str) -> bool:
        return ext.lower() in self.allowed_extensions

    def is_raster(self, ext: str) -> bool:
        return ext.lower() in self.raster_extensions

    @classmethod
    def from_settings(cls, cfg: "StorageCfg") -> "StorageConfig":
        return cls(
            root=Path(cfg.root),
            temp_dirname=cfg.temp_dirname,
            allowed_extensions=tuple(cfg.allowed_extensions),
            raster_extensions=tuple(cfg.raster_extensions),
            max_file_size_mb=cfg.max_file_size_mb,
            chunk_size=cfg.chunk_size,
            serialize_writes=cfg.serialize_writes,
        )


class Storage(ABC):
    @abstractmethod
    def directory_for(self, kind: str, id: Optional[str] = None, chapter_key: Optional[str] = None) -> Path: ...

    @abstractmethod
    def find(self, directory: Path, logical_name: str) -> Path: ...

    @abstractmethod
    def replace(self, staged: Path, target_dir: Path, logical_name: str) -> Path: ...

    @abstractmethod
    def remove(self, directory: Path, logical_name: str) -> List[Path]: ...

    @abstractmethod
    def list_files(self, directory: Path) -> List["StoredFile"]: ...

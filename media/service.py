# media/service.py
from __future__ import annotations
from pathlib import Path
from typing import BinaryIO, List, Optional, Tuple

from adapters.storage.base import InvalidKind, ValidationError
from adapters.storage.local import LocalStorage
from adapters.storage.paths import KIND_TEMPLATES, chapter_key
from app.core.logging import get_logger

from .archive import ArchiveExtractor
from .models import AnalyzePagesRequest, ChapterPage, StoredFile
from .pages import PageSetReconciler
from .utils import clean_field, split_name

logger = get_logger(__name__)

UPLOAD_KINDS = ("user", "assets", "series", "series-assets", "image")
NO_ID_KINDS = ("assets", "image")


class MediaService:
    """Service métier : valide les champs déclarés puis délègue au stockage (aucune écriture avant validation)."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self.extractor = ArchiveExtractor(storage)
        self.reconciler = PageSetReconciler(storage)

    # ----------------- validation -----------------
    @staticmethod
    def _validate_target(name: Optional[str], kind: Optional[str], id: Optional[str]) -> Tuple[str, str, Optional[str]]:
        name, kind, id = clean_field(name), clean_field(kind), clean_field(id)
        errors: List[str] = []
        if not name:
            errors.append('The field "name" is required.')
        if not kind:
            errors.append('The field "type" is required.')
        elif kind not in UPLOAD_KINDS:
            raise InvalidKind(f'Invalid type "{kind}". Expected one of: {", ".join(UPLOAD_KINDS)}.')
        if kind and kind not in NO_ID_KINDS and not id:
            errors.append(f'The field "id" is required for type "{kind}".')
        if errors:
            raise ValidationError(errors[0], errors)
        return name, kind, id  # type: ignore[return-value]

    @staticmethod
    def _validate_chapter(serie_id: Optional[str], volume: Optional[str], index: Optional[str]) -> Tuple[str, str]:
        serie_id, volume, index = clean_field(serie_id), clean_field(volume), clean_field(index)
        errors = [f'The field "{field}" is required.'
                  for field, value in (("serieID", serie_id), ("volume", volume), ("index", index)) if not value]
        if errors:
            raise ValidationError(errors[0], errors)
        return serie_id, chapter_key(volume, index)  # type: ignore[return-value, arg-type]

    # ----------------- écritures -----------------
    def upload(self, *, name: Optional[str], kind: Optional[str], id: Optional[str],
               filename: Optional[str], stream: Optional[BinaryIO]) -> Tuple[Path, StoredFile]:
        name, kind, id = self._validate_target(name, kind, id)
        self.storage.check_name(name)
        if stream is None or not filename:
            raise ValidationError("A file is required.")
        target_dir = self.storage.directory_for(kind, id)
        staged = self.storage.stage_stream(filename, stream)
        final = self.storage.replace(staged, target_dir, name)
        logger.info("upload:%s:%s -> %s", kind, id or "-", final.name)
        return final, self.storage.describe(final)

    def upload_zip(self, *, serie_id: Optional[str], volume: Optional[str], index: Optional[str],
                   filename: Optional[str], stream: Optional[BinaryIO]) -> Tuple[str, List[ChapterPage]]:
        serie_id, key = self._validate_chapter(serie_id, volume, index)
        if stream is None or not filename:
            raise ValidationError("A zip file is required.")
        if split_name(filename)[1] != ".zip":
            raise ValidationError("The uploaded file must be a .zip archive.")
        target_dir = self.storage.directory_for("series-chapter", serie_id, key)
        staged = self.storage.stage_stream(filename, stream)
        pages = self.extractor.extract(staged, target_dir)
        return key, pages

    def analyze_pages(self, req: AnalyzePagesRequest) -> Tuple[str, List[ChapterPage]]:
        serie_id, key = self._validate_chapter(req.serie_id, req.volume, req.index)
        chapter_dir = self.storage.directory_for("series-chapter", serie_id, key)
        return key, self.reconciler.reconcile(chapter_dir, req.pages)

    def remove(self, *, name: Optional[str], kind: Optional[str], id: Optional[str]) -> List[Path]:
        name, kind, id = self._validate_target(name, kind, id)
        return self.storage.remove(self.storage.directory_for(kind, id), name)

    # ----------------- lectures -----------------
    def locate(self, kind: str, name: str, id: Optional[str] = None, chapter: Optional[str] = None) -> Path:
        return self.storage.find(self.storage.directory_for(kind, id, chapter), name)

    def list_files(self, kind: str, id: Optional[str] = None, chapter: Optional[str] = None) -> List[StoredFile]:
        if kind not in KIND_TEMPLATES:
            raise InvalidKind(f'Invalid type "{kind}".')
        return self.storage.list_files(self.storage.directory_for(kind, id, chapter))

    def public_path(self, path: Path) -> str:
        return self.storage.paths.relative(path)

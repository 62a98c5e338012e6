# media/pages.py
from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Sequence

from adapters.storage.base import ExtensionNotAllowed, StorageIOError
from adapters.storage.local import LocalStorage
from app.core.logging import get_logger

from .images import InlineImage, decode_data_url, probe_dimensions
from .models import ChapterPage, PageIn
from .utils import basename, generate_filename, split_name

log = get_logger(__name__)


class PageSetReconciler:
    """
    Synchronise un dossier de chapitre avec la liste de pages déclarée par le client.

    Opération destructive : tout fichier du dossier non référencé par un
    imageURL déclaré est supprimé. Les pages inline sont réécrites sous un
    nouveau nom à chaque appel (non idempotent) ; les pages référencées sont
    simplement re-mesurées (idempotent).
    """

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self.config = storage.config
        self.paths = storage.paths

    def _decode_all(self, pages: Sequence[PageIn]) -> Dict[int, InlineImage]:
        decoded: Dict[int, InlineImage] = {}
        for i, page in enumerate(pages):
            if not page.image_data:
                continue
            img = decode_data_url(page.image_data)
            if not self.config.is_allowed(img.extension):
                raise ExtensionNotAllowed(f'Extension "{img.extension}" is not allowed.')
            decoded[i] = img
        return decoded

    def _measure(self, chapter_dir: Path, name: str, page: PageIn) -> ChapterPage:
        out = ChapterPage(id=page.id, image_url=name, order=page.order)
        path = chapter_dir / name
        if not name or not path.is_file():
            # référence déjà absente du disque : tolérée, sans métadonnées
            log.warning("page %s references a missing file %r", page.id, name)
            return out
        out.file_size = path.stat().st_size
        _, ext = split_name(name)
        if self.config.is_raster(ext):
            dims = probe_dimensions(path)
            if dims:
                out.width, out.height = dims
        return out

    def reconcile(self, chapter_dir: Path, pages: Sequence[PageIn]) -> List[ChapterPage]:
        # décodage d'abord : une donnée inline invalide n'entraîne aucune écriture
        decoded = self._decode_all(pages)
        chapter_dir = self.paths.ensure(chapter_dir)

        referenced = {basename(p.image_url) for p in pages if p.image_url}
        for f in chapter_dir.iterdir():
            if not f.is_file() or f.name in referenced:
                continue
            try:
                f.unlink()
                log.info("removed unreferenced page %s", f)
            except OSError as exc:
                raise StorageIOError(f"Cannot remove {f.name}: {exc}") from exc

        result: List[ChapterPage] = []
        for i, page in enumerate(pages):
            img: Optional[InlineImage] = decoded.get(i)
            if img is None:
                result.append(self._measure(chapter_dir, basename(page.image_url or ""), page))
                continue
            dest = chapter_dir / generate_filename(img.extension)
            try:
                dest.write_bytes(img.data)
            except OSError as exc:
                raise StorageIOError(f"Cannot write {dest.name}: {exc}") from exc
            result.append(self._measure(chapter_dir, dest.name, page))

        result.sort(key=lambda p: p.order)
        log.info("reconciled %d page(s) in %s (%d inline)", len(result), chapter_dir, len(decoded))
        return result

# media/archive.py
# Extraction d'une archive zip de chapitre : une page par entrée, ordre d'arrivée, noms régénérés.
from __future__ import annotations

import contextlib
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Iterator, List, Tuple

from adapters.storage.base import ArchiveError, StorageIOError
from adapters.storage.local import LocalStorage
from app.core.logging import get_logger

from .images import probe_dimensions
from .models import ChapterPage
from .utils import generate_filename, split_name

log = get_logger(__name__)

# erreurs de lecture possibles côté zipfile (CRC, compression inconnue, archive chiffrée, tronquée)
_ZIP_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, zlib.error, EOFError,
               NotImplementedError, RuntimeError, OSError)


def iter_entries(archive: Path) -> Iterator[Tuple[str, BinaryIO]]:
    """Itère (nom d'entrée, lecteur) dans l'ordre de l'archive ; les dossiers sont ignorés."""
    with zipfile.ZipFile(archive) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            with zf.open(info) as reader:
                yield info.filename, reader


class ArchiveExtractor:
    """Service métier : zip -> pages de chapitre (page courante écrite entièrement avant la suivante)."""

    def __init__(self, storage: LocalStorage) -> None:
        self.storage = storage
        self.config = storage.config
        self.paths = storage.paths

    def prepare(self, target_dir: Path) -> Path:
        """Vide les fichiers directement sous target_dir (non récursif), ou crée le dossier."""
        target_dir = self.paths.resolve(self.paths.relative(target_dir))
        if not target_dir.is_dir():
            return self.paths.ensure(target_dir)
        removed = 0
        for f in target_dir.iterdir():
            if not f.is_file():
                continue
            try:
                f.unlink()
                removed += 1
            except OSError as exc:
                raise StorageIOError(f"Cannot clear {f}: {exc}") from exc
        if removed:
            log.info("cleared %d previous page(s) in %s", removed, target_dir)
        return target_dir

    def _write(self, reader: BinaryIO, dest: Path) -> None:
        # erreurs disque -> StorageIOError ; erreurs de lecture du flux -> remontent telles quelles
        try:
            out = dest.open("wb")
        except OSError as exc:
            raise StorageIOError(f"Cannot write {dest.name}: {exc}") from exc
        with out:
            for chunk in iter(lambda: reader.read(self.config.chunk_size), b""):
                try:
                    out.write(chunk)
                except OSError as exc:
                    raise StorageIOError(f"Cannot write {dest.name}: {exc}") from exc

    def extract(self, archive: Path, target_dir: Path) -> List[ChapterPage]:
        archive = Path(archive)
        target_dir = self.prepare(target_dir)
        pages: List[ChapterPage] = []
        try:
            with contextlib.closing(iter_entries(archive)) as entries:
                for entry_name, reader in entries:
                    _, ext = split_name(entry_name)
                    dest = target_dir / generate_filename(ext)
                    self._write(reader, dest)
                    page = ChapterPage(image_url=dest.name, order=len(pages) + 1,
                                       file_size=dest.stat().st_size)
                    if self.config.is_raster(ext):
                        dims = probe_dimensions(dest)
                        if dims:
                            page.width, page.height = dims
                    log.debug("extracted %s -> %s (order=%d)", entry_name, dest.name, page.order)
                    pages.append(page)
        except StorageIOError:
            raise
        except _ZIP_ERRORS as exc:
            # pas de rollback : les pages déjà écrites restent dans target_dir
            log.error("archive %s aborted after %d page(s): %s", archive.name, len(pages), exc)
            raise ArchiveError(f"Cannot extract archive: {exc}") from exc

        try:
            archive.unlink()
        except OSError as exc:
            log.warning("could not remove staged archive %s: %s", archive, exc)
        log.info("extracted %d page(s) into %s", len(pages), target_dir)
        return pages

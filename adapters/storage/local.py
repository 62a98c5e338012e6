# adapters/storage/local.py
from __future__ import annotations

import contextlib
import errno
import os
import shutil
import threading
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, ContextManager, List, Optional

from .base import (
    ExtensionNotAllowed, FileTooLarge, MoveError, NotFound, PathEscape,
    Storage, StorageConfig, StorageIOError, ValidationError,
)
from .paths import PathResolver

from app.core.config import get_settings
from app.core.logging import get_logger
from media.images import probe_dimensions
from media.models import Dimensions, StoredFile
from media.utils import generate_filename, split_name

log = get_logger(__name__)


def _timestamp(value: float) -> datetime:
    return datetime.fromtimestamp(value, tz=timezone.utc)


class LocalStorage(Storage):
    """
    Implémentation disque locale du contrat Storage:
    - Racine et zone temp branchées à settings.storage (figées dans StorageConfig).
    - Un nom logique = au plus une variante d'extension par dossier.
    - Remplacement : purge des anciennes variantes (best-effort) puis move.
    - Écritures sérialisées par nom logique dans le processus (option serialize_writes).
    """

    def __init__(self, config: Optional[StorageConfig] = None) -> None:
        self.config: StorageConfig = config or StorageConfig.from_settings(get_settings().storage)
        self.paths = PathResolver(self.config)
        self.root: Path = self.config.root
        self.tmp: Path = self.config.temp_dir
        self.allowed = self.config.allowed_extensions

        self.paths.ensure(self.tmp)

        # un verrou par (dossier, nom) tant qu'une écriture le détient ; libéré ensuite
        self._locks: "weakref.WeakValueDictionary[str, threading.Lock]" = weakref.WeakValueDictionary()
        self._locks_guard = threading.Lock()

    # ----------------- résolution -----------------
    def directory_for(self, kind: str, id: Optional[str] = None, chapter_key: Optional[str] = None) -> Path:
        return self.paths.resolve_kind(kind, id, chapter_key)

    def ensure_dir(self, path: Path) -> Path:
        return self.paths.ensure(path)

    def _inside(self, directory: Path) -> Path:
        # re-normalise un chemin absolu déjà résolu (lève PathEscape sinon)
        return self.paths.resolve(self.paths.relative(directory))

    @staticmethod
    def check_name(name: str) -> str:
        name = (name or "").strip()
        if not name:
            raise ValidationError('The field "name" is required.')
        if name in (".", "..") or any(c in name for c in ("/", "\\", "\x00")):
            raise PathEscape(f"Invalid logical name: {name!r}")
        return name

    def _lock_for(self, directory: Path, name: str) -> ContextManager:
        if not self.config.serialize_writes:
            return contextlib.nullcontext()
        key = f"{directory}{os.sep}{name}"
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
        return lock

    # ----------------- staging -----------------
    def stage_stream(self, filename: str, stream: BinaryIO) -> Path:
        """Copie un flux entrant dans la zone temp, sous un nom généré (extension conservée)."""
        _, ext = split_name(filename or "")
        if not self.config.is_allowed(ext):
            raise ExtensionNotAllowed(f'Extension "{ext or "<none>"}" is not allowed.')
        self.paths.ensure(self.tmp)
        staged = self.tmp / generate_filename(ext)
        size = 0
        max_bytes = self.config.max_bytes
        try:
            with staged.open("wb") as out:
                for chunk in iter(lambda: stream.read(self.config.chunk_size), b""):
                    size += len(chunk)
                    if max_bytes and size > max_bytes:
                        raise FileTooLarge(f"{filename} exceeds {self.config.max_file_size_mb} MB")
                    out.write(chunk)
        except FileTooLarge:
            staged.unlink(missing_ok=True)
            raise
        except OSError as exc:
            staged.unlink(missing_ok=True)
            raise StorageIOError(f"Cannot stage {filename}: {exc}") from exc
        log.debug("staged %s -> %s (%d B)", filename, staged.name, size)
        return staged

    # ----------------- ExtensionMatcher -----------------
    def variants(self, directory: Path, logical_name: str) -> List[Path]:
        directory = self._inside(directory)
        name = self.check_name(logical_name)
        return [directory / f"{name}{ext}" for ext in self.allowed if (directory / f"{name}{ext}").is_file()]

    def find(self, directory: Path, logical_name: str) -> Path:
        directory = self._inside(directory)
        name = self.check_name(logical_name)
        # nom déjà complet (pages de chapitre demandées par leur nom généré)
        _, ext = split_name(name)
        if ext and self.config.is_allowed(ext) and (directory / name).is_file():
            return directory / name
        for ext in self.allowed:
            candidate = directory / f"{name}{ext}"
            if candidate.is_file():
                return candidate
        raise NotFound(f'File "{name}" not found.')

    # ----------------- SingleFileReplacer -----------------
    def replace(self, staged: Path, target_dir: Path, logical_name: str) -> Path:
        staged = Path(staged)
        name = self.check_name(logical_name)
        _, new_ext = split_name(staged.name)
        if not self.config.is_allowed(new_ext):
            raise ExtensionNotAllowed(f'Extension "{new_ext or "<none>"}" is not allowed.')
        target_dir = self._inside(target_dir)
        final = self._inside(target_dir / f"{name}{new_ext}")

        # confinement (realpath de chaque ancêtre) vérifié avant toute suppression
        self.paths.ensure(target_dir)
        with self._lock_for(target_dir, name):
            for ext in self.allowed:
                old = target_dir / f"{name}{ext}"
                if not old.exists():
                    continue
                try:
                    old.unlink()
                    log.info("removed previous variant %s", old)
                except OSError as exc:
                    # purge best-effort : on termine l'upload quoi qu'il arrive
                    log.warning("could not remove previous variant %s: %s", old, exc)
            self._move(staged, final)
        log.info("stored %s", final)
        return final

    @staticmethod
    def _move(src: Path, dst: Path) -> None:
        try:
            os.replace(src, dst)  # move atomique si même volume
            return
        except OSError as exc:
            if exc.errno != errno.EXDEV:
                raise MoveError(f"Cannot move {src.name} to {dst}: {exc}") from exc
        # volumes différents : copie puis suppression de la source
        try:
            shutil.copy2(src, dst)
        except OSError as exc:
            with contextlib.suppress(OSError):
                dst.unlink()
            raise MoveError(f"Cannot copy {src.name} to {dst}: {exc}") from exc
        try:
            src.unlink()
        except OSError as exc:
            log.warning("copied %s but could not remove the staged file: %s", src, exc)

    def remove(self, directory: Path, logical_name: str) -> List[Path]:
        directory = self._inside(directory)
        name = self.check_name(logical_name)
        with self._lock_for(directory, name):
            found = self.variants(directory, name)
            if not found:
                raise NotFound(f'File "{name}" not found.')
            for f in found:
                try:
                    f.unlink()
                except OSError as exc:
                    raise StorageIOError(f"Cannot remove {f.name}: {exc}") from exc
        log.info("removed %s", ", ".join(str(f) for f in found))
        return found

    # ----------------- FileLister -----------------
    def describe(self, path: Path) -> StoredFile:
        st = path.stat()
        stem, ext = split_name(path.name)
        dims = probe_dimensions(path) if self.config.is_raster(ext) else None
        return StoredFile(
            logical_name=stem,
            extension=ext,
            size_bytes=st.st_size,
            created_at=_timestamp(getattr(st, "st_birthtime", st.st_ctime)),
            modified_at=_timestamp(st.st_mtime),
            dimensions=Dimensions(width=dims[0], height=dims[1]) if dims else None,
        )

    def list_files(self, directory: Path) -> List[StoredFile]:
        directory = self._inside(directory)
        if not directory.is_dir():
            return []
        files: List[StoredFile] = []
        for f in sorted(p for p in directory.iterdir() if p.is_file()):
            try:
                files.append(self.describe(f))
            except FileNotFoundError:
                # supprimé entre iterdir() et stat()
                continue
        return files

    # ----------- fabrique optionnelle -----------
    @classmethod
    def from_settings(cls) -> "LocalStorage":
        """
        Instancie depuis la config globale (syntactic sugar).
        """
        return cls(StorageConfig.from_settings(get_settings().storage))

# adapters/storage/paths.py
# Résolution sandboxée : (kind, id) -> sous-arbre, relatif -> absolu sous la racine, création d'ancêtres vérifiés.
from __future__ import annotations

import os
import re
from pathlib import Path, PurePath
from typing import Dict, Optional, Union

from app.core.logging import get_logger

from .base import InvalidKind, MissingId, PathEscape, StorageConfig, StorageIOError

log = get_logger(__name__)

KIND_TEMPLATES: Dict[str, str] = {
    "user": "user/{id}",
    "assets": "assets",
    "image": "image",
    "series": "series/{id}",
    "series-assets": "series/{id}/assets",
    "series-chapter": "series/{id}/chapters/{chapter_key}",
}

# "/x", "\x", "C:..." : fragments d'allure absolue
_ABSOLUTE_RX = re.compile(r"^(?:[A-Za-z]:|[\\/])")
_DOTS_RX = re.compile(r"^\.+$")


def chapter_key(volume: Union[str, int], index: Union[str, int]) -> str:
    """Ex: vol-1-cap-12"""
    return f"vol-{volume}-cap-{index}"


def resolve_kind(kind: str, id: Optional[str] = None, chapter_key: Optional[str] = None) -> str:
    """
    Mappe un descripteur de ressource vers son chemin relatif à la racine.

    Lève InvalidKind pour un type inconnu, MissingId quand l'id (ou la clé de
    chapitre) est requis mais absent. Aucun accès disque.
    """
    template = KIND_TEMPLATES.get(kind or "")
    if template is None:
        raise InvalidKind(f'Invalid type "{kind}".')
    values = {"id": id, "chapter_key": chapter_key}
    for key, value in values.items():
        if "{" + key + "}" not in template:
            continue
        if value is None or not str(value).strip():
            field = "id" if key == "id" else "chapter"
            raise MissingId(f'The field "{field}" is required for type "{kind}".')
        # "." / ".." disparaissent à la normalisation : user/. == user, series-assets/. == series/assets
        if re.search(r"[\\/]", str(value)) or _DOTS_RX.match(str(value).strip()):
            raise PathEscape(f"Invalid {key}: {value!r}")
    return template.format(**{k: str(v).strip() if v is not None else "" for k, v in values.items()})


class PathResolver:
    """Jointure lexicale (sans syscall) puis normalisation, bornée à la racine de stockage."""

    def __init__(self, config: StorageConfig) -> None:
        self.config = config
        self.root: Path = config.root
        self._root_str = os.path.normpath(str(config.root))

    def contains(self, path: Union[str, PurePath]) -> bool:
        # comparaison par segment : ".../public2" n'est pas sous ".../public"
        candidate = os.path.normpath(str(path))
        return candidate == self._root_str or candidate.startswith(self._root_str.rstrip(os.sep) + os.sep)

    def resolve(self, relative: Union[str, PurePath]) -> Path:
        raw = str(relative).replace("\\", "/")
        if "\x00" in raw or _ABSOLUTE_RX.match(raw):
            raise PathEscape(f"Path escapes storage root: {relative!s}")
        parts = [p for p in raw.split("/") if p not in ("", ".")]
        if ".." in parts:
            raise PathEscape(f"Path escapes storage root: {relative!s}")
        candidate = os.path.normpath(os.path.join(self._root_str, *parts))
        if not self.contains(candidate):
            raise PathEscape(f"Path escapes storage root: {relative!s}")
        return Path(candidate)

    def resolve_kind(self, kind: str, id: Optional[str] = None, chapter_key: Optional[str] = None) -> Path:
        return self.resolve(resolve_kind(kind, id, chapter_key))

    def relative(self, path: Union[str, PurePath]) -> str:
        """Chemin relatif (style URL) depuis la racine ; lève PathEscape si hors racine."""
        if not self.contains(path):
            raise PathEscape(f"Path escapes storage root: {path!s}")
        rel = os.path.relpath(os.path.normpath(str(path)), self._root_str)
        return "" if rel == "." else rel.replace(os.sep, "/")

    # ----------------- DirectoryEnsurer -----------------
    def ensure(self, path: Union[str, PurePath]) -> Path:
        """
        Crée `path` et chaque ancêtre manquant sous la racine, idempotent.

        Chaque ancêtre est vérifié individuellement : lexicalement, puis via
        realpath pour refuser un lien symbolique qui sortirait de la racine.
        """
        target = self.resolve(self.relative(path))
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            real_root = os.path.realpath(self._root_str)
            current = self.root
            for part in target.relative_to(self.root).parts:
                current = self.resolve(self.relative(current / part))
                if not current.exists():
                    current.mkdir(exist_ok=True)
                    log.debug("created directory %s", current)
                real = os.path.realpath(current)
                if real != real_root and not real.startswith(real_root.rstrip(os.sep) + os.sep):
                    raise PathEscape(f"Ancestor escapes storage root: {current}")
                if not current.is_dir():
                    raise StorageIOError(f"Not a directory: {current}")
        except OSError as exc:
            raise StorageIOError(f"Cannot create directory {target}: {exc}") from exc
        return target

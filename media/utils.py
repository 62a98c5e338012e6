# media/utils.py
from __future__ import annotations
from pathlib import PurePosixPath
from typing import Optional, Tuple
from uuid import uuid4


def clean_field(value: Optional[str]) -> Optional[str]:
    """Champ de formulaire nettoyé ; None si absent ou vide."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def split_name(name: str) -> Tuple[str, str]:
    """'cover.PNG' -> ('cover', '.png') ; l'extension est toujours en lowercase."""
    p = PurePosixPath(str(name).replace("\\", "/")).name
    dot = p.rfind(".")
    if dot <= 0:
        return p, ""
    return p[:dot], p[dot:].lower()


def generate_filename(extension: str) -> str:
    """Nom sans collision : seule l'extension d'origine est conservée."""
    return f"{uuid4().hex}{extension.lower()}"


def basename(url: str) -> str:
    # imageURL peut être un nom nu ou une URL complète vers le fichier
    return PurePosixPath(str(url).split("?", 1)[0].replace("\\", "/")).name

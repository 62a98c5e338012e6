# media/images.py
# Métadonnées image (Pillow) + décodage des pages inline "data:image/<fmt>;base64,...".
from __future__ import annotations

import base64
import binascii
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from PIL import Image

from adapters.storage.base import ValidationError
from app.core.logging import get_logger

log = get_logger(__name__)

_DATA_URL_RX = re.compile(r"^data:image/(?P<fmt>[a-z0-9.+-]+);base64,(?P<payload>.*)$", re.I | re.S)

# sous-type MIME -> extension écrite sur disque
FORMAT_EXTENSIONS = {
    "jpeg": ".jpeg",
    "jpg": ".jpg",
    "pjpeg": ".jpeg",
    "png": ".png",
    "gif": ".gif",
    "webp": ".webp",
    "svg+xml": ".svg",
    "svg": ".svg",
}


@dataclass(frozen=True)
class InlineImage:
    extension: str
    data: bytes


def decode_data_url(value: str) -> InlineImage:
    m = _DATA_URL_RX.match((value or "").strip())
    if not m:
        raise ValidationError("imageData must be a data:image/<format>;base64 URL.")
    fmt = m.group("fmt").lower()
    ext = FORMAT_EXTENSIONS.get(fmt)
    if ext is None:
        raise ValidationError(f'Unsupported inline image format "{fmt}".')
    try:
        data = base64.b64decode(re.sub(r"\s+", "", m.group("payload")), validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(f"imageData is not valid base64: {exc}") from exc
    if not data:
        raise ValidationError("imageData is empty.")
    return InlineImage(extension=ext, data=data)


def probe_dimensions(path: Path) -> Optional[Tuple[int, int]]:
    """(largeur, hauteur) ou None ; un échec est journalisé, jamais propagé."""
    try:
        with Image.open(path) as img:
            width, height = img.size
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        log.warning("dimension probe failed for %s: %s", path, exc)
        return None
    return int(width), int(height)

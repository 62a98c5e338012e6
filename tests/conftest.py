"""Fixtures partagées : stockage sous tmp_path, client HTTP, fabriques d'images et de zips."""
from __future__ import annotations

import io
import zipfile
from typing import Callable, List, Tuple

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from adapters.storage.base import StorageConfig
from adapters.storage.local import LocalStorage
from app.core.resources import get_storage
from app.main import app


@pytest.fixture()
def storage(tmp_path) -> LocalStorage:
    return LocalStorage(StorageConfig(root=tmp_path / "public"))


@pytest.fixture()
def client(storage: LocalStorage):
    app.dependency_overrides[get_storage] = lambda: storage
    # le `with` déclenche le lifespan (sinon ReadinessMiddleware répond 503)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture()
def make_image() -> Callable[..., bytes]:
    def _make(fmt: str = "PNG", size: Tuple[int, int] = (4, 3)) -> bytes:
        buf = io.BytesIO()
        Image.new("RGB", size, (200, 10, 10)).save(buf, format=fmt)
        return buf.getvalue()
    return _make


@pytest.fixture()
def make_zip() -> Callable[[List[Tuple[str, bytes]]], bytes]:
    def _make(entries: List[Tuple[str, bytes]]) -> bytes:
        buf = io.BytesIO()
        with zipfile.ZipFile(buf, "w") as zf:
            for name, data in entries:
                zf.writestr(name, data)
        return buf.getvalue()
    return _make

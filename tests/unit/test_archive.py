# tests/unit/test_archive.py
import io
from pathlib import Path

import pytest

from adapters.storage.base import ArchiveError
from media.archive import ArchiveExtractor, iter_entries


def _chapter_dir(storage, serie="s1", key="vol-1-cap-1"):
    return storage.directory_for("series-chapter", serie, key)


def _staged_zip(storage, data: bytes) -> Path:
    return storage.stage_stream("chapter.zip", io.BytesIO(data))


def test_extract_three_entries_in_archive_order(storage, make_zip, make_image):
    data = make_zip([
        ("a.png", make_image("PNG", (10, 20))),
        ("b.jpg", make_image("JPEG", (30, 40))),
        ("c.png", make_image("PNG", (5, 6))),
    ])
    staged = _staged_zip(storage, data)
    target = _chapter_dir(storage)

    pages = ArchiveExtractor(storage).extract(staged, target)

    assert [p.order for p in pages] == [1, 2, 3]
    names = [p.image_url for p in pages]
    assert len(set(names)) == 3
    assert not set(names) & {"a.png", "b.jpg", "c.png"}
    assert [Path(n).suffix for n in names] == [".png", ".jpg", ".png"]
    assert [(p.width, p.height) for p in pages] == [(10, 20), (30, 40), (5, 6)]
    assert all(p.file_size == (target / p.image_url).stat().st_size for p in pages)
    assert sorted(p.name for p in target.iterdir()) == sorted(names)
    assert not staged.exists()


def test_extract_clears_previous_pages_but_not_subdirectories(storage, make_zip):
    target = storage.ensure_dir(_chapter_dir(storage))
    (target / "old.png").write_bytes(b"old")
    storage.ensure_dir(target / "extra")
    (target / "extra" / "keep.txt").write_bytes(b"keep")

    pages = ArchiveExtractor(storage).extract(_staged_zip(storage, make_zip([("p.txt", b"x")])), target)

    assert not (target / "old.png").exists()
    assert (target / "extra" / "keep.txt").exists()
    assert [p.image_url for p in pages] == [f.name for f in target.iterdir() if f.is_file()]


def test_directory_entries_are_skipped(storage, make_zip, make_image):
    data = make_zip([("pages/", b""), ("pages/01.png", make_image()), ("pages/02.png", make_image())])
    pages = ArchiveExtractor(storage).extract(_staged_zip(storage, data), _chapter_dir(storage))
    assert [p.order for p in pages] == [1, 2]


def test_unreadable_images_keep_going_without_dimensions(storage, make_zip):
    data = make_zip([("broken.png", b"nope"), ("notes.txt", b"hello")])
    pages = ArchiveExtractor(storage).extract(_staged_zip(storage, data), _chapter_dir(storage))

    assert [(p.width, p.height) for p in pages] == [(None, None), (None, None)]
    assert [p.file_size for p in pages] == [4, 5]


def test_invalid_archive_raises_archive_error(storage):
    staged = _staged_zip(storage, b"this is not a zip")
    with pytest.raises(ArchiveError):
        ArchiveExtractor(storage).extract(staged, _chapter_dir(storage))


def test_mid_stream_failure_leaves_partial_pages(storage, make_zip):
    data = make_zip([("a.txt", b"A" * 100), ("b.txt", b"B" * 100)])
    # corrompt le contenu stocké de la 2e entrée : CRC invalide à la lecture
    data = data.replace(b"B" * 100, b"C" * 100)
    target = _chapter_dir(storage)

    with pytest.raises(ArchiveError):
        ArchiveExtractor(storage).extract(_staged_zip(storage, data), target)

    # pas de rollback : la première page reste sur disque
    contents = [f.read_bytes() for f in target.iterdir() if f.is_file()]
    assert b"A" * 100 in contents
    assert b"B" * 100 not in contents


def test_iter_entries_yields_names_and_readers(tmp_path, make_zip):
    archive = tmp_path / "a.zip"
    archive.write_bytes(make_zip([("x/", b""), ("x/1.txt", b"one"), ("2.txt", b"two")]))
    assert [(name, reader.read()) for name, reader in iter_entries(archive)] == [
        ("x/1.txt", b"one"),
        ("2.txt", b"two"),
    ]

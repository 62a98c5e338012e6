# tests/unit/test_routes.py
import base64

import pytest


def _snapshot(storage):
    return sorted(str(p.relative_to(storage.root)) for p in storage.root.rglob("*"))


def _upload(client, filename, content, **fields):
    return client.post("/upload", data=fields, files={"file": (filename, content, "application/octet-stream")})


def test_health(client):
    r = client.get("/health/")
    assert r.status_code == 200
    assert r.json()["status"] == "healthy"
    assert r.json()["storage"]["writable"] is True


def test_request_id_is_echoed(client):
    r = client.get("/health/", headers={"X-Request-Id": "abc123"})
    assert r.headers["X-Request-Id"] == "abc123"


def test_upload_then_serve_by_logical_name(client, make_image):
    png = make_image("PNG", (6, 5))
    r = _upload(client, "me.png", png, name="avatar", type="user", id="42")

    assert r.status_code == 200
    body = r.json()
    assert body["file"]["path"] == "user/42/avatar.png"
    assert body["file"]["logicalName"] == "avatar"
    assert body["file"]["dimensions"] == {"width": 6, "height": 5}

    served = client.get("/user/42/avatar")
    assert served.status_code == 200
    assert served.content == png


def test_reupload_with_new_extension_leaves_one_variant(client, storage, make_image):
    _upload(client, "cover.png", make_image("PNG"), name="cover", type="series", id="s1")
    _upload(client, "cover.jpg", make_image("JPEG"), name="cover", type="series", id="s1")

    files = client.get("/series/s1/files").json()["files"]
    assert [(f["logicalName"], f["extension"]) for f in files] == [("cover", ".jpg")]
    assert client.get("/series/s1/cover").headers["content-type"] == "image/jpeg"


def test_assets_and_series_assets_routes(client):
    assert _upload(client, "logo.svg", b"<svg/>", name="logo", type="assets").status_code == 200
    assert _upload(client, "bg.txt", b"bg", name="bg", type="series-assets", id="s1").status_code == 200

    assert client.get("/assets/logo").content == b"<svg/>"
    assert client.get("/series/s1/assets/bg").content == b"bg"
    assert [f["logicalName"] for f in client.get("/assets/files").json()["files"]] == ["logo"]
    assert [f["logicalName"] for f in client.get("/series/s1/assets/files").json()["files"]] == ["bg"]


def test_image_kind_is_served_from_image_directory(client):
    _upload(client, "x.gif", b"GIF89a", name="banner", type="image")
    assert client.get("/image/banner").content == b"GIF89a"


def test_upload_missing_id_is_rejected_without_side_effects(client, storage):
    before = _snapshot(storage)
    r = _upload(client, "a.png", b"x", name="avatar", type="user")
    assert r.status_code == 400
    assert "id" in r.json()["error"]
    assert _snapshot(storage) == before


def test_upload_reports_every_missing_field(client):
    r = _upload(client, "a.png", b"x")
    assert r.status_code == 400
    assert len(r.json()["errors"]) == 2


def test_upload_rejects_unknown_type_and_extension(client, storage):
    assert _upload(client, "a.png", b"x", name="a", type="nope", id="1").status_code == 400
    assert _upload(client, "a.exe", b"x", name="a", type="user", id="1").status_code == 400
    assert list(storage.tmp.iterdir()) == []


def test_upload_rejects_traversal(client, storage):
    before = _snapshot(storage)
    assert _upload(client, "a.png", b"x", name="a", type="user", id="../../etc").status_code == 400
    assert _upload(client, "a.png", b"x", name="../a", type="assets").status_code == 400
    assert _snapshot(storage) == before


@pytest.mark.parametrize("kind,id", [("user", "."), ("series", ".."), ("series-assets", ".")])
def test_upload_rejects_dot_only_ids(client, storage, kind, id):
    before = _snapshot(storage)
    r = _upload(client, "x.txt", b"x", name="x", type=kind, id=id)
    assert r.status_code == 400
    assert "error" in r.json()
    assert _snapshot(storage) == before


def test_legacy_file_field_name_is_accepted(client):
    r = client.post("/upload", data={"name": "a", "type": "assets"}, files={"imagem": ("a.txt", b"hi", "text/plain")})
    assert r.status_code == 200


def test_remove_missing_returns_404_without_changes(client, storage):
    _upload(client, "a.png", b"x", name="keep", type="user", id="1")
    before = _snapshot(storage)

    r = client.delete("/remove", params={"name": "ghost", "type": "user", "id": "1"})

    assert r.status_code == 404
    assert "error" in r.json()
    assert _snapshot(storage) == before


def test_remove_existing(client):
    _upload(client, "a.png", b"x", name="gone", type="user", id="1")
    r = client.delete("/remove", params={"name": "gone", "type": "user", "id": "1"})
    assert r.status_code == 200
    assert r.json()["removed"] == ["user/1/gone.png"]
    assert client.get("/user/1/gone").status_code == 404


def test_serving_unknown_file_is_404(client):
    r = client.get("/image/nothing")
    assert r.status_code == 404
    assert r.json() == {"error": 'File "nothing" not found.'}


def test_listing_missing_directory_is_empty(client):
    assert client.get("/user/nobody/files").json() == {"files": []}


def test_upload_zip_then_serve_pages(client, make_zip, make_image):
    data = make_zip([("01.png", make_image("PNG", (2, 3))), ("02.jpg", make_image("JPEG", (4, 5)))])
    r = client.post(
        "/upload-zip",
        data={"serieID": "s1", "volume": "1", "index": "2"},
        files={"file": ("chapter.zip", data, "application/zip")},
    )

    assert r.status_code == 200
    body = r.json()
    assert body["chapter"] == "vol-1-cap-2"
    assert [p["order"] for p in body["pages"]] == [1, 2]
    assert [(p["width"], p["height"]) for p in body["pages"]] == [(2, 3), (4, 5)]
    first = body["pages"][0]["imageURL"]
    assert client.get(f"/series/s1/chapters/vol-1-cap-2/{first}").status_code == 200
    listed = client.get("/series/s1/chapters/vol-1-cap-2/files").json()["files"]
    assert len(listed) == 2


def test_upload_zip_validation(client, make_zip):
    data = make_zip([("a.txt", b"a")])
    r = client.post("/upload-zip", data={"volume": "1"}, files={"file": ("c.zip", data, "application/zip")})
    assert r.status_code == 400
    assert len(r.json()["errors"]) == 2

    r = client.post(
        "/upload-zip",
        data={"serieID": "s1", "volume": "1", "index": "1"},
        files={"file": ("c.pdf", b"%PDF", "application/pdf")},
    )
    assert r.status_code == 400


def test_upload_zip_malformed_archive_is_500(client):
    r = client.post(
        "/upload-zip",
        data={"serieID": "s1", "volume": "1", "index": "1"},
        files={"file": ("c.zip", b"garbage", "application/zip")},
    )
    assert r.status_code == 500
    assert "error" in r.json()


def test_analyze_pages_reconciles_chapter(client, make_zip, make_image):
    data = make_zip([(f"{i}.png", make_image()) for i in range(3)])
    pages = client.post(
        "/upload-zip",
        data={"serieID": "s1", "volume": "1", "index": "1"},
        files={"file": ("c.zip", data, "application/zip")},
    ).json()["pages"]
    inline = "data:image/png;base64," + base64.b64encode(make_image("PNG", (7, 7))).decode()

    r = client.post("/analyze-pages", json={
        "serieID": "s1", "volume": 1, "index": 1,
        "pages": [
            {"id": 1, "imageURL": pages[1]["imageURL"], "order": 2},
            {"id": "new", "imageData": inline, "order": 1},
        ],
    })

    assert r.status_code == 200
    result = r.json()["pages"]
    assert [p["order"] for p in result] == [1, 2]
    assert result[0]["id"] == "new" and result[0]["width"] == 7
    assert result[1]["imageURL"] == pages[1]["imageURL"]
    listed = client.get("/series/s1/chapters/vol-1-cap-1/files").json()["files"]
    assert len(listed) == 2


def test_analyze_pages_rejects_malformed_body(client):
    r = client.post("/analyze-pages", json={"serieID": "s1", "volume": "1", "index": "1", "pages": [{"order": 1}]})
    assert r.status_code == 400
    assert "errors" in r.json()

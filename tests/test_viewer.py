from __future__ import annotations

import pytest

from tm_receiver.store.catalog import XML_FOOTER, XML_HEADER
from tm_receiver.viewer import create_app
from tm_receiver.viewer.config import Config

from conftest import catalog_entry


@pytest.fixture
def archive(tmp_path):
    root = tmp_path / "images"
    (root / "xml_archive").mkdir(parents=True)
    (root / "foo.png").write_bytes(b"\x89PNG" + b"\x00" * 12)
    (root / "img 01.png").write_bytes(b"\x89PNG spaced")
    (root / "xml_archive" / "imageindex_20140513_165320.xml").write_bytes(
        XML_HEADER + catalog_entry("foo.png") + b"\n" + XML_FOOTER
    )
    (root / "xml_archive" / "imageindex_20140513_165400.xml").write_bytes(
        XML_HEADER + catalog_entry("foo.png") + b"\n" + catalog_entry("bar.png") + b"\n" + XML_FOOTER
    )
    # staging files live outside the archive and must never be served
    (tmp_path / "image.staging").write_bytes(b"partial")
    return root


@pytest.fixture
def client(archive):
    class TestConfig(Config):
        ARCHIVE_DIR = str(archive)
        TESTING = True

    return create_app(TestConfig).test_client()


def test_healthz(client):
    assert client.get("/healthz").get_json() == {"status": "ok"}


def test_list_images_excludes_directories(client):
    body = client.get("/archive/images").get_json()
    assert body["success"]
    assert sorted(i["name"] for i in body["images"]) == ["foo.png", "img 01.png"]


def test_download_image(client):
    resp = client.get("/archive/images/foo.png")
    assert resp.status_code == 200
    assert resp.data.startswith(b"\x89PNG")


def test_staging_file_is_unreachable(client):
    assert client.get("/archive/images/../image.staging").status_code in (400, 404)
    assert client.get("/archive/images/image.staging").status_code == 404


def test_list_catalogs_newest_first(client):
    names = [c["name"] for c in client.get("/archive/catalogs").get_json()["catalogs"]]
    assert names == ["imageindex_20140513_165400.xml", "imageindex_20140513_165320.xml"]


def test_latest_catalog_entries(client):
    body = client.get("/archive/catalogs/latest/entries").get_json()
    assert body["catalog"] == "imageindex_20140513_165400.xml"
    assert [e["fields"]["NAME"] for e in body["entries"]] == ["foo.png", "bar.png"]
    assert body["entries"][0]["tag"] == "ROEIMAGE"


def test_download_catalog(client):
    resp = client.get("/archive/catalogs/imageindex_20140513_165320.xml")
    assert resp.status_code == 200
    assert resp.mimetype == "application/xml"
    assert b"<CATALOG>" in resp.data


def test_latest_catalog_missing(tmp_path):
    class EmptyConfig(Config):
        ARCHIVE_DIR = str(tmp_path / "nothing")

    client = create_app(EmptyConfig).test_client()
    assert client.get("/archive/catalogs/latest/entries").status_code == 404
    assert client.get("/archive/images").get_json()["images"] == []


def test_download_image_with_space_in_name(client):
    resp = client.get("/archive/images/img%2001.png")
    assert resp.status_code == 200
    assert resp.data == b"\x89PNG spaced"

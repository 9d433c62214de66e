"""Shared fixtures for the shapefile upload tests."""

import io
import os
import zipfile

import pytest
import requests
from fastapi.testclient import TestClient

from Presentation.API.main import create_app
from Presentation.API.settings import PROPERTY_PREFIX, load_settings

SHAPEFILE_EXTENSIONS = (".shp", ".shx", ".dbf", ".prj")


def _zip_bytes(members):
    with io.BytesIO() as buffer:
        with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for name, data in members.items():
                zf.writestr(name, data)
        return buffer.getvalue()


@pytest.fixture
def make_zip():
    """Build zip bytes from a {member name: content} mapping."""
    return _zip_bytes


@pytest.fixture
def shapefile_zip():
    """Build a zip holding one complete shapefile bundle, optionally nested."""

    def build(base="parcels", folder="", extensions=SHAPEFILE_EXTENSIONS):
        members = {f"{folder}{base}{ext}": f"{base}{ext} payload".encode() for ext in extensions}
        return _zip_bytes(members)

    return build


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep SHAPEUPLOAD_* variables from the developer shell out of the tests."""
    for name in list(os.environ):
        if name.upper().startswith(PROPERTY_PREFIX):
            monkeypatch.delenv(name)


@pytest.fixture
def backend_response():
    """Build a real requests.Response so body decoding follows the headers."""

    def build(status_code=200, text="", content_type="text/xml", body=None):
        r = requests.Response()
        r.status_code = status_code
        r._content = body if body is not None else text.encode("utf-8")
        r.headers["Content-Type"] = content_type
        r.encoding = requests.utils.get_encoding_from_headers(r.headers)
        return r

    return build


@pytest.fixture
def staging_dir(tmp_path):
    d = tmp_path / "staging"
    d.mkdir()
    return d


@pytest.fixture
def rest_settings(staging_dir):
    def build(**init_params):
        params = {
            "geoserver-endpoint": "http://gs/geoserver",
            "geoserver-username": "admin",
            "geoserver-password": "secret",
            "geoserver-default-workspace": "ws1",
            "upload-temp-path": str(staging_dir),
        }
        params.update(init_params)
        return load_settings(config={"InitParameters": params})

    return build


@pytest.fixture
def wps_settings(staging_dir):
    def build(**init_params):
        params = {"publish-mode": "wps", "upload-temp-path": str(staging_dir)}
        params.update(init_params)
        return load_settings(config={"InitParameters": params})

    return build


@pytest.fixture
def client_for():
    def build(settings):
        return TestClient(create_app(settings))

    return build

from unittest.mock import MagicMock

import pytest
import requests

from Application.helpers.cancellation import CancelToken
from Application.helpers.exceptions import GeoServerError
from Application.services.geoserver_service import GeoServerService
from Application.services.shapefile_service import ShapefileService
from Application.services.wps_service import WpsService
from Entities.shapefile_entity import ShapefileBundle
from Entities.upload_entity import PublishMode, ResponseFormat, UploadRequest


def _rest_request():
    return UploadRequest(
        filename_field="qqfile", filename="parcels.zip", response_format=ResponseFormat.XML,
        mode=PublishMode.REST, content_length=10, layer="parcels",
        workspace="ws", store="st", srs="EPSG:4326",
    )


def test_rest_mode_builds_only_the_geoserver_publisher(rest_settings):
    service = ShapefileService.create_from_settings(rest_settings())

    assert isinstance(service._gs, GeoServerService)
    assert service._wps is None


def test_wps_mode_builds_only_the_wps_publisher(wps_settings):
    service = ShapefileService.create_from_settings(wps_settings())

    assert isinstance(service._wps, WpsService)
    assert service._gs is None


def test_publishers_share_the_session_that_cancel_closes(rest_settings, monkeypatch):
    closed = []
    monkeypatch.setattr(requests.Session, "close", lambda session: closed.append(session))
    token = CancelToken()
    service = ShapefileService.create_from_settings(rest_settings(), cancel_token=token)

    token.cancel()

    assert service._gs.cancel_token is token
    assert closed == [service._gs.session]


def test_rest_publish_returns_empty_result():
    gs = MagicMock()
    service = ShapefileService(geoserver=gs)

    result = service.publish(_rest_request(), ShapefileBundle(path="/tmp/parcels.zip", base_name="parcels"))

    assert result.response_text is None
    assert gs.publish_shapefile.call_args.kwargs["native_name"] == "parcels"


def test_rest_publish_failure_propagates():
    gs = MagicMock()
    gs.publish_shapefile.side_effect = GeoServerError("Failed to upload shapefile to GeoServer.", status_code=500)
    service = ShapefileService(geoserver=gs)

    with pytest.raises(GeoServerError):
        service.publish(_rest_request(), ShapefileBundle(path="/tmp/parcels.zip", base_name="parcels"))


def test_missing_publisher_for_mode_is_an_error(wps_settings):
    service = ShapefileService.create_from_settings(wps_settings())

    with pytest.raises(RuntimeError):
        service.publish(_rest_request(), ShapefileBundle(path="/tmp/parcels.zip", base_name="parcels"))

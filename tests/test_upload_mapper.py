import pytest

from Application.helpers.exceptions import RequestValidationError
from Application.mappings.upload_mapper import to_params_dto, to_upload_request
from Entities.geoserver_helper import derive_layer_name
from Entities.upload_entity import PublishMode, ResponseFormat


@pytest.mark.parametrize("filename,expected", [
    ("parcels.zip", "parcels"),
    ("MY Data.v2.zip", "MY_Data_v2"),
    ("  roads.zip ", "roads"),
    ("noext", "noext"),
    ("tab\tname.zip", "tab_name"),
])
def test_derive_layer_name_strips_last_extension(filename, expected):
    assert derive_layer_name(filename) == expected


@pytest.mark.parametrize("value,expected", [
    (None, ResponseFormat.JSON),
    ("", ResponseFormat.JSON),
    ("application/JSON", ResponseFormat.JSON),
    ("xml", ResponseFormat.XML),
    ("text/plain", ResponseFormat.XML),
])
def test_response_format_negotiation(value, expected):
    assert ResponseFormat.from_param(value) is expected


def test_rest_request_falls_back_to_defaults(rest_settings):
    settings = rest_settings(**{"geoserver-default-storename": "default_store", "geoserver-default-srs": "EPSG:3857"})
    dto = to_params_dto({"qqfile": "parcels.zip"}, settings.FILENAME_PARAM)

    req = to_upload_request(dto, settings, content_length=10)

    assert req.mode is PublishMode.REST
    assert (req.workspace, req.store, req.srs, req.layer) == ("ws1", "default_store", "EPSG:3857", "parcels")
    assert req.filename_field == "qqfile"


def test_request_values_override_defaults(rest_settings):
    settings = rest_settings()
    dto = to_params_dto({
        "qqfile": "parcels.zip",
        "workspace": "ws2",
        "store": "s",
        "srs": "EPSG:4326",
        "layer": "my layer.v1",
    }, settings.FILENAME_PARAM)

    req = to_upload_request(dto, settings, content_length=10)

    assert req.workspace == "ws2"
    assert req.layer == "my_layer_v1"


def test_filename_param_override_stays_in_the_request(rest_settings):
    settings = rest_settings()
    dto = to_params_dto({"filename-param": "file", "file": "a.zip", "store": "s", "srs": "EPSG:4326"}, settings.FILENAME_PARAM)

    req = to_upload_request(dto, settings, content_length=1)

    assert req.filename == "a.zip"
    assert req.filename_field == "file"
    assert settings.FILENAME_PARAM == "qqfile"


@pytest.mark.parametrize("params,missing", [
    ({"qqfile": "a.zip", "srs": "EPSG:4326"}, "store"),
    ({"qqfile": "a.zip", "store": "s"}, "srs"),
    ({"store": "s", "srs": "EPSG:4326"}, "filename"),
])
def test_missing_mandatory_parameter(rest_settings, params, missing):
    settings = rest_settings()

    with pytest.raises(RequestValidationError) as exc:
        to_upload_request(to_params_dto(params, "qqfile"), settings, content_length=1)

    assert exc.value.message == f"Parameter \"{missing}\" is mandatory"


def test_missing_workspace_without_default(rest_settings):
    settings = rest_settings(**{"geoserver-default-workspace": ""})
    dto = to_params_dto({"qqfile": "a.zip", "store": "s", "srs": "EPSG:4326"}, "qqfile")

    with pytest.raises(RequestValidationError, match="workspace"):
        to_upload_request(dto, settings, content_length=1)


def test_srs_must_be_authority_qualified(rest_settings):
    settings = rest_settings()
    dto = to_params_dto({"qqfile": "a.zip", "store": "s", "srs": "4326"}, "qqfile")

    with pytest.raises(RequestValidationError, match="authority"):
        to_upload_request(dto, settings, content_length=1)


@pytest.mark.parametrize("filename", ["../etc/passwd", "dir/a.zip", "..", "c:\\a.zip"])
def test_path_like_filenames_are_rejected(rest_settings, filename):
    settings = rest_settings()
    dto = to_params_dto({"qqfile": filename, "store": "s", "srs": "EPSG:4326"}, "qqfile")

    with pytest.raises(RequestValidationError, match="Invalid filename"):
        to_upload_request(dto, settings, content_length=1)


def test_wps_request_needs_both_urls(wps_settings):
    settings = wps_settings()
    dto = to_params_dto({"qqfile": "roads.zip", "utilitywps": "http://wps/ows"}, "qqfile")

    with pytest.raises(RequestValidationError, match="wfs-url"):
        to_upload_request(dto, settings, content_length=1)


def test_wps_request_uses_configured_endpoints(wps_settings):
    settings = wps_settings(**{"wps-endpoint": "http://wps/ows", "wfs-endpoint": "http://wfs/ows"})
    dto = to_params_dto({"qqfile": "roads.zip"}, "qqfile")

    req = to_upload_request(dto, settings, content_length=1)

    assert (req.wps_url, req.wfs_url) == ("http://wps/ows", "http://wfs/ows")
    assert req.workspace is None

import json

from Entities.upload_entity import ResponseFormat
from Presentation.API.responses import (
    CData,
    error_response,
    render_json,
    render_xml,
    success_response,
)


def test_xml_escapes_values():
    body = render_xml({"error": "a < b & \"c\""})

    assert body == "<response><error>a &lt; b &amp; \"c\"</error></response>"


def test_xml_cdata_is_emitted_verbatim():
    body = render_xml({"wpsResponse": CData("<ExecuteResponse>OK</ExecuteResponse>")})

    assert body == "<response><wpsResponse><![CDATA[<ExecuteResponse>OK</ExecuteResponse>]]></wpsResponse></response>"


def test_xml_cdata_splits_terminator():
    body = render_xml({"wpsResponse": CData("a]]>b")})

    assert "<![CDATA[a]]]]><![CDATA[>b]]>" in body


def test_json_wraps_cdata_for_parity():
    body = json.loads(render_json({"wpsResponse": CData("<x/>"), "success": "true"}))

    assert body == {"wpsResponse": "<![CDATA[<x/>]]>", "success": "true"}


def test_error_response_json():
    response = error_response("Upload exceeds max file size of 1024 bytes", ResponseFormat.JSON)

    assert response.status_code == 200
    assert response.headers["content-type"] == "application/json; charset=utf-8"
    assert response.body == b'{"error":"Upload exceeds max file size of 1024 bytes"}'


def test_error_response_carries_exception_only_when_given():
    response = error_response("Unable to upload file", ResponseFormat.XML, "boom")

    assert response.headers["content-type"] == "text/xml; charset=utf-8"
    assert response.body == b"<response><error>Unable to upload file</error><exception>boom</exception></response>"


def test_success_response_marks_success():
    response = success_response({}, ResponseFormat.JSON)

    assert json.loads(response.body) == {"success": "true"}

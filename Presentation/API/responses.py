import json
import logging
from typing import Dict, Optional
from xml.sax.saxutils import escape

from fastapi.responses import Response

from Entities.upload_entity import ResponseFormat

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json; charset=utf-8"
XML_CONTENT_TYPE = "text/xml; charset=utf-8"


class CData(str):
    """A value emitted verbatim inside a CDATA section instead of being escaped."""


def _cdata(value: str) -> str:
    # "]]>" cannot appear inside one section, so split it across two
    return "<![CDATA[" + value.replace("]]>", "]]]]><![CDATA[>") + "]]>"


def render_xml(payload: Dict[str, str]) -> str:
    parts = ["<response>"]
    for key, value in payload.items():
        text = _cdata(value) if isinstance(value, CData) else escape(str(value))
        parts.append(f"<{key}>{text}</{key}>")
    parts.append("</response>")
    return "".join(parts)


def render_json(payload: Dict[str, str]) -> str:
    body = {
        key: _cdata(value) if isinstance(value, CData) else str(value)
        for key, value in payload.items()
    }
    return json.dumps(body, separators=(",", ":"))


def envelope(payload: Dict[str, str], response_format: ResponseFormat) -> Response:
    # always 200: failures are reported through the "error" key
    if response_format is ResponseFormat.XML:
        return Response(content=render_xml(payload), status_code=200, media_type=XML_CONTENT_TYPE)
    return Response(content=render_json(payload), status_code=200, media_type=JSON_CONTENT_TYPE)


def success_response(payload: Dict[str, str], response_format: ResponseFormat) -> Response:
    return envelope({"success": "true", **payload}, response_format)


def error_response(error: str, response_format: ResponseFormat, exception: Optional[str] = None) -> Response:
    payload = {"error": error}
    if exception:
        payload["exception"] = exception
    logger.info("Responding with error: %s", error)
    return envelope(payload, response_format)

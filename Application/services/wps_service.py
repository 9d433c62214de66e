import base64
import logging
import os
import tempfile
from typing import BinaryIO, Optional, TextIO
from xml.sax.saxutils import escape

import requests

from Application.interfaces.i_wps_service import IWpsService
from Application.helpers.cancellation import CancellableReader, CancelToken
from Application.helpers.exceptions import WpsError
from Application.helpers.http_helper import decoded_text
from Entities.geoserver_helper import strip_zip_suffix

logger = logging.getLogger(__name__)

RECEIVE_FILES_PROCESS = "gov.usgs.cida.gdp.wps.algorithm.filemanagement.ReceiveFiles"
ZIPPED_SHAPEFILE_MIME = "application/x-zipped-shp"

# multiple of 3 so each chunk encodes without "=" padding in the middle
_B64_CHUNK = 3 * 16 * 1024

_EXECUTE_HEAD = (
    '<?xml version="1.0" encoding="UTF-8"?>'
    '<wps:Execute service="WPS" version="1.0.0" '
    'xmlns:wps="http://www.opengis.net/wps/1.0.0" '
    'xmlns:ows="http://www.opengis.net/ows/1.1" '
    'xmlns:xlink="http://www.w3.org/1999/xlink" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xsi:schemaLocation="http://www.opengis.net/wps/1.0.0 '
    'http://schemas.opengis.net/wps/1.0.0/wpsExecute_request.xsd">'
    "<ows:Identifier>" + RECEIVE_FILES_PROCESS + "</ows:Identifier>"
    "<wps:DataInputs>"
)

_EXECUTE_TAIL = (
    "</wps:DataInputs>"
    "<wps:ResponseForm>"
    "<wps:ResponseDocument>"
    "<wps:Output><ows:Identifier>result</ows:Identifier></wps:Output>"
    "<wps:Output><ows:Identifier>wfs-url</ows:Identifier></wps:Output>"
    "<wps:Output><ows:Identifier>featuretype</ows:Identifier></wps:Output>"
    "</wps:ResponseDocument>"
    "</wps:ResponseForm>"
    "</wps:Execute>"
)


def _literal_input(identifier: str, value: str) -> str:
    return (
        "<wps:Input>"
        f"<ows:Identifier>{identifier}</ows:Identifier>"
        f"<wps:Data><wps:LiteralData>{escape(value)}</wps:LiteralData></wps:Data>"
        "</wps:Input>"
    )


def write_base64(source: BinaryIO, out: TextIO) -> None:
    """Stream ``source`` into ``out`` as a single unbroken Base64 line."""
    while True:
        chunk = source.read(_B64_CHUNK)
        if not chunk:
            break
        out.write(base64.b64encode(chunk).decode("ascii"))


def write_execute_document(out: TextIO, filename: str, wfs_url: str, archive_path: str) -> None:
    out.write(_EXECUTE_HEAD)
    out.write(_literal_input("filename", strip_zip_suffix(filename)))
    out.write(_literal_input("wfs-url", wfs_url))
    out.write(
        "<wps:Input>"
        "<ows:Identifier>file</ows:Identifier>"
        "<wps:Data>"
        f'<wps:ComplexData mimeType="{ZIPPED_SHAPEFILE_MIME}" encoding="Base64">'
    )
    with open(archive_path, "rb") as source:
        write_base64(source, out)
    out.write("</wps:ComplexData></wps:Data></wps:Input>")
    out.write(_EXECUTE_TAIL)


class WpsService(IWpsService):
    def __init__(
        self,
        timeout: float = 30,
        temp_dir: Optional[str] = None,
        session: Optional[requests.Session] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self.timeout = timeout
        self.temp_dir = temp_dir
        self.session = session or requests.Session()
        self.cancel_token = cancel_token

    def build_execute_file(self, filename: str, wfs_url: str, archive_path: str) -> str:
        fd, xml_path = tempfile.mkstemp(prefix="wps.upload.", suffix=".xml", dir=self.temp_dir)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as out:
                write_execute_document(out, filename, wfs_url, archive_path)
        except Exception:
            os.remove(xml_path)
            raise
        return xml_path

    def publish_shapefile(self, wps_url: str, wfs_url: str, filename: str, archive_path: str) -> str:
        """POST a ReceiveFiles Execute request and return the raw response body."""
        xml_path = self.build_execute_file(filename, wfs_url, archive_path)
        try:
            size = os.path.getsize(xml_path)
            logger.debug("Posting WPS Execute %s (%d bytes) to %s", xml_path, size, wps_url)
            if self.cancel_token is not None:
                self.cancel_token.raise_if_cancelled()
            with open(xml_path, "rb") as f:
                r = self.session.post(
                    wps_url, data=CancellableReader(f, self.cancel_token, size),
                    headers={"Content-Type": "application/xml"},
                    timeout=self.timeout
                )
        finally:
            os.remove(xml_path)

        text = decoded_text(r)
        if not 200 <= r.status_code < 300:
            raise WpsError(
                f"WPS request failed with HTTP {r.status_code}",
                status_code=r.status_code, response_text=text[:5000] or None
            )
        if not text.strip():
            raise WpsError("WPS response was empty", status_code=r.status_code)
        return text

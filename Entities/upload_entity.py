from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ResponseFormat(str, Enum):
    XML = "xml"
    JSON = "json"

    @classmethod
    def from_param(cls, value: Optional[str]) -> "ResponseFormat":
        # blank or anything mentioning json -> JSON, everything else -> XML
        if value is None or not value.strip() or "json" in value.lower():
            return cls.JSON
        return cls.XML


class PublishMode(str, Enum):
    REST = "rest"
    WPS = "wps"


@dataclass(frozen=True)
class UploadRequest:
    filename_field: str
    filename: str
    response_format: ResponseFormat
    mode: PublishMode
    content_length: int
    layer: str
    workspace: Optional[str] = None
    store: Optional[str] = None
    srs: Optional[str] = None
    wps_url: Optional[str] = None
    wfs_url: Optional[str] = None

from dataclasses import dataclass
from typing import Optional

REQUIRED_EXTENSIONS = (".shp", ".shx", ".dbf", ".prj")


@dataclass
class ShapefileBundle:
    path: str
    base_name: str


@dataclass
class PublishResult:
    # publish failures raise; a result always means the backend accepted the upload
    response_text: Optional[str] = None

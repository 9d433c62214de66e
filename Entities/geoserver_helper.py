import os
import re
from enum import Enum
from typing import Optional
from xml.sax.saxutils import escape

NATIVE_SRS_PLACEHOLDER = "nativeSRS"


class UploadMethod(str, Enum):
    FILE = "file"
    URL = "url"
    EXTERNAL = "external"


class ProjectionPolicy(str, Enum):
    NONE = "NONE"
    FORCE_DECLARED = "FORCE_DECLARED"
    REPROJECT_TO_DECLARED = "REPROJECT_TO_DECLARED"


def derive_layer_name(filename: str) -> str:
    # drop the last extension only
    stem, _ext = os.path.splitext(filename.strip())
    return normalize_layer_name(stem)


def normalize_layer_name(layer: str) -> str:
    return re.sub(r"[.\s]", "_", layer.strip())


def strip_zip_suffix(filename: str) -> str:
    if filename.lower().endswith(".zip"):
        return filename[: -len(".zip")]
    return filename


def build_featuretype_xml(
    layer: str,
    native_name: str,
    srs: str,
    projection_policy: str,
    native_srs: Optional[str] = None,
) -> str:
    native_crs = ""
    if native_srs and native_srs != NATIVE_SRS_PLACEHOLDER:
        native_crs = f"\n  <nativeCRS>{escape(native_srs)}</nativeCRS>"
    return f"""<featureType>
  <name>{escape(layer)}</name>
  <nativeName>{escape(native_name)}</nativeName>
  <srs>{escape(srs)}</srs>{native_crs}
  <projectionPolicy>{projection_policy}</projectionPolicy>
  <enabled>true</enabled>
</featureType>"""

from typing import Optional

from pydantic import BaseModel


class UploadParamsDTO(BaseModel):
    """Raw request parameters, as found in the query string or form fields."""

    filename: Optional[str] = None
    filename_param: Optional[str] = None
    workspace: Optional[str] = None
    store: Optional[str] = None
    srs: Optional[str] = None
    layer: Optional[str] = None
    response_encoding: Optional[str] = None
    utilitywps: Optional[str] = None
    wfs_url: Optional[str] = None

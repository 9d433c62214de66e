import logging
import os
from typing import Mapping, Optional

from Application.dto.upload_dto import UploadParamsDTO
from Application.helpers.exceptions import RequestValidationError
from Entities.geoserver_helper import derive_layer_name, normalize_layer_name
from Entities.upload_entity import PublishMode, ResponseFormat, UploadRequest

logger = logging.getLogger(__name__)


def _first(params: Mapping[str, str], name: str) -> Optional[str]:
    value = params.get(name)
    if value is None or not str(value).strip():
        return None
    return str(value).strip()


def filename_field_for(params: Mapping[str, str], default_field: str) -> str:
    # a per-request override never touches the shared settings
    return _first(params, "filename-param") or default_field


def to_params_dto(params: Mapping[str, str], default_field: str) -> UploadParamsDTO:
    field = filename_field_for(params, default_field)
    return UploadParamsDTO(
        filename=_first(params, field),
        filename_param=field,
        workspace=_first(params, "workspace"),
        store=_first(params, "store"),
        srs=_first(params, "srs"),
        layer=_first(params, "layer"),
        response_encoding=params.get("response-encoding"),
        utilitywps=_first(params, "utilitywps"),
        wfs_url=_first(params, "wfs-url"),
    )


def check_filename(filename: Optional[str]) -> str:
    if not filename:
        raise RequestValidationError("Parameter \"filename\" is mandatory")
    if filename in (".", "..") or os.path.basename(filename) != filename or "\\" in filename:
        raise RequestValidationError(f"Invalid filename: {filename}")
    return filename


def _mandatory(name: str, value: Optional[str], default: Optional[str]) -> str:
    resolved = value or (default or "").strip()
    if not resolved:
        raise RequestValidationError(f"Parameter \"{name}\" is mandatory")
    logger.debug("%s set to %s", name, resolved)
    return resolved


def to_upload_request(dto: UploadParamsDTO, settings, content_length: int) -> UploadRequest:
    """Layer request values over the settings defaults and check what the mode needs."""
    filename = check_filename(dto.filename)
    mode = settings.PUBLISH_MODE
    layer = normalize_layer_name(dto.layer) if dto.layer else derive_layer_name(filename)
    logger.debug("Layer name set to %s", layer)

    common = dict(
        filename_field=dto.filename_param or settings.FILENAME_PARAM,
        filename=filename,
        response_format=ResponseFormat.from_param(dto.response_encoding),
        mode=mode,
        content_length=content_length,
        layer=layer,
    )

    if mode is PublishMode.WPS:
        return UploadRequest(
            wps_url=_mandatory("utilitywps", dto.utilitywps, settings.WPS_ENDPOINT),
            wfs_url=_mandatory("wfs-url", dto.wfs_url, settings.WFS_ENDPOINT),
            **common,
        )

    workspace = _mandatory("workspace", dto.workspace, settings.GEOSERVER_DEFAULT_WORKSPACE)
    store = _mandatory("store", dto.store, settings.GEOSERVER_DEFAULT_STORENAME)
    srs = _mandatory("srs", dto.srs, settings.GEOSERVER_DEFAULT_SRS)
    authority, _, code = srs.partition(":")
    if not authority or not code:
        raise RequestValidationError(f"Parameter \"srs\" must be an authority code such as EPSG:4326, got {srs}")

    return UploadRequest(
        workspace=workspace,
        store=store,
        srs=srs,
        **common,
    )

import logging
from typing import Optional

import requests

from Application.helpers.archive_helper import flatten_zip, validate_shapefile_zip
from Application.helpers.cancellation import CancelToken
from Application.interfaces.i_geoserver_service import IGeoServerService
from Application.interfaces.i_wps_service import IWpsService
from Application.services.geoserver_service import GeoServerService
from Application.services.wps_service import WpsService
from Entities.geoserver_helper import ProjectionPolicy, UploadMethod
from Entities.shapefile_entity import PublishResult, ShapefileBundle
from Entities.upload_entity import PublishMode, UploadRequest

logger = logging.getLogger(__name__)


class ShapefileService:
    def __init__(
        self,
        geoserver: Optional[IGeoServerService] = None,
        wps: Optional[IWpsService] = None,
        session: Optional[requests.Session] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        self._gs = geoserver
        self._wps = wps
        self._session = session
        self._cancel_token = cancel_token

    @classmethod
    def create_from_settings(cls, settings, cancel_token: Optional[CancelToken] = None) -> "ShapefileService":
        """
        Build the publisher for the configured mode only.

        Both backends share one ``requests.Session``; cancelling ``cancel_token``
        closes it so pooled connections to the backend are dropped.
        """
        session = requests.Session()
        if cancel_token is not None:
            cancel_token.add_callback(session.close)

        gs = wps = None
        if settings.PUBLISH_MODE is PublishMode.REST:
            gs = GeoServerService(
                base_url=settings.GEOSERVER_ENDPOINT,
                user=settings.GEOSERVER_USERNAME,
                password=settings.GEOSERVER_PASSWORD,
                timeout=settings.BACKEND_TIMEOUT,
                session=session,
                cancel_token=cancel_token,
            )
        elif settings.PUBLISH_MODE is PublishMode.WPS:
            wps = WpsService(
                timeout=settings.BACKEND_TIMEOUT,
                temp_dir=settings.UPLOAD_TEMP_PATH,
                session=session,
                cancel_token=cancel_token,
            )
        return cls(geoserver=gs, wps=wps, session=session, cancel_token=cancel_token)

    def close(self) -> None:
        if self._session is not None:
            self._session.close()

    def prepare_archive(self, path: str) -> ShapefileBundle:
        """Flatten the staged zip in place and confirm it holds one shapefile."""
        flatten_zip(path, cancel_token=self._cancel_token)
        logger.debug("Zip file directory structure flattened")
        base_name = validate_shapefile_zip(path)
        logger.debug("Zip file seems to be a valid shapefile (%s)", base_name)
        return ShapefileBundle(path=path, base_name=base_name)

    def publish(self, req: UploadRequest, bundle: ShapefileBundle) -> PublishResult:
        if req.mode is PublishMode.WPS:
            return self.publish_on_wps(req, bundle)
        return self.publish_on_geoserver(req, bundle)

    def publish_on_geoserver(self, req: UploadRequest, bundle: ShapefileBundle) -> PublishResult:
        if self._gs is None:
            raise RuntimeError("GeoServer REST publishing is not configured")
        # failures surface as GeoServerError or requests exceptions
        self._gs.publish_shapefile(
            workspace=req.workspace,
            store=req.store,
            layer=req.layer,
            srs=req.srs,
            archive_path=bundle.path,
            native_name=bundle.base_name,
            upload_method=UploadMethod.FILE,
            projection_policy=ProjectionPolicy.NONE,
        )
        logger.debug("Shapefile has been imported successfully")
        return PublishResult()

    def publish_on_wps(self, req: UploadRequest, bundle: ShapefileBundle) -> PublishResult:
        if self._wps is None:
            raise RuntimeError("WPS publishing is not configured")
        text = self._wps.publish_shapefile(
            wps_url=req.wps_url,
            wfs_url=req.wfs_url,
            filename=req.filename,
            archive_path=bundle.path,
        )
        logger.debug("WPS accepted %s", req.filename)
        return PublishResult(response_text=text)

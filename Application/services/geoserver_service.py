import logging
import os
from pathlib import Path
from typing import Optional

import requests

from Application.interfaces.i_geoserver_service import IGeoServerService
from Application.helpers.cancellation import CancellableReader, CancelToken
from Application.helpers.exceptions import GeoServerError
from Application.helpers.http_helper import decoded_text
from Entities.geoserver_helper import (
    NATIVE_SRS_PLACEHOLDER,
    ProjectionPolicy,
    UploadMethod,
    build_featuretype_xml,
)

logger = logging.getLogger(__name__)


class GeoServerService(IGeoServerService):
    def __init__(
        self,
        base_url: str,
        user: str,
        password: str,
        timeout: float = 30,
        session: Optional[requests.Session] = None,
        cancel_token: Optional[CancelToken] = None,
    ):
        # accepts either ".../geoserver" or ".../geoserver/rest"
        base = base_url.rstrip("/")
        self.base = base if base.endswith("/rest") else f"{base}/rest"
        self.auth = (user, password)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.cancel_token = cancel_token

    # --- helpers ---
    @staticmethod
    def _response_text(r, max_chars: int = 5000) -> Optional[str]:
        return decoded_text(r, max_chars) or None

    def _check_cancelled(self) -> None:
        if self.cancel_token is not None:
            self.cancel_token.raise_if_cancelled()

    # ::1
    def upload_datastore(
        self,
        workspace: str,
        store: str,
        archive_path: str,
        upload_method: UploadMethod = UploadMethod.FILE,
    ) -> None:
        url = f"{self.base}/workspaces/{workspace}/datastores/{store}/{upload_method.value}.shp"
        params = {"configure": "none"}

        self._check_cancelled()
        if upload_method is UploadMethod.FILE:
            with open(archive_path, "rb") as f:
                body = CancellableReader(f, self.cancel_token, os.path.getsize(archive_path))
                r = self.session.put(
                    url, data=body, params=params,
                    headers={"Content-type": "application/zip"},
                    auth=self.auth, timeout=self.timeout
                )
        else:
            r = self.session.put(
                url, data=Path(archive_path).absolute().as_uri(), params=params,
                headers={"Content-type": "text/plain"},
                auth=self.auth, timeout=self.timeout
            )

        if 200 <= r.status_code < 300:
            return
        raise GeoServerError(
            status_code=r.status_code, method="PUT", url=url,
            response_text=self._response_text(r),
            message="Failed to upload shapefile to GeoServer."
        )

    # ::2
    def create_featuretype(
        self,
        workspace: str,
        store: str,
        layer: str,
        native_name: str,
        srs: str,
        projection_policy: ProjectionPolicy = ProjectionPolicy.NONE,
        native_srs: str = NATIVE_SRS_PLACEHOLDER,
    ) -> None:
        url = f"{self.base}/workspaces/{workspace}/datastores/{store}/featuretypes"
        payload = build_featuretype_xml(
            layer=layer,
            native_name=native_name,
            srs=srs,
            projection_policy=projection_policy.value,
            native_srs=native_srs,
        )
        self._check_cancelled()
        r = self.session.post(
            url, data=payload.encode("utf-8"),
            headers={"Content-type": "text/xml", "Accept": "application/xml"},
            auth=self.auth, timeout=self.timeout
        )
        if 200 <= r.status_code < 300:
            return
        raise GeoServerError(
            status_code=r.status_code, method="POST", url=url,
            response_text=self._response_text(r),
            message="Failed to create featureType in GeoServer."
        )

    def publish_shapefile(
        self,
        workspace: str,
        store: str,
        layer: str,
        srs: str,
        archive_path: str,
        native_name: str,
        upload_method: UploadMethod = UploadMethod.FILE,
        projection_policy: ProjectionPolicy = ProjectionPolicy.NONE,
        native_srs: str = NATIVE_SRS_PLACEHOLDER,
    ) -> None:
        """
        Flow:
        ::1 upload the zip as a shapefile datastore (no feature types configured)
        ::2 publish the feature type under the requested layer name and SRS

        No pre-check for existing workspace/store/layer: the GeoServer response
        is authoritative. Any failure raises ``GeoServerError``.
        """
        logger.debug(
            "Publishing %s to %s as %s:%s/%s (%s)",
            archive_path, self.base, workspace, store, layer, srs,
        )
        self.upload_datastore(workspace, store, archive_path, upload_method=upload_method)
        self.create_featuretype(
            workspace=workspace,
            store=store,
            layer=layer,
            native_name=native_name,
            srs=srs,
            projection_policy=projection_policy,
            native_srs=native_srs,
        )

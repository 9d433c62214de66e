from abc import ABC, abstractmethod

from Entities.geoserver_helper import NATIVE_SRS_PLACEHOLDER, ProjectionPolicy, UploadMethod


class IGeoServerService(ABC):
    @abstractmethod
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
    ) -> None: ...

from abc import ABC, abstractmethod


class IWpsService(ABC):
    @abstractmethod
    def publish_shapefile(self, wps_url: str, wfs_url: str, filename: str, archive_path: str) -> str: ...

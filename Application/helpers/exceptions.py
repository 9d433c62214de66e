from typing import Optional


class ShapefileUploadError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(ShapefileUploadError):
    """Startup configuration is missing or malformed; the service cannot run."""


class RequestValidationError(ShapefileUploadError):
    """The request is rejected before any backend call is made."""


class ArchiveError(ShapefileUploadError):
    """Staging, flattening or verifying the uploaded archive failed."""


class BackendError(ShapefileUploadError):
    pass


class GeoServerError(BackendError):
    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        method: Optional[str] = None,
        url: Optional[str] = None,
        response_text: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.method = method
        self.url = url
        self.response_text = response_text

    @property
    def detail(self) -> str:
        # backend text is the most useful thing to hand back to the caller
        return self.response_text or self.message


class WpsError(BackendError):
    def __init__(self, message: str, status_code: Optional[int] = None, response_text: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_text = response_text

    @property
    def detail(self) -> str:
        return self.response_text or self.message


class UploadCancelled(ShapefileUploadError):
    """The client disconnected; work on its upload was abandoned."""

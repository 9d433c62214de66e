import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from Application.helpers.exceptions import ConfigurationError
from Entities.upload_entity import PublishMode

logger = logging.getLogger(__name__)

PROPERTY_PREFIX = "SHAPEUPLOAD_"
DEFAULT_MAX_FILE_SIZE = 2**31 - 1
DEFAULT_FILENAME_PARAM = "qqfile"  # legacy name used by jquery fineuploader


class Settings(BaseSettings):
    """
    Process-wide configuration.

    Values passed to the constructor (the deployment's ``InitParameters``)
    win over ``SHAPEUPLOAD_*`` environment variables, which win over the
    field defaults. Empty environment variables count as unset.
    """

    model_config = SettingsConfigDict(
        env_prefix=PROPERTY_PREFIX,
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Upload
    MAX_FILE_SIZE: int = DEFAULT_MAX_FILE_SIZE
    FILENAME_PARAM: str = DEFAULT_FILENAME_PARAM
    UPLOAD_TEMP_PATH: Optional[str] = None
    PUBLISH_MODE: PublishMode = PublishMode.REST
    BACKEND_TIMEOUT: float = 30

    # GeoServer
    GEOSERVER_ENDPOINT: Optional[str] = None
    GEOSERVER_USERNAME: Optional[str] = None
    GEOSERVER_PASSWORD: Optional[str] = None
    GEOSERVER_DEFAULT_WORKSPACE: str = ""
    GEOSERVER_DEFAULT_STORENAME: str = ""
    GEOSERVER_DEFAULT_SRS: str = ""

    # WPS
    WPS_ENDPOINT: str = ""
    WFS_ENDPOINT: str = ""

    # API
    API_TITLE: str = Field(default="Shapefile Upload API")
    API_VERSION: str = Field(default="1.0.0")
    API_HOST: str = Field(default="0.0.0.0")
    API_PORT: int = Field(default=9090)
    API_PREFIX: str = Field(default="/shapeupload-api/v1")
    API_RELOAD_ON_DEV: bool = Field(default=True)
    LOG_LEVEL: str = Field(default="INFO")

    # CORS
    CORS_ALLOW_ORIGINS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: List[str] = Field(default_factory=lambda: ["*"])
    CORS_ALLOW_HEADERS: List[str] = Field(default_factory=lambda: ["*"])

    @field_validator("PUBLISH_MODE", mode="before")
    @classmethod
    def _lower_mode(cls, value):
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator(
        "UPLOAD_TEMP_PATH", "GEOSERVER_ENDPOINT", "GEOSERVER_USERNAME", "GEOSERVER_PASSWORD",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator(
        "FILENAME_PARAM", "GEOSERVER_DEFAULT_WORKSPACE", "GEOSERVER_DEFAULT_STORENAME",
        "GEOSERVER_DEFAULT_SRS", "WPS_ENDPOINT", "WFS_ENDPOINT",
        mode="before",
    )
    @classmethod
    def _strip(cls, value):
        return value.strip() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _check_rest_backend(self) -> "Settings":
        if self.PUBLISH_MODE is not PublishMode.REST:
            return self
        if not self.GEOSERVER_ENDPOINT:
            raise ValueError("Geoserver endpoint is not defined.")
        parsed = urlparse(self.GEOSERVER_ENDPOINT)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            raise ValueError(
                f"Geoserver endpoint ({self.GEOSERVER_ENDPOINT}) could not be parsed into a valid URL."
            )
        if not self.GEOSERVER_USERNAME:
            raise ValueError("Geoserver username is not defined.")
        if not self.GEOSERVER_PASSWORD:
            raise ValueError("Geoserver password is not defined.")
        return self


def _load_json(path: Path) -> dict:
    with path.open("r", encoding="utf-8") as f:
        return json.load(f)


def _resolve_config_file() -> Path:
    env = os.getenv("ENVIRONMENT", "dev").lower()
    base = Path(__file__).parent
    return base / ("appsettings.docker.json" if env == "docker" else "appsettings.dev.json")


def _get(cfg: dict, path: str, default=None):
    cur: Any = cfg
    for key in path.split("."):
        cur = cur.get(key, {}) if isinstance(cur, dict) else {}
    return cur if cur not in ({}, None, "") else default


def _blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _init_kwargs(cfg: dict) -> Dict[str, Any]:
    # "geoserver-endpoint" -> GEOSERVER_ENDPOINT; blanks stay unset so env and defaults apply
    kwargs = {}
    for key, value in (cfg.get("InitParameters") or {}).items():
        if not _blank(value):
            kwargs[key.strip().upper().replace("-", "_")] = value

    sections = {
        "API_TITLE": "Api.Title",
        "API_VERSION": "Api.Version",
        "API_HOST": "Api.Host",
        "API_PORT": "Api.Port",
        "API_PREFIX": "Api.Prefix",
        "API_RELOAD_ON_DEV": "Api.ReloadOnDev",
        "LOG_LEVEL": "Logging.Level",
        "CORS_ALLOW_ORIGINS": "Cors.AllowOrigins",
        "CORS_ALLOW_CREDENTIALS": "Cors.AllowCredentials",
        "CORS_ALLOW_METHODS": "Cors.AllowMethods",
        "CORS_ALLOW_HEADERS": "Cors.AllowHeaders",
    }
    for field, path in sections.items():
        value = _get(cfg, path)
        if value is not None:
            kwargs[field] = value
    return kwargs


def load_settings(config: Optional[dict] = None) -> Settings:
    """
    Build the immutable settings for one process.

    ``config`` is the parsed appsettings document (read from disk when omitted);
    its ``InitParameters`` object carries per-deployment values. Anything it
    leaves blank comes from ``SHAPEUPLOAD_*`` environment variables, then the
    built-in defaults. Any problem raises ``ConfigurationError``.
    """
    cfg = config if config is not None else _load_json(_resolve_config_file())

    try:
        settings = Settings(**_init_kwargs(cfg))
    except ValidationError as ex:
        messages = "; ".join(
            err["msg"].removeprefix("Value error, ") if not err["loc"]
            else f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
            for err in ex.errors()
        )
        raise ConfigurationError(messages) from ex

    logger.debug("Maximum allowable file size set to: %s bytes", settings.MAX_FILE_SIZE)
    logger.debug("Filename parameter set to: %s", settings.FILENAME_PARAM)
    logger.debug("Publish mode set to: %s", settings.PUBLISH_MODE.value)
    if settings.PUBLISH_MODE is PublishMode.REST:
        if not settings.GEOSERVER_DEFAULT_WORKSPACE:
            logger.warning("Default workspace is not defined. If a workspace is not passed during the request, the request will fail")
        if not settings.GEOSERVER_DEFAULT_STORENAME:
            logger.warning("Default store name is not defined. If a store name is not passed during the request, the request will fail")
        if not settings.GEOSERVER_DEFAULT_SRS:
            logger.warning("Default SRS is not defined. If a SRS is not passed during the request, the request will fail")
    return settings

#Inicializar
#python3 -m venv .venv && source .venv/bin/activate
#pip install -e .
#export ENVIRONMENT=dev
#uvicorn Presentation.API.main:create_app --factory --host 0.0.0.0 --port 9090 --reload

import logging
import os
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from Presentation.API.settings import Settings, load_settings
from Presentation.API.controllers.shapefile_controller import router as shapefile_router


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    # configuration errors surface here, before anything is served
    settings = settings or load_settings()

    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(title=settings.API_TITLE, version=settings.API_VERSION)
    app.state.settings = settings

    # CORS a partir do settings
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
    )

    # Rotas com prefixo do settings
    app.include_router(
        shapefile_router,
        prefix=f"{settings.API_PREFIX}/shapefiles",
        tags=["Shapefiles"],
    )
    return app


if __name__ == "__main__":
    settings = load_settings()
    env = os.getenv("ENVIRONMENT", "dev").lower()
    reload_flag = settings.API_RELOAD_ON_DEV and env != "docker"
    uvicorn.run(
        "Presentation.API.main:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=reload_flag,
    )

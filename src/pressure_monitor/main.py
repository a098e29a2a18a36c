from fastapi import FastAPI
from pydantic import Field
from pydantic_settings import BaseSettings
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional
import os
import logging

from pressure_monitor.routers.api import router as api_router
from pressure_monitor.schemas import AppHealthOK
from pressure_monitor.core.service_manager import service_manager
from pressure_monitor.core.config_loader import config_loader

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "Pressure Monitor API"
    debug: bool = False
    # Serve a local device emulator so the API can be used without hardware
    # Can be overridden by environment variable or config file
    emulation_mode: bool = os.getenv("EMULATION_MODE", "").lower() == "true" \
        if os.getenv("EMULATION_MODE") else config_loader.get_emulation_mode()
    # Directory receiving one CSV log per session
    # Only PRESSURE_LOG_DIR is read from the environment, not LOG_DIR
    log_dir: Optional[Path] = Field(default=None, validation_alias="PRESSURE_LOG_DIR")


settings = Settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start background services on startup, release the device on shutdown."""
    logger.info(
        "Starting background services in %s mode", "emulation" if settings.emulation_mode else "hardware"
    )
    await service_manager.start_services(emulation=settings.emulation_mode, log_dir=settings.log_dir)
    try:
        yield
    finally:
        logger.info("Stopping background services")
        service_manager.stop_services()


app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)


@app.get("/", tags=["meta"])
async def read_root() -> dict[str, str]:
    return {"message": settings.app_name}


@app.get("/health", tags=["meta"], response_model=AppHealthOK)
async def healthcheck() -> AppHealthOK:
    return AppHealthOK(status="ok", app=settings.app_name)


# mount API router under /api
app.include_router(api_router, prefix="/api")
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

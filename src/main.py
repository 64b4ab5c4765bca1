from fastapi import FastAPI
from pydantic_settings import BaseSettings
from contextlib import asynccontextmanager
import logging

from routers.api import router as api_router
from schemas import AppHealthOK
from core.service_manager import service_manager
from core.config_loader import config_loader
from core.services.sinks import EventHubSink, FanoutSink, LoggingSink

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    app_name: str = "Vehicle Telemetry Ingest"
    debug: bool = False
    # Endpoint the simulation connects to; env TELEMETRY_HOST / TELEMETRY_PORT override the config file
    telemetry_host: str = config_loader.get_host()
    telemetry_port: int = config_loader.get_port()
    # Write every decoded sample to the telemetry.samples logger
    log_samples: bool = config_loader.get_log_samples()


settings = Settings()


def build_sink():
    """Samples always reach the event hub (monitoring API); logging is optional."""
    if settings.log_samples:
        return FanoutSink(LoggingSink(), EventHubSink())
    return EventHubSink()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the telemetry listener for the lifetime of the application."""
    logger.info(
        "Starting telemetry listener on %s:%s", settings.telemetry_host, settings.telemetry_port
    )
    # A BindError here aborts startup
    await service_manager.start_services(
        build_sink(), host=settings.telemetry_host, port=settings.telemetry_port
    )

    try:
        yield
    finally:
        logger.info("Stopping background services")
        await service_manager.stop_services()


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

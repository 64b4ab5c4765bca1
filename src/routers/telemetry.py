from fastapi import APIRouter, HTTPException

from core.config_loader import config_loader
from core.service_manager import service_manager
from core.telemetry_monitor import telemetry_monitor
from schemas import (
    ConnectionsList,
    ConnectionStatus,
    LatestSampleResponse,
    ServerStatusResponse,
    TelemetrySampleOut,
)

router = APIRouter(prefix="/telemetry", tags=["telemetry"])


@router.get("/latest", response_model=LatestSampleResponse, responses={
    404: {
        "description": "No telemetry sample has been received yet.",
        "content": {
            "application/json": {
                "example": {"detail": "No telemetry received yet"}
            }
        }
    }
})
async def get_latest_sample() -> LatestSampleResponse:
    """
    Get the most recent decoded sample across all connections.
    Fields the simulation did not report (or sent garbled) are null.
    """
    sample = telemetry_monitor.latest_sample
    if sample is None or telemetry_monitor.latest_received_at is None:
        raise HTTPException(status_code=404, detail="No telemetry received yet")
    return LatestSampleResponse(
        received_at=telemetry_monitor.latest_received_at,
        sample=TelemetrySampleOut.from_sample(sample),
    )


@router.get("/connections", response_model=ConnectionsList)
async def get_connections() -> ConnectionsList:
    """Open connections followed by the most recently closed ones."""
    return ConnectionsList(list=[
        ConnectionStatus.from_info(info) for info in telemetry_monitor.get_connections()
    ])


@router.get("/status", response_model=ServerStatusResponse)
async def get_status() -> ServerStatusResponse:
    listener = service_manager.listener
    if listener is None:
        return ServerStatusResponse(
            listening=False,
            host=config_loader.get_host(),
            port=config_loader.get_port(),
            active_connections=0,
            total_samples=telemetry_monitor.total_samples,
        )
    return ServerStatusResponse(
        listening=listener.is_listening,
        host=listener.host,
        port=listener.bound_port or listener.port,
        active_connections=listener.active_connections,
        total_samples=telemetry_monitor.total_samples,
    )

from fastapi import APIRouter

from routers import telemetry

router = APIRouter()

# include sub-routers
router.include_router(telemetry.router)

from fastapi import APIRouter

from mailotp.presentation.routers.v1.otp import router as otp_router
from mailotp.presentation.routes.health import router as health_router

api = APIRouter()

# unversioned probes for the orchestrator
api.include_router(health_router)

v1 = APIRouter(prefix="/v1")
v1.include_router(otp_router)
api.include_router(v1)

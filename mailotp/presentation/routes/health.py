import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from mailotp.domain.errors import StoreUnavailable

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
async def healthz() -> dict:
    """Liveness: the process is serving requests."""
    return {"status": "ok"}


@router.get("/readyz")
async def readyz(request: Request) -> JSONResponse:
    """Readiness: codes can be issued and checked, i.e. the challenge store answers."""
    otp_service = getattr(request.app.state, "otp_service", None)
    if otp_service is None:
        return JSONResponse({"status": "starting"}, status_code=503)
    try:
        await otp_service.store.ping()
    except StoreUnavailable as e:
        logger.warning("readiness probe failed", extra={"error": e.detail})
        return JSONResponse({"status": "unavailable"}, status_code=503)
    return JSONResponse({"status": "ok"})

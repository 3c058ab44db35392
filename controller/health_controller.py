# controller/health_controller.py
from fastapi import APIRouter, Depends, Response, status
from controller.controller_dependencies import get_runtime
from model.api import HealthResponse, ReadyResponse
from service.runtime import ArchiverRuntime
from util.constants import InternalURIs

health_router = APIRouter()


@health_router.get(InternalURIs.HEALTHZ, response_model=HealthResponse)
async def healthz(
    response: Response, runtime: ArchiverRuntime = Depends(get_runtime)
) -> HealthResponse:
    # Liveness: a failed watch turns this into 503 so the kubelet restarts us.
    health = runtime.health()
    if not health.ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return health


@health_router.get(InternalURIs.READYZ, response_model=ReadyResponse)
async def readyz(
    response: Response, runtime: ArchiverRuntime = Depends(get_runtime)
) -> ReadyResponse:
    ready = runtime.ready
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ReadyResponse(ready=ready)

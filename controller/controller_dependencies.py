# controller/controller_dependencies.py
from fastapi import HTTPException, Request, status
from service.runtime import ArchiverRuntime


def get_runtime(request: Request) -> ArchiverRuntime:
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        # Lifespan has not finished starting (or already tore down)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"ok": False, "error": "not_started"},
        )
    return runtime

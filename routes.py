# routes.py
from fastapi import FastAPI
from controller.health_controller import health_router


def register_routes(app: FastAPI) -> None:
    """Register probe controllers here."""
    app.include_router(health_router)

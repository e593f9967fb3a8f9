# routes.py
from fastapi import FastAPI
from controller.info_controller import info_router
from controller.status_controller import status_router
from controller.summary_controller import summary_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(info_router)
    app.include_router(summary_router)
    app.include_router(status_router)

# routes.py
from fastapi import FastAPI
from controller.audit_controller import audit_router
from controller.correction_controller import correction_router
from controller.extraction_controller import extraction_router


def register_routes(app: FastAPI) -> None:
    """Register & Access control controllers here."""
    app.include_router(audit_router)
    app.include_router(correction_router)
    app.include_router(extraction_router)

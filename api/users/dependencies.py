"""
FastAPI dependencies for the users routes.
"""

from __future__ import annotations

from fastapi import HTTPException, Request, status

from core.config import Settings

from .service import UserUseCase


def get_user_service(request: Request) -> UserUseCase:
    service = getattr(request.app.state, "user_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="User service is not initialized.",
        )
    return service


def get_request_timeout(request: Request) -> float:
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        return 10.0
    return settings.request_timeout_s

"""
FastAPI router for user/family endpoints.

Every call runs under the request deadline; when it fires the underlying task
is cancelled, which rolls back any open transaction.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from fastapi import APIRouter, Depends, HTTPException, status

from . import dependencies, schemas
from .errors import NotFoundError, SerializationError, UserFamilyError
from .service import UserUseCase

router = APIRouter(prefix="/api/v1")

T = TypeVar("T")


def _http_status(exc: UserFamilyError) -> int:
    if isinstance(exc, NotFoundError):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, SerializationError):
        return status.HTTP_500_INTERNAL_SERVER_ERROR
    # ValidationError, StorageError
    return status.HTTP_400_BAD_REQUEST


async def _within_deadline(call: Awaitable[T], timeout_s: float) -> T:
    try:
        return await asyncio.wait_for(call, timeout=timeout_s)
    except asyncio.TimeoutError as exc:
        raise HTTPException(
            status_code=status.HTTP_504_GATEWAY_TIMEOUT,
            detail="Request deadline exceeded.",
        ) from exc
    except UserFamilyError as exc:
        raise HTTPException(status_code=_http_status(exc), detail=str(exc)) from exc


@router.get("/user", response_model=list[schemas.UserDetailResponse])
async def list_users(
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> list[schemas.UserDetailResponse]:
    return await _within_deadline(service.list_users(), timeout_s)


@router.post("/user", status_code=status.HTTP_201_CREATED, response_model=schemas.CreatedResponse)
async def create_user(
    payload: schemas.User,
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> schemas.CreatedResponse:
    user_id = await _within_deadline(service.create(payload), timeout_s)
    return schemas.CreatedResponse(message="User created successfully", user_id=user_id)


@router.get("/user/{user_id}", response_model=schemas.UserDetailResponse)
async def user_detail(
    user_id: int,
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> schemas.UserDetailResponse:
    return await _within_deadline(service.get_detail(user_id), timeout_s)


@router.put("/user/{user_id}", response_model=schemas.MessageResponse)
async def update_user(
    user_id: int,
    payload: schemas.User,
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> schemas.MessageResponse:
    # The path id is authoritative.
    payload.user_id = user_id
    await _within_deadline(service.update(payload), timeout_s)
    return schemas.MessageResponse(message="User updated successfully")


@router.delete("/user/{user_id}", response_model=schemas.MessageResponse)
async def delete_user(
    user_id: int,
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> schemas.MessageResponse:
    await _within_deadline(service.delete(user_id), timeout_s)
    return schemas.MessageResponse(message="User deleted successfully")


@router.delete("/user/{user_id}/family/{family_id}", response_model=schemas.MessageResponse)
async def delete_family(
    user_id: int,
    family_id: int,
    service: UserUseCase = Depends(dependencies.get_user_service),
    timeout_s: float = Depends(dependencies.get_request_timeout),
) -> schemas.MessageResponse:
    await _within_deadline(service.delete_family(user_id, family_id), timeout_s)
    return schemas.MessageResponse(message="family deleted successfully")

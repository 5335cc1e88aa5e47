"""
User/family use cases.

Create and update run every validation rule before the repository is called;
reads and deletes go straight through. Failures are logged once here and
re-raised unchanged.
"""

from __future__ import annotations

import logging
from typing import Protocol

from . import schemas, validation
from .errors import UserFamilyError
from .repository import UserStore


class UserUseCase(Protocol):
    async def list_users(self) -> list[schemas.UserDetailResponse]: ...

    async def create(self, user: schemas.User) -> int: ...

    async def get_detail(self, user_id: int) -> schemas.UserDetailResponse: ...

    async def update(self, user: schemas.User) -> None: ...

    async def delete(self, user_id: int) -> None: ...

    async def delete_family(self, user_id: int, family_id: int) -> None: ...


class UserService:
    def __init__(self, repository: UserStore, logger: logging.Logger) -> None:
        self._repository = repository
        self._logger = logger

    async def list_users(self) -> list[schemas.UserDetailResponse]:
        try:
            return await self._repository.list_users()
        except UserFamilyError as exc:
            self._logger.error("user get all failed: %s", exc)
            raise

    async def create(self, user: schemas.User) -> int:
        try:
            validation.validate_for_create(user)
        except UserFamilyError as exc:
            self._logger.error("user validation failed: %s", exc)
            raise

        try:
            return await self._repository.create_user(user)
        except UserFamilyError as exc:
            self._logger.error("user create failed: %s", exc)
            raise

    async def get_detail(self, user_id: int) -> schemas.UserDetailResponse:
        return await self._repository.get_user(user_id)

    async def update(self, user: schemas.User) -> None:
        try:
            validation.validate_for_update(user)
        except UserFamilyError as exc:
            self._logger.error("user validation failed: %s", exc)
            raise

        try:
            await self._repository.update_user(user)
        except UserFamilyError as exc:
            self._logger.error("user family update failed: %s", exc)
            raise

    async def delete(self, user_id: int) -> None:
        try:
            await self._repository.delete_user(user_id)
        except UserFamilyError as exc:
            self._logger.error("user family delete failed: %s", exc)
            raise

    async def delete_family(self, user_id: int, family_id: int) -> None:
        try:
            await self._repository.delete_family(user_id, family_id)
        except UserFamilyError as exc:
            self._logger.error("family delete failed: %s", exc)
            raise

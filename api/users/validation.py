"""
Field rules applied before any user/family write.

Each rule set is a pydantic model whose validators raise `PydanticCustomError`
with the final, human-readable message. Only the first failing field is
surfaced, and families are checked in order so that the first invalid one
wins.
"""

from __future__ import annotations

import re
from datetime import datetime

import pydantic
from pydantic import BaseModel, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from . import schemas
from .errors import ValidationError

DOB_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
DOB_FORMAT = "%Y-%m-%d"

NAME_MIN_LENGTH = 5
NAME_MAX_LENGTH = 50


def _check_dob(
    value: str,
    *,
    required_message: str,
    prefix: str = "",
    context: dict | None = None,
) -> str:
    """
    Two independent checks: the literal shape, then a real calendar date.

    `prefix` is a message template prepended to the format and calendar errors.
    """
    if not value:
        raise PydanticCustomError("required", required_message, context)
    if not DOB_PATTERN.match(value):
        raise PydanticCustomError("dob_format", prefix + "Date must be in YYYY-MM-DD format", context)
    try:
        datetime.strptime(value, DOB_FORMAT)
    except ValueError:
        raise PydanticCustomError("dob_invalid", prefix + "Invalid date format. Use YYYY-MM-DD", context) from None
    return value


def _name_fits(value: str) -> bool:
    return NAME_MIN_LENGTH <= len(value) <= NAME_MAX_LENGTH


class UserRules(BaseModel):
    name: str
    dob: str
    nationality_id: int

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value:
            raise PydanticCustomError("required", "name: cannot be blank")
        if not _name_fits(value):
            raise PydanticCustomError(
                "length",
                "name: the length must be between {min} and {max}",
                {"min": NAME_MIN_LENGTH, "max": NAME_MAX_LENGTH},
            )
        return value

    @field_validator("dob")
    @classmethod
    def check_dob(cls, value: str) -> str:
        return _check_dob(value, required_message="dob: cannot be blank")

    @field_validator("nationality_id")
    @classmethod
    def check_nationality(cls, value: int) -> int:
        if value == 0:
            raise PydanticCustomError("required", "national_id: cannot be blank")
        return value


class FamilyRules(BaseModel):
    name: str
    dob: str

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        if not value or not _name_fits(value):
            raise PydanticCustomError(
                "family_name",
                "Family validation failed for {name}: is required and must be between 5 to 50 characters",
                {"name": value},
            )
        return value

    @field_validator("dob")
    @classmethod
    def check_dob(cls, value: str, info: ValidationInfo) -> str:
        owner = info.data.get("name", "")
        return _check_dob(
            value,
            required_message="Family validation failed for {name}: dob is required",
            prefix="Family validation failed for {name}: ",
            context={"name": owner},
        )


class FamilyUpdateRules(FamilyRules):
    family_id: int
    user_id: int

    @field_validator("family_id")
    @classmethod
    def check_family_id(cls, value: int) -> int:
        if value < 0:
            raise PydanticCustomError(
                "family_id",
                "Family ID must be a positive integer or zero for new family record",
            )
        return value

    @field_validator("user_id")
    @classmethod
    def check_user_id(cls, value: int) -> int:
        if value == 0:
            raise PydanticCustomError("required", "User ID is required")
        if value < 1:
            raise PydanticCustomError("user_id", "User ID must be a positive integer")
        return value


# Inherited fields are declared first, but the id checks are reported first.
_UPDATE_FIELD_ORDER = ("family_id", "user_id", "name", "dob")
_RULE_ERROR_TYPES = {"required", "length", "dob_format", "dob_invalid", "family_name", "family_id", "user_id"}


def _first_error(exc: pydantic.ValidationError, order: tuple[str, ...] | None = None) -> ValidationError:
    errors = exc.errors()
    if order:
        rank = {field: i for i, field in enumerate(order)}
        errors = sorted(errors, key=lambda e: rank.get(str(e["loc"][0]) if e["loc"] else "", len(rank)))
    first = errors[0]
    if first["type"] in _RULE_ERROR_TYPES:
        return ValidationError(first["msg"])
    field = ".".join(str(part) for part in first["loc"])
    return ValidationError(f"{field}: {first['msg']}")


def validate_user(user: schemas.User) -> None:
    try:
        UserRules(name=user.name, dob=user.dob, nationality_id=user.nationality_id)
    except pydantic.ValidationError as exc:
        raise _first_error(exc) from None


def validate_new_family(family: schemas.Family) -> None:
    try:
        FamilyRules(name=family.name, dob=family.dob)
    except pydantic.ValidationError as exc:
        raise _first_error(exc) from None


def validate_updated_family(family: schemas.Family) -> None:
    try:
        FamilyUpdateRules(
            family_id=family.family_id,
            user_id=family.user_id,
            name=family.name,
            dob=family.dob,
        )
    except pydantic.ValidationError as exc:
        raise _first_error(exc, _UPDATE_FIELD_ORDER) from None


def validate_for_create(user: schemas.User) -> None:
    validate_user(user)
    for family in user.families:
        validate_new_family(family)


def validate_for_update(user: schemas.User) -> None:
    validate_user(user)
    for family in user.families:
        validate_updated_family(family)

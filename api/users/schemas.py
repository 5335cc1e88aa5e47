"""
User/family API schemas (request/response models).

Dates travel as `YYYY-MM-DD` strings. Missing or null fields become empty
values so that the input reaches the validation rules and gets a readable message.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Family(BaseModel):
    # 0 means "new row, allocate an id on write".
    family_id: int = 0
    user_id: int = 0
    name: str = ""
    dob: str = ""

    @field_validator("family_id", "user_id", mode="before")
    @classmethod
    def null_id_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("name", "dob", mode="before")
    @classmethod
    def null_text_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int = 0
    name: str = ""
    dob: str = ""
    nationality_id: int = Field(default=0, alias="national_id")
    families: list[Family] = Field(default_factory=list)

    @field_validator("user_id", "nationality_id", mode="before")
    @classmethod
    def null_id_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("name", "dob", mode="before")
    @classmethod
    def null_text_as_blank(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("families", mode="before")
    @classmethod
    def null_families_as_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class Nationality(BaseModel):
    nationality_id: int = 0
    nationality_name: str = ""
    nationality_code: str = ""


class UserDetailResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: int
    name: str
    dob: str
    nationality_id: int = Field(alias="national_id")
    nationality: Nationality
    families: list[Family] = Field(default_factory=list)


class MessageResponse(BaseModel):
    message: str


class CreatedResponse(MessageResponse):
    user_id: int

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, field_validator


Role = Literal["student", "teacher"]
Period = Literal["Manhã", "Tarde", "Noite"]


class DocumentResponse(BaseModel):
    id: str
    user_id: str
    file_name: str
    file_path: str
    file_url: str
    content_type: str | None = None
    size_bytes: int | None = None
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class DocumentChip(BaseModel):
    id: str
    file_name: str
    file_url: str

    class Config:
        from_attributes = True


class ProfileResponse(BaseModel):
    id: str
    full_name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    school: str | None = None
    class_name: str | None = None
    period: str | None = None
    birth_date: date | None = None
    about_me: str | None = None
    dreams: str | None = None
    skills: str | None = None
    role: Role
    last_updated_at: datetime | None = None

    class Config:
        from_attributes = True


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own profile. Role is not one of them."""

    full_name: str
    birth_date: date | None = None
    school: str
    class_name: str
    period: Period
    about_me: str | None = None
    dreams: str | None = None
    skills: str | None = None

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 3:
            raise ValueError("Nome muito curto")
        return normalized

    @field_validator("school")
    @classmethod
    def validate_school(cls, value: str) -> str:
        normalized = value.strip()
        if len(normalized) < 3:
            raise ValueError("Informe a escola")
        return normalized

    @field_validator("class_name")
    @classmethod
    def validate_class_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("Informe a turma")
        return normalized

    @field_validator("birth_date", mode="before")
    @classmethod
    def blank_birth_date_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("about_me", "dreams", "skills")
    @classmethod
    def strip_free_text(cls, value: str | None) -> str | None:
        if value is None:
            return None
        return value.strip() or None

    class Config:
        extra = "forbid"


class RosterEntry(BaseModel):
    id: str
    full_name: str | None = None
    email: str | None = None
    avatar_url: str | None = None
    school: str | None = None
    class_name: str | None = None
    period: str | None = None
    documents: list[DocumentChip] = []
    status: Literal["pending", "submitted"] = "pending"

    class Config:
        from_attributes = True


class RosterResponse(BaseModel):
    total: int
    students: list[RosterEntry]

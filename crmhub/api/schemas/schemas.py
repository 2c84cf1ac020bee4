"""Pydantic schemas for API."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from crmhub.storage.database.models import ContactStatus


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


# Contact schemas
class ContactBase(BaseModel):
    """Base contact schema."""

    model_config = ConfigDict(str_strip_whitespace=True)

    company: Optional[str] = Field(None, description="Company name")
    status: Optional[ContactStatus] = Field(default=ContactStatus.LEAD, description="Pipeline stage")
    source: Optional[str] = Field(None, description="Where the contact came from")
    tags: Optional[list[str]] = Field(None, description="Free-form tags")
    notes: Optional[str] = Field(None, description="Notes")

    @field_validator("company", "status", "source", "notes", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ContactCreate(ContactBase):
    """Schema for creating a contact."""

    name: str = Field(..., min_length=1, description="Contact name")
    email: EmailStr = Field(..., description="Contact email")


class ContactUpdate(BaseModel):
    """Schema for editing a contact. Only provided fields change."""

    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    company: Optional[str] = None
    status: Optional[ContactStatus] = None
    source: Optional[str] = None
    tags: Optional[list[str]] = None
    notes: Optional[str] = None

    @field_validator("company", "status", "source", "notes", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("name", "email")
    @classmethod
    def required_not_null(cls, value: Any) -> Any:
        if value is None:
            raise ValueError("Field cannot be empty")
        return value


class ContactStatusUpdate(BaseModel):
    """Inline status change."""

    status: Optional[ContactStatus]

    @field_validator("status", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ContactResponse(BaseModel):
    """Contact response."""

    id: uuid.UUID
    user_id: uuid.UUID
    name: str
    email: str
    company: Optional[str]
    status: Optional[ContactStatus]
    source: Optional[str]
    tags: Optional[list[str]]
    notes: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


# Activity schemas
class ActivityLogCreate(BaseModel):
    """Schema for logging an activity."""

    model_config = ConfigDict(str_strip_whitespace=True)

    action: str = Field(..., min_length=1, description="Action type, e.g. Called")
    description: Optional[str] = None
    reminder_at: Optional[datetime] = None

    @field_validator("description", mode="before")
    @classmethod
    def blank_is_unset(cls, value: Any) -> Any:
        return _blank_to_none(value)


class ActivityLogResponse(BaseModel):
    """Activity log response."""

    id: uuid.UUID
    user_id: uuid.UUID
    contact_id: uuid.UUID
    action: str
    description: Optional[str]
    reminder_at: Optional[datetime]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ErrorResponse(BaseModel):
    """Error body returned for application exceptions."""

    detail: str
    details: dict[str, Any] = Field(default_factory=dict)

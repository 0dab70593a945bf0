"""
Pydantic schemas for patron-related request/response validation.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from tourbook.models.patron import normalize_phone

# Optional "+", first digit 1-9, up to 16 digits; common separators are ignored
PHONE_PATTERN = re.compile(r"^\+?[1-9]\d{0,15}$")


def validate_phone(value: str) -> str:
    value = value.strip()
    if not PHONE_PATTERN.match(normalize_phone(value)):
        raise ValueError("Please enter a valid phone number")
    return value


class EmergencyContact(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    relationship: Optional[str] = Field(None, max_length=50)


class PatronBase(BaseModel):
    model_config = {"str_strip_whitespace": True}

    @field_validator("phone", check_fields=False)
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else validate_phone(v)

    @field_validator("email", check_fields=False)
    @classmethod
    def lowercase_email(cls, v: Optional[str]) -> Optional[str]:
        return v if v is None else v.lower()


class PatronCreate(PatronBase):
    name: str = Field(..., min_length=1, max_length=100)
    phone: str = Field(..., max_length=32)
    address: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    emergency_contact: Optional[EmergencyContact] = None
    notes: Optional[str] = Field(None, max_length=500)


class PatronUpdate(PatronBase):
    """Partial update; only fields present in the request are applied."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=32)
    address: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    emergency_contact: Optional[EmergencyContact] = None
    notes: Optional[str] = Field(None, max_length=500)

    @model_validator(mode="after")
    def required_fields_not_null(self) -> "PatronUpdate":
        for name in ("name", "phone"):
            if name in self.model_fields_set and getattr(self, name) is None:
                raise ValueError(f"{name} cannot be null")
        return self


class PatronSummary(BaseModel):
    id: int
    name: str
    phone: str

    model_config = {"from_attributes": True}


class PatronResponse(BaseModel):
    id: int
    name: str
    phone: str
    address: Optional[str]
    email: Optional[str]
    emergency_contact: Optional[EmergencyContact]
    notes: Optional[str]
    is_active: bool
    full_info: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PatronListResponse(BaseModel):
    patrons: list[PatronResponse]
    total_pages: int
    current_page: int
    total_patrons: int


class PatronSearchResponse(BaseModel):
    patrons: list[PatronSummary]

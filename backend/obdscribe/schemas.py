"""Pydantic schemas for input and output validation.

Request and response bodies use camelCase keys on the wire through an
alias generator; snake_case names are accepted on input as well so the
schemas can be built directly from Python code and ORM rows.
"""

import json
import uuid
from datetime import datetime
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel


ReportMode = Literal["standard", "premium"]
ReportTone = Literal["plain_english", "technical"]


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    status: str
    version: str


# Auth


class SignupRequest(CamelModel):
    """Payload for email + password signup."""

    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    display_name: Optional[str] = Field(None, min_length=1, max_length=80)
    shop_name: Optional[str] = Field(None, min_length=1, max_length=120)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserSummary(CamelModel):
    id: uuid.UUID
    email: str
    display_name: Optional[str] = None


class ShopSummary(CamelModel):
    id: uuid.UUID
    name: str


class SignupResponse(CamelModel):
    user: UserSummary
    shop: ShopSummary


class AuthUrlResponse(CamelModel):
    url: str


# Report generation


class GenerateReportRequest(CamelModel):
    """Schema for a report generation request.

    ``codes`` accepts either a list of code strings or a single
    comma-separated string, which is how the new-report form submits them.
    """

    year: Optional[int] = Field(None, ge=1900, le=2100)
    make: Optional[str] = Field(None, max_length=64)
    model: Optional[str] = Field(None, max_length=64)
    trim: Optional[str] = Field(None, max_length=64)
    mileage: Optional[int] = Field(None, ge=0)
    codes: List[str]
    complaint: str
    notes: Optional[str] = None
    mode: Optional[ReportMode] = None

    @field_validator("codes", mode="before")
    @classmethod
    def split_code_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split(",")
        return value

    @field_validator("codes")
    @classmethod
    def require_codes(cls, value: List[str]) -> List[str]:
        if not any(code.strip() for code in value):
            raise ValueError("At least one diagnostic trouble code is required")
        return value

    @field_validator("complaint")
    @classmethod
    def require_complaint(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Complaint is required")
        return value


class GeneratedContent(CamelModel):
    tech_view: str = ""
    customer_view: str = ""
    maintenance_suggestions: List[str] = Field(default_factory=list)


class GenerateReportResponse(CamelModel):
    id: uuid.UUID
    report: GeneratedContent


class ReportOut(CamelModel):
    """Full report as returned by the history endpoints."""

    id: uuid.UUID
    created_at: datetime
    vehicle_year: Optional[int] = None
    vehicle_make: Optional[str] = None
    vehicle_model: Optional[str] = None
    vehicle_trim: Optional[str] = None
    mileage: Optional[int] = None
    codes_raw: str
    complaint: str
    notes: str
    tech_view: str
    customer_view: str
    maintenance_suggestions: List[str]
    prompt_version: str
    mode: str
    status: str

    @field_validator("maintenance_suggestions", mode="before")
    @classmethod
    def decode_suggestions(cls, value: Union[str, List[str], None]) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            try:
                decoded = json.loads(value)
            except json.JSONDecodeError:
                return []
            return [str(item) for item in decoded] if isinstance(decoded, list) else []
        return value


class DeleteResponse(CamelModel):
    ok: bool


# Settings


class ShopSettingsOut(CamelModel):
    id: uuid.UUID
    name: str
    display_name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    default_report_mode: ReportMode
    default_report_tone: ReportTone
    default_include_maint: bool


class ShopSettingsUpdate(CamelModel):
    """Partial update of shop settings; omitted or null fields stay as they are."""

    display_name: Optional[str] = Field(None, max_length=120)
    phone: Optional[str] = Field(None, max_length=40)
    address: Optional[str] = Field(None, max_length=255)
    default_report_mode: Optional[ReportMode] = None
    default_report_tone: Optional[ReportTone] = None
    default_include_maint: Optional[bool] = None


class UserSettingsOut(CamelModel):
    id: uuid.UUID
    email: str
    display_name: Optional[str] = None


class UserSettingsUpdate(CamelModel):
    display_name: Optional[str] = Field(None, max_length=80)

"""SQLAlchemy models for the OBDscribe application.

A ``Shop`` is the tenant boundary: it owns its ``User`` accounts and every
``Report`` generated by them.  ``DtcCode`` and ``MaintenanceBand`` are
read-only reference tables consulted by the report generation pipeline.
Column types are kept portable so the same models run on PostgreSQL in
production and SQLite in tests.
"""

import uuid
from typing import Optional

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase


REPORT_MODES = ("standard", "premium")
REPORT_TONES = ("plain_english", "technical")

STATUS_COMPLETED = "COMPLETED"
STATUS_DEGRADED = "DEGRADED"


class Base(DeclarativeBase):
    pass


class Shop(Base):
    """A repair shop and its report defaults."""

    __tablename__ = "shops"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    name: str = Column(String(120), nullable=False)
    display_name: Optional[str] = Column(String(120), nullable=True)
    phone: Optional[str] = Column(String(40), nullable=True)
    address: Optional[str] = Column(String(255), nullable=True)

    default_report_mode: str = Column(String(16), nullable=False, default="standard")
    default_report_tone: str = Column(String(32), nullable=False, default="plain_english")
    default_include_maint: bool = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class User(Base):
    """An account belonging to exactly one shop.

    ``password_hash`` is empty for accounts created through OAuth.  The
    ``(oauth_provider, oauth_subject)`` pair identifies the external
    identity; ``oauth_subject`` is unique when present.
    """

    __tablename__ = "users"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: uuid.UUID = Column(Uuid, ForeignKey("shops.id"), nullable=False, index=True)

    email: str = Column(String(255), nullable=False, unique=True)
    password_hash: str = Column(String(255), nullable=False, default="")
    display_name: Optional[str] = Column(String(80), nullable=True)
    role: str = Column(String(32), nullable=False, default="owner")

    oauth_provider: Optional[str] = Column(String(32), nullable=True)
    oauth_subject: Optional[str] = Column(String(255), nullable=True, unique=True)
    email_verified_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)


class Report(Base):
    """One persisted generation request and its AI output."""

    __tablename__ = "reports"

    id: uuid.UUID = Column(Uuid, primary_key=True, default=uuid.uuid4)
    shop_id: uuid.UUID = Column(Uuid, ForeignKey("shops.id"), nullable=False, index=True)
    user_id: uuid.UUID = Column(Uuid, ForeignKey("users.id"), nullable=False, index=True)

    vehicle_year: Optional[int] = Column(Integer, nullable=True)
    vehicle_make: Optional[str] = Column(String(64), nullable=True)
    vehicle_model: Optional[str] = Column(String(64), nullable=True)
    vehicle_trim: Optional[str] = Column(String(64), nullable=True)
    mileage: Optional[int] = Column(Integer, nullable=True)

    codes_raw: str = Column(Text, nullable=False, default="")
    complaint: str = Column(Text, nullable=False)
    notes: str = Column(Text, nullable=False, default="")

    tech_view: str = Column(Text, nullable=False, default="")
    customer_view: str = Column(Text, nullable=False, default="")
    maintenance_suggestions: str = Column(Text, nullable=False, default="[]")

    prompt_version: str = Column(String(16), nullable=False)
    mode: str = Column(String(16), nullable=False, default="standard")
    status: str = Column(String(16), nullable=False, default=STATUS_COMPLETED)

    created_at = Column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )


class DtcCode(Base):
    __tablename__ = "dtc_codes"

    code: str = Column(String(16), primary_key=True)
    generic_meaning: str = Column(Text, nullable=False)


class MaintenanceBand(Base):
    """A mileage interval ``[min_mileage, max_mileage]`` with service guidance."""

    __tablename__ = "maintenance_bands"

    id: int = Column(Integer, primary_key=True, autoincrement=True)
    min_mileage: int = Column(Integer, nullable=False)
    max_mileage: int = Column(Integer, nullable=False)
    label: str = Column(String(64), nullable=False)
    guidance: str = Column(Text, nullable=False, default="")

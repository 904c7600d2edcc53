import secrets
import time
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

DONATION_STATUSES = ("pending", "accepted", "completed", "cancelled")
FOOD_TYPES = ("veg", "non-veg", "both")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(moment: datetime) -> datetime:
    """SQLite hands timestamps back without their zone; they were stored as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc)


def new_id() -> str:
    return secrets.token_hex(16)


def new_unique_id() -> str:
    """Timestamp plus a 128-bit random suffix."""
    return f"{int(time.time() * 1000)}-{secrets.token_hex(16)}"


class User(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    full_name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    phone: str = Field(unique=True)
    city: str
    pincode: str
    address: str

    total_donations: int = 0
    donation_ids: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Admin(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    full_name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    phone: str = Field(unique=True)
    city: str
    pincode: str
    address: str

    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))


class Donation(SQLModel, table=True):
    id: str = Field(default_factory=new_id, primary_key=True, max_length=32)
    unique_id: str = Field(default_factory=new_unique_id, unique=True)
    user_id: Optional[str] = Field(default=None, foreign_key="user.id", index=True)

    full_name: str
    email: str = Field(index=True)
    phone: str
    food_type: str
    full_address: str
    food_quantity: str
    notes: str = ""
    status: str = "pending"  # pending | accepted | completed | cancelled

    donation_date: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))
    created_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True), index=True)
    updated_at: datetime = Field(default_factory=utcnow, sa_type=DateTime(timezone=True))

"""Account model."""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from app.database import Base


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the form stored in the database."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_account_id() -> str:
    return str(uuid.uuid4())


class Account(Base):
    """A registered app user."""

    __tablename__ = "account"

    id = Column(String(36), primary_key=True, default=new_account_id)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(256), nullable=False)
    profile_image_url = Column(String(2048), nullable=True)
    age = Column(Integer, nullable=True)
    weight_kg = Column(Float, nullable=True)
    height_cm = Column(Float, nullable=True)
    is_active = Column(Boolean, nullable=False, default=False)
    verification_token = Column(String(64), nullable=True, index=True)
    verification_expires = Column(DateTime, nullable=True)
    password_reset_token = Column(String(64), nullable=True, index=True)
    password_reset_expires = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow)
    verified_at = Column(DateTime, nullable=True)
    deactivated_at = Column(DateTime, nullable=True)

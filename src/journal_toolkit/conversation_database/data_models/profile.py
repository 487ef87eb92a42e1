"""
Profile data model and storage interface.

A profile is the per-user record behind the profile page: an optional display
name and diagnosis details. It is keyed by the user id and created empty on the
user's first sign-in, so there is no separate registration step.

Concrete implementations: 'InMemoryProfileDatabase', 'PostgreSQLProfileDatabase'.
"""

from abc import ABC, abstractmethod
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Profile(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    email: str | None = None
    full_name: str | None = None
    diagnosis_age: int | None = None
    diagnosis_type: str | None = None
    create_timestamp: datetime
    update_timestamp: datetime


class ProfileUpdate(BaseModel):
    """Editable profile fields. Blank strings are stored as missing values."""

    full_name: str | None = None
    diagnosis_age: int | None = Field(default=None, ge=0, le=150)
    diagnosis_type: str | None = None

    @field_validator("full_name", "diagnosis_type", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ProfileDatabase(ABC):
    """Abstract repository for 'Profile' records."""

    @abstractmethod
    async def create_profile(self, user_id: str, email: str | None = None) -> Profile:
        """Create an empty profile, or return the existing one for 'user_id'."""
        pass

    @abstractmethod
    async def get_profile_by_user_id(self, user_id: str) -> Profile | None:
        pass

    @abstractmethod
    async def update_profile(self, user_id: str, update: ProfileUpdate, timestamp: datetime) -> Profile:
        """Replace the editable fields. Raise 'NotFoundError' if the profile does not exist."""
        pass

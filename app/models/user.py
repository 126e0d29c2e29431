"""Pydantic models for the ``users`` table.

``password_hash`` is only ever carried on ``User``; everything returned to
clients goes through ``UserPublic``.
"""

from __future__ import annotations

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, model_validator

from app.core.constants import MAX_USER_AGE, MIN_USER_AGE


class GeoPoint(BaseModel):
    """WGS84 point."""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class Profile(BaseModel):
    first_name: str = ""
    last_name: str = ""
    date_of_birth: date | None = None
    gender: str = ""
    bio: str = ""
    profile_pic_url: str = ""


class Preferences(BaseModel):
    """Who the user wants to be matched with."""
    min_age: int = Field(default=MIN_USER_AGE, ge=MIN_USER_AGE, le=MAX_USER_AGE)
    max_age: int = Field(default=MAX_USER_AGE, ge=MIN_USER_AGE, le=MAX_USER_AGE)
    gender: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_range(self) -> "Preferences":
        if self.min_age > self.max_age:
            raise ValueError("min_age must not exceed max_age")
        return self


class UserCreate(BaseModel):
    """Payload for registering a user."""
    username: str = Field(min_length=1, max_length=64)
    email: EmailStr
    password: str = Field(min_length=8, max_length=256)


class UserUpdate(BaseModel):
    """Payload for changing account fields.  Omitted fields stay as they are."""
    username: str | None = Field(default=None, min_length=1, max_length=64)
    email: EmailStr | None = None


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class LocationUpdate(BaseModel):
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)


class User(BaseModel):
    """Full user record as stored."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    password_hash: str
    profile: Profile = Field(default_factory=Profile)
    preferences: Preferences = Field(default_factory=Preferences)
    location: GeoPoint | None = None
    is_searching: bool = False
    current_link_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

    def to_public(self) -> "UserPublic":
        return UserPublic.model_validate(self.model_dump(exclude={"password_hash"}))


class UserPublic(BaseModel):
    """User record as returned to clients."""
    id: UUID
    username: str
    email: str
    profile: Profile
    preferences: Preferences
    location: GeoPoint | None = None
    is_searching: bool
    current_link_id: UUID | None = None
    created_at: datetime
    updated_at: datetime

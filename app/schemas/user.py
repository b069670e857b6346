from pydantic import BaseModel, Field, ConfigDict
from datetime import datetime
from typing import Optional

from app.models.user import UserRole

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserBase(BaseModel):
    """Base schema for User with common attributes."""
    name: str = Field(..., min_length=2, max_length=100)
    email: str = Field(..., max_length=150, pattern=EMAIL_PATTERN)
    phone: Optional[str] = Field(None, max_length=20)


class UserCreate(UserBase):
    """Schema for registering a user. Only administrators may create administrators."""
    role: UserRole = Field(UserRole.CLIENT, description="Defaults to cliente")


class UserUpdate(BaseModel):
    """Profile fields a user may change on their own account."""
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    phone: Optional[str] = Field(None, max_length=20)


class UserResponse(UserBase):
    id: int
    role: UserRole
    active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

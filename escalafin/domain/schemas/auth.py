"""Pydantic schemas for User and Auth."""

from pydantic import BaseModel
from datetime import datetime
from typing import Optional

from escalafin.domain.enums import UserRole


class UserCreate(BaseModel):
    name: str
    email: str
    phone: Optional[str] = None
    password: str
    role: UserRole = UserRole.ADVISOR


class UserRead(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    role: UserRole
    is_active: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserRead

"""
Pydantic schemas for user-related request/response validation.
"""

from datetime import datetime
from typing import Literal, Optional
from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    admin_code: Optional[str] = Field(None, max_length=255)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    role: Literal["user", "admin"]
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CreatorSummary(BaseModel):
    id: int
    name: str
    email: str

    model_config = {"from_attributes": True}

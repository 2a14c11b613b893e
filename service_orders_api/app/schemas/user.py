"""
Pydantic models for user data.

Defines schemas for registering users, logging in and reading user
information.  Passwords are accepted on input only and never
returned by the API.
"""

from typing import Optional

from pydantic import BaseModel, Field


class UserBase(BaseModel):
    email: str = Field(..., min_length=3, examples=["user@example.com"])
    full_name: Optional[str] = Field(None, examples=["Jane Doe"])


class UserCreate(UserBase):
    """Schema for registering a user."""

    password: str = Field(..., min_length=1, examples=["strongpassword"])


class UserLogin(BaseModel):
    email: str
    password: str


class UserRead(UserBase):
    """Schema for reading a user from the API."""

    id: int
    role_id: Optional[int] = None
    disabled: bool = False

    model_config = {
        "from_attributes": True,
    }

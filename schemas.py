"""
Database Schemas for the Potions API

MongoDB collections are defined below using Pydantic models. Each class name is
converted to lowercase for the collection name (User -> "user").

We will use these collections:
- user: registered accounts (name + bcrypt password hash)
- potion: potion records
"""

import html
from datetime import date
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# escaped in user names on top of what html.escape covers
_EXTRA_ESCAPES = str.maketrans({"/": "&#x2F;", "\\": "&#x5C;", "`": "&#96;"})


def escape_name(name: str) -> str:
    return html.escape(name.strip()).translate(_EXTRA_ESCAPES)


class User(BaseModel):
    name: str = Field(..., min_length=3, max_length=30)
    password_hash: str = Field(..., description="BCrypt hash of password")


class Ratings(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    strength: float
    flavor: float


class Potion(BaseModel):
    model_config = ConfigDict(allow_inf_nan=False)

    name: str = Field(..., min_length=1)
    price: float
    score: float
    ingredients: List[str] = Field(default_factory=list)
    ratings: Ratings
    tryDate: Optional[date] = None
    categories: List[str] = Field(default_factory=list)
    vendor_id: str


# Request models

class RegisterRequest(BaseModel):
    name: str = Field("", validate_default=True)
    password: str = Field("", validate_default=True)

    @field_validator("name")
    @classmethod
    def clean_name(cls, v: str) -> str:
        v = escape_name(v)
        if not v:
            raise ValueError("Name is required")
        if not (3 <= len(v) <= 30):
            raise ValueError("Name must be between 3 and 30 characters")
        return v

    @field_validator("password")
    @classmethod
    def clean_password(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Password is required")
        if len(v) < 6:
            raise ValueError("Password must be at least 6 characters")
        return v


class LoginRequest(BaseModel):
    name: str = ""
    password: str = ""

    @field_validator("name", "password", mode="before")
    @classmethod
    def non_string_as_empty(cls, v: Any) -> str:
        # anything but a string can never match, the handler answers 401
        return v if isinstance(v, str) else ""


class MessageResponse(BaseModel):
    message: str

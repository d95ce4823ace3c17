# assetverse/models/user.py
from typing import Optional
from datetime import datetime, date

from beanie import Document
from pydantic import BaseModel, EmailStr, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .asset import utc_now
from .enum import UserRole


class User(Document):
    email: EmailStr
    name: str
    role: UserRole = Field(default=UserRole.EMPLOYEE)
    company_name: Optional[str] = None
    company_logo: Optional[str] = None
    photo: Optional[str] = None
    date_of_birth: Optional[str] = None  # ISO date, BSON has no plain date type
    position: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("email", ASCENDING)], name="email_unique_index", unique=True),
            IndexModel([("role", ASCENDING)], name="role_index"),
            IndexModel([("company_name", ASCENDING), ("role", ASCENDING)], name="company_role_index"),
            IndexModel([("created_at", DESCENDING)], name="user_created_at_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        email: EmailStr
        name: str = Field(..., min_length=1, max_length=120)
        role: UserRole = UserRole.EMPLOYEE
        company_name: Optional[str] = Field(None, max_length=200)
        company_logo: Optional[str] = None
        photo: Optional[str] = None
        date_of_birth: Optional[date] = None
        position: Optional[str] = Field(None, max_length=120)

    class Response(BaseModel):
        id: str
        email: str
        name: str
        role: UserRole
        company_name: Optional[str] = None
        company_logo: Optional[str] = None
        photo: Optional[str] = None
        date_of_birth: Optional[date] = None
        position: Optional[str] = None
        created_at: datetime

        class Config:
            from_attributes = True
            use_enum_values = True


class RoleResponse(BaseModel):
    role: UserRole

    class Config:
        use_enum_values = True

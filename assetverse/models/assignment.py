# assetverse/models/assignment.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, EmailStr, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .asset import utc_now
from .enum import AssignmentStatus


class AssignedAsset(Document):
    """Asset currently (or formerly) held by an employee. Only created by request approval."""
    asset_id: str
    asset_name: Optional[str] = None
    asset_type: Optional[str] = None
    asset_image: Optional[str] = None
    employee_email: EmailStr
    employee_name: Optional[str] = None
    hr_email: EmailStr
    company_name: Optional[str] = None
    request_id: Optional[str] = None
    assigned_date: datetime = Field(default_factory=utc_now)
    return_date: Optional[datetime] = None
    status: AssignmentStatus = AssignmentStatus.ASSIGNED

    class Settings:
        name = "assigned_assets"
        indexes = [
            IndexModel([("asset_id", ASCENDING)], name="assignment_asset_id_index"),
            IndexModel([("hr_email", ASCENDING)], name="assignment_hr_email_index"),
            IndexModel([("employee_email", ASCENDING)], name="assignment_employee_index"),
            IndexModel([("assigned_date", DESCENDING)], name="assignment_date_index"),
        ]

    class Response(BaseModel):
        id: str
        asset_id: str
        asset_name: Optional[str] = None
        asset_type: Optional[str] = None
        asset_image: Optional[str] = None
        employee_email: str
        employee_name: Optional[str] = None
        hr_email: str
        company_name: Optional[str] = None
        request_id: Optional[str] = None
        assigned_date: datetime
        return_date: Optional[datetime] = None
        status: AssignmentStatus

        class Config:
            from_attributes = True
            use_enum_values = True

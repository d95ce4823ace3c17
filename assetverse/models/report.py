# assetverse/models/report.py
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime, date

from .enum import RequestStatus, AssignmentStatus


class AssetHistoryEntry(BaseModel):
    """A resolved request joined with the asset's current data (None when the asset is gone)."""
    request_id: str
    asset_id: str
    status: RequestStatus
    request_date: datetime
    approval_date: Optional[datetime] = None
    processed_by: Optional[str] = None
    hr_email: str
    company_name: Optional[str] = None
    product_name: Optional[str] = None
    product_type: Optional[str] = None
    product_image: Optional[str] = None
    returnable: Optional[bool] = None

    class Config:
        use_enum_values = True


class EmployeeAssetItem(BaseModel):
    assignment_id: str
    asset_id: str
    asset_name: Optional[str] = None
    asset_type: Optional[str] = None
    assigned_date: datetime
    status: AssignmentStatus

    class Config:
        use_enum_values = True


class EmployeeAssetSummary(BaseModel):
    """Assignments of one employee, grouped for the HR dashboard."""
    employee_email: str
    employee_name: Optional[str] = None
    total_assets: int = Field(default=0)
    active_assets: int = Field(default=0)
    assets: List[EmployeeAssetItem] = Field(default_factory=list)


class BirthdayEntry(BaseModel):
    email: str
    name: str
    photo: Optional[str] = None
    position: Optional[str] = None
    date_of_birth: date
    next_birthday: date
    days_until: int

# assetverse/models/asset_request.py
from typing import Optional
from datetime import datetime

from beanie import Document
from pydantic import BaseModel, EmailStr, Field
from pymongo import IndexModel, ASCENDING, DESCENDING

from .asset import utc_now
from .enum import RequestStatus


class AssetRequest(Document):
    # asset_id is an opaque string: the asset may be deleted later (cascade removes us too)
    asset_id: str
    asset_name: Optional[str] = None
    asset_type: Optional[str] = None
    asset_image: Optional[str] = None
    requester_email: EmailStr
    requester_name: Optional[str] = None
    hr_email: EmailStr
    company_name: Optional[str] = None
    note: Optional[str] = None
    status: RequestStatus = RequestStatus.PENDING
    request_date: datetime = Field(default_factory=utc_now)
    approval_date: Optional[datetime] = None
    processed_by: Optional[EmailStr] = None

    class Settings:
        name = "requests"
        indexes = [
            IndexModel([("asset_id", ASCENDING)], name="request_asset_id_index"),
            IndexModel([("hr_email", ASCENDING), ("status", ASCENDING)], name="request_hr_status_index"),
            IndexModel([("requester_email", ASCENDING)], name="request_requester_index"),
            IndexModel([("request_date", DESCENDING)], name="request_date_index"),
        ]

    # --- Pydantic Schemas ---
    class Create(BaseModel):
        asset_id: str = Field(..., min_length=1)
        # Used only when the asset cannot be found; otherwise taken from the asset
        hr_email: EmailStr
        company_name: Optional[str] = None
        note: Optional[str] = Field(None, max_length=500)

    class Response(BaseModel):
        id: str
        asset_id: str
        asset_name: Optional[str] = None
        asset_type: Optional[str] = None
        asset_image: Optional[str] = None
        requester_email: str
        requester_name: Optional[str] = None
        hr_email: str
        company_name: Optional[str] = None
        note: Optional[str] = None
        status: RequestStatus
        request_date: datetime
        approval_date: Optional[datetime] = None
        processed_by: Optional[str] = None

        class Config:
            from_attributes = True
            use_enum_values = True

# assetverse/models/asset.py
from typing import Optional
from datetime import datetime, timezone

from beanie import Document
from pydantic import BaseModel, EmailStr, Field
from pymongo import IndexModel, ASCENDING, DESCENDING


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Asset(Document):
    """Company-owned asset registered by an HR user."""
    product_name: str = Field(..., max_length=200)
    product_type: str = Field(..., max_length=100)
    quantity: int = Field(default=0, ge=0)
    hr_email: EmailStr
    company_name: Optional[str] = None
    product_image: Optional[str] = None
    returnable: bool = Field(default=True, description="Returnable assets go back into stock on return")
    description: Optional[str] = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    class Settings:
        name = "assets"
        indexes = [
            IndexModel([("hr_email", ASCENDING)], name="asset_hr_email_index"),
            IndexModel([("product_name", ASCENDING)], name="asset_product_name_index"),
            IndexModel([("product_type", ASCENDING)], name="asset_product_type_index"),
            IndexModel([("created_at", DESCENDING)], name="asset_created_at_index"),
        ]

    # --- Pydantic Schemas for API ---
    class Create(BaseModel):
        product_name: str = Field(..., min_length=1, max_length=200)
        product_type: str = Field(..., min_length=1, max_length=100)
        quantity: int = Field(..., ge=0)
        product_image: Optional[str] = None
        returnable: bool = True
        description: Optional[str] = None

    class Update(BaseModel):
        product_name: Optional[str] = Field(None, min_length=1, max_length=200)
        product_type: Optional[str] = Field(None, min_length=1, max_length=100)
        quantity: Optional[int] = Field(None, ge=0)
        product_image: Optional[str] = None
        returnable: Optional[bool] = None
        description: Optional[str] = None

    class Response(BaseModel):
        id: str
        product_name: str
        product_type: str
        quantity: int
        hr_email: str
        company_name: Optional[str] = None
        product_image: Optional[str] = None
        returnable: bool
        description: Optional[str] = None
        created_at: datetime
        updated_at: datetime

        class Config:
            from_attributes = True


class AssetDeleteResult(BaseModel):
    """Counts removed by an asset delete cascade."""
    asset_id: str
    deleted_assets: int
    deleted_requests: int
    deleted_assignments: int

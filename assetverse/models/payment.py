# assetverse/models/payment.py
from typing import List
from pydantic import BaseModel, Field


class Package(BaseModel):
    name: str
    employee_limit: int = Field(..., gt=0)
    price: float = Field(..., gt=0, description="Price in whole currency units")


# Subscription tiers sold to HR accounts
PACKAGES: List[Package] = [
    Package(name="basic", employee_limit=5, price=5),
    Package(name="standard", employee_limit=10, price=8),
    Package(name="premium", employee_limit=20, price=15),
]


class CheckoutRequest(BaseModel):
    package_name: str = Field(..., min_length=1)


class CheckoutSession(BaseModel):
    session_id: str
    url: str

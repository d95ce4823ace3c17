# assetverse/api/v1/endpoints/payments.py
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Body, Request
from loguru import logger

from assetverse.core.payments import PaymentProvider, get_payment_provider, start_package_checkout
from assetverse.core.rate_limiter import limiter
from assetverse.core.security import require_hr
from assetverse.models.payment import PACKAGES, CheckoutRequest, CheckoutSession, Package

router = APIRouter(tags=["Payments"])


@router.get("/packages", response_model=List[Package])
async def read_packages():
    return PACKAGES


@router.post("/checkout-session", response_model=CheckoutSession)
@limiter.limit("10/minute")
async def create_checkout_session(
    request: Request,
    checkout_in: CheckoutRequest = Body(...),
    current_user: Dict[str, Any] = Depends(require_hr),
    provider: PaymentProvider = Depends(get_payment_provider),
):
    """Start a package purchase; the client redirects to the returned URL."""
    logger.info(f"HR '{current_user['email']}' starting checkout for package '{checkout_in.package_name}'.")
    return await start_package_checkout(provider, checkout_in.package_name, current_user["email"])

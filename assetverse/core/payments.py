# assetverse/core/payments.py
"""Checkout provider adapter. Only session creation is used: amount + metadata -> redirect URL."""
import logging
from abc import ABC, abstractmethod
from typing import Dict, Optional

import httpx

from assetverse.core import config
from assetverse.core.errors import NotFoundError, PaymentProviderError
from assetverse.models.payment import PACKAGES, CheckoutSession, Package

logger = logging.getLogger(__name__)


def find_package(name: str) -> Package:
    for package in PACKAGES:
        if package.name.lower() == name.strip().lower():
            return package
    raise NotFoundError(f"Package '{name}' not found.")


class PaymentProvider(ABC):
    @abstractmethod
    async def create_checkout_session(
        self,
        amount_cents: int,
        product_name: str,
        metadata: Dict[str, str],
        customer_email: Optional[str] = None,
    ) -> CheckoutSession: ...


class StripeCheckoutProvider(PaymentProvider):
    """Creates Stripe Checkout sessions through the REST API."""

    def __init__(
        self,
        secret_key: str,
        success_url: str,
        cancel_url: str,
        currency: str = "usd",
        api_base: str = "https://api.stripe.com",
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.success_url = success_url
        self.cancel_url = cancel_url
        self.currency = currency
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _form(self, amount_cents: int, product_name: str, metadata: Dict[str, str], customer_email: Optional[str]) -> Dict[str, str]:
        form = {
            "mode": "payment",
            "success_url": self.success_url,
            "cancel_url": self.cancel_url,
            "line_items[0][quantity]": "1",
            "line_items[0][price_data][currency]": self.currency,
            "line_items[0][price_data][unit_amount]": str(amount_cents),
            "line_items[0][price_data][product_data][name]": product_name,
        }
        if customer_email:
            form["customer_email"] = customer_email
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = str(value)
        return form

    async def create_checkout_session(self, amount_cents, product_name, metadata, customer_email=None) -> CheckoutSession:
        url = f"{self.api_base}/v1/checkout/sessions"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    data=self._form(amount_cents, product_name, metadata, customer_email),
                    auth=(self.secret_key, ""),
                )
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPStatusError as e:
            logger.error(f"Checkout provider returned {e.response.status_code}: {e.response.text[:500]}")
            raise PaymentProviderError() from e
        except httpx.HTTPError as e:
            logger.error(f"Checkout provider request failed: {e}", exc_info=True)
            raise PaymentProviderError() from e

        if not payload.get("id") or not payload.get("url"):
            logger.error(f"Checkout provider response missing id/url: {payload}")
            raise PaymentProviderError()
        logger.info(f"Checkout session {payload['id']} created for '{product_name}'.")
        return CheckoutSession(session_id=payload["id"], url=payload["url"])


async def start_package_checkout(provider: PaymentProvider, package_name: str, hr_email: str) -> CheckoutSession:
    package = find_package(package_name)
    return await provider.create_checkout_session(
        amount_cents=int(round(package.price * 100)),
        product_name=f"AssetVerse {package.name} package",
        metadata={
            "hr_email": hr_email,
            "package_name": package.name,
            "employee_limit": str(package.employee_limit),
        },
        customer_email=hr_email,
    )


# --- FastAPI dependency ---
def get_payment_provider() -> PaymentProvider:
    if not config.STRIPE_SECRET_KEY:
        logger.error("STRIPE_SECRET_KEY is not configured; checkout is unavailable.")
        raise PaymentProviderError()
    return StripeCheckoutProvider(
        secret_key=config.STRIPE_SECRET_KEY,
        success_url=f"{config.CLIENT_DOMAIN}/payment-success?session_id={{CHECKOUT_SESSION_ID}}",
        cancel_url=f"{config.CLIENT_DOMAIN}/upgrade-package",
        currency=config.PAYMENT_CURRENCY,
        api_base=config.STRIPE_API_BASE,
    )

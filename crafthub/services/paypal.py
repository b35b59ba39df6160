# crafthub/services/paypal.py
"""PayPal Orders v2 adapter.

Only the two calls checkout needs: create an order for the cart and capture
it once the buyer has approved it.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import List, Optional

import requests
from flask import current_app

from ..errors import PaymentGatewayUnavailableError
from ..utils.money import round_money, sum_money, to_string_money

SANDBOX_URL = "https://api-m.sandbox.paypal.com"
LIVE_URL = "https://api-m.paypal.com"

NAME_LIMIT = 127  # PayPal item name/description limit

STATUS_COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class LineItem:
    template_id: str
    title: str
    price: Decimal

@dataclass(frozen=True)
class GatewayOrder:
    order_id: str
    status: str

@dataclass(frozen=True)
class GatewayCapture:
    order_id: str
    status: str
    payer_email: Optional[str] = None
    amount_captured: Optional[str] = None


class PayPalGateway:
    def __init__(self, client_id: str, client_secret: str, mode: str = "sandbox",
                 timeout: float = 15, currency: str = "USD", brand_name: str = "CraftHub",
                 return_url: str = "http://localhost:5173", session: requests.Session | None = None):
        self.client_id = client_id or ""
        self.client_secret = client_secret or ""
        self.base_url = LIVE_URL if (mode or "").lower() == "live" else SANDBOX_URL
        self.timeout = timeout
        self.currency = currency
        self.brand_name = brand_name
        self.return_url = return_url
        self.session = session or requests.Session()
        self._token: str | None = None
        self._token_expires_at = 0.0

    @classmethod
    def from_config(cls, config) -> "PayPalGateway":
        return cls(
            client_id=config.get("PAYPAL_CLIENT_ID"),
            client_secret=config.get("PAYPAL_CLIENT_SECRET"),
            mode=config.get("PAYPAL_MODE", "sandbox"),
            timeout=config.get("PAYPAL_TIMEOUT", 15),
            currency=config.get("PAYPAL_CURRENCY", "USD"),
            brand_name=config.get("BRAND_NAME", "CraftHub"),
            return_url=config.get("FRONTEND_URL", "http://localhost:5173"),
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    # ---- http helpers ------------------------------------------------------

    def _access_token(self) -> str:
        if self._token and time.monotonic() < self._token_expires_at:
            return self._token
        try:
            r = self.session.post(
                f"{self.base_url}/v1/oauth2/token",
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            current_app.logger.error("PayPal auth error: %s", e)
            raise PaymentGatewayUnavailableError("payment gateway unreachable") from e
        if r.status_code != 200:
            current_app.logger.error("PayPal auth failed: %s %s", r.status_code, r.text)
            raise PaymentGatewayUnavailableError("payment gateway authentication failed")
        body = self._json(r, action="authentication")
        token = body.get("access_token")
        if not token:
            current_app.logger.error("PayPal auth response has no access_token: %s", r.text)
            raise PaymentGatewayUnavailableError("payment gateway authentication failed")
        try:
            expires_in = int(body.get("expires_in", 0))
        except (TypeError, ValueError):
            expires_in = 0
        self._token = token
        # refresh a minute early
        self._token_expires_at = time.monotonic() + max(expires_in - 60, 0)
        return self._token

    @staticmethod
    def _json(r, *, action: str) -> dict:
        """Decoded JSON object of a 2xx response; anything else is a gateway failure."""
        try:
            body = r.json()
        except ValueError as e:
            current_app.logger.error("PayPal %s returned a non-JSON body: %s", action, r.text)
            raise PaymentGatewayUnavailableError(f"payment gateway {action} failed") from e
        if not isinstance(body, dict):
            current_app.logger.error("PayPal %s returned an unexpected body: %s", action, r.text)
            raise PaymentGatewayUnavailableError(f"payment gateway {action} failed")
        return body

    def _request(self, method: str, path: str, payload: dict | None = None, *, action: str) -> dict:
        if not self.configured:
            raise PaymentGatewayUnavailableError("payment gateway is not configured")
        token = self._access_token()
        try:
            r = self.session.request(
                method,
                f"{self.base_url}{path}",
                json=payload,
                headers={
                    "Authorization": f"Bearer {token}",
                    "Content-Type": "application/json",
                    "Prefer": "return=representation",
                },
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            current_app.logger.error("PayPal %s error: %s", action, e)
            raise PaymentGatewayUnavailableError(f"payment gateway {action} failed") from e
        if r.status_code not in (200, 201):
            current_app.logger.error("PayPal %s failed: %s %s", action, r.status_code, r.text)
            raise PaymentGatewayUnavailableError(f"payment gateway {action} failed", http_status=r.status_code)
        return self._json(r, action=action)

    # ---- orders -------------------------------------------------------------

    def _money(self, value) -> dict:
        return {"currency_code": self.currency, "value": to_string_money(value)}

    def create_order(self, line_items: List[LineItem], total: Decimal, reference_id: str) -> GatewayOrder:
        total = round_money(total)
        items = [
            {
                "name": (li.title or li.template_id)[:NAME_LIMIT],
                "unit_amount": self._money(li.price),
                "quantity": "1",
                "description": f"Template: {li.template_id}"[:NAME_LIMIT],
            }
            for li in line_items
        ]
        item_total = sum_money(li.price for li in line_items)
        unit = {
            "reference_id": reference_id,
            "description": f"{self.brand_name} template purchase"[:NAME_LIMIT],
            "amount": self._money(total),
        }
        # breakdown must add up to the amount; the minimum charge on a free cart has no items to itemize
        if item_total >= total:
            breakdown = {"item_total": self._money(item_total)}
            if item_total > total:
                breakdown["discount"] = self._money(item_total - total)
            unit["amount"]["breakdown"] = breakdown
            unit["items"] = items
        payload = {
            "intent": "CAPTURE",
            "purchase_units": [unit],
            "application_context": {
                "brand_name": self.brand_name,
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "return_url": self.return_url,
                "cancel_url": self.return_url,
            },
        }
        body = self._request("POST", "/v2/checkout/orders", payload, action="create order")
        order_id = body.get("id")
        if not order_id:
            current_app.logger.error("PayPal create order response has no id: %s", body)
            raise PaymentGatewayUnavailableError("payment gateway create order failed")
        return GatewayOrder(order_id=order_id, status=body.get("status", ""))

    def capture_order(self, order_id: str) -> GatewayCapture:
        body = self._request("POST", f"/v2/checkout/orders/{order_id}/capture", {}, action="capture")
        return _parse_capture(body, order_id)

    def get_order(self, order_id: str) -> GatewayCapture:
        """Current state of an order; a captured order reports COMPLETED."""
        body = self._request("GET", f"/v2/checkout/orders/{order_id}", action="order lookup")
        return _parse_capture(body, order_id)


def _parse_capture(body: dict, order_id: str) -> GatewayCapture:
    payer = body.get("payer") or {}
    amount = None
    units = body.get("purchase_units") or []
    if units and isinstance(units[0], dict):
        captures = ((units[0].get("payments") or {}).get("captures")) or []
        if captures and isinstance(captures[0], dict):
            amount = (captures[0].get("amount") or {}).get("value")
    return GatewayCapture(
        order_id=body.get("id", order_id),
        status=body.get("status", ""),
        payer_email=payer.get("email_address") if isinstance(payer, dict) else None,
        amount_captured=amount,
    )


def get_gateway():
    """The gateway installed on the running app (tests swap in a fake)."""
    return current_app.extensions["payment_gateway"]

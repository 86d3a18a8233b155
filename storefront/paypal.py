import json
import logging
from typing import Any, Dict

import requests

from .config import Settings
from .exceptions import PaymentProviderError

logger = logging.getLogger(__name__)


class PayPalClient:
    """Minimal PayPal Orders v2 client: OAuth token, create order, capture order."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        base_url: str,
        brand_name: str,
        site_url: str,
        timeout: float = 20,
        session: requests.Session = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.base_url = base_url
        self.brand_name = brand_name
        self.site_url = site_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Settings) -> "PayPalClient":
        return cls(
            client_id=settings.PAYPAL_CLIENT_ID,
            client_secret=settings.PAYPAL_CLIENT_SECRET,
            base_url=settings.paypal_base_url,
            brand_name=settings.COMPANY_NAME,
            site_url=settings.SITE_URL,
        )

    def _request(self, method: str, path: str, what: str, **kwargs) -> Dict[str, Any]:
        try:
            r = self.session.request(method, f"{self.base_url}{path}", timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            logger.error("PayPal %s request failed: %s", what, e)
            raise PaymentProviderError() from e
        if not r.ok:
            logger.error("PayPal %s failed: %s → %s", what, r.status_code, r.text)
            raise PaymentProviderError(status=r.status_code)
        return r.json()

    def get_access_token(self) -> str:
        data = self._request(
            "POST",
            "/v1/oauth2/token",
            "token",
            auth=(self.client_id, self.client_secret),
            data={"grant_type": "client_credentials"},
            headers={"Content-Type": "application/x-www-form-urlencoded"},
        )
        return data["access_token"]

    def _auth_headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.get_access_token()}",
        }

    def create_order(
        self,
        license_type: str,
        email: str,
        price: float,
        currency: str,
        item_name: str,
        item_description: str,
    ) -> Dict[str, Any]:
        value = f"{price:.2f}"
        order = {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "description": item_name,
                    "amount": {
                        "currency_code": currency,
                        "value": value,
                        "breakdown": {
                            "item_total": {"currency_code": currency, "value": value},
                        },
                    },
                    "items": [
                        {
                            "name": item_name,
                            "description": item_description,
                            "unit_amount": {"currency_code": currency, "value": value},
                            "quantity": "1",
                            "category": "DIGITAL_GOODS",
                        }
                    ],
                    # echoed back on capture; correlates payment and buyer
                    "custom_id": json.dumps({"licenseType": license_type, "email": email}),
                }
            ],
            "application_context": {
                "brand_name": self.brand_name,
                "landing_page": "NO_PREFERENCE",
                "user_action": "PAY_NOW",
                "return_url": f"{self.site_url}/payment/success",
                "cancel_url": f"{self.site_url}/payment/cancel",
            },
        }
        return self._request("POST", "/v2/checkout/orders", "create-order", headers=self._auth_headers(), json=order)

    def capture_order(self, order_id: str) -> Dict[str, Any]:
        return self._request(
            "POST",
            f"/v2/checkout/orders/{order_id}/capture",
            "capture-order",
            headers=self._auth_headers(),
        )

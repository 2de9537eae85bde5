"""
Email gateway client for customer notifications.

Sends through the storefront's HTTP email gateway. Requests are signed with
HMAC-SHA256 over the exact JSON body.
"""

import hashlib
import hmac
import json
import logging

import requests

logger = logging.getLogger(__name__)

VALID_SENDERS = ("billing", "system")


class EmailGatewayError(Exception):
    """Raised when email gateway request fails."""


class EmailGatewayClient:
    """Send emails via HTTP gateway with HMAC signature verification."""

    def __init__(self, gateway_url: str, api_key: str, hmac_secret: str, timeout_seconds: int = 10):
        """
        Initialize with gateway credentials.

        Raises:
            ValueError: If any credential is empty
        """
        if not gateway_url:
            raise ValueError("gateway_url is required")
        if not api_key:
            raise ValueError("api_key is required")
        if not hmac_secret:
            raise ValueError("hmac_secret is required")

        self.gateway_url = gateway_url
        self.api_key = api_key
        self.hmac_secret = hmac_secret
        self.timeout_seconds = timeout_seconds

    def _signature(self, body: str) -> str:
        return hmac.new(
            self.hmac_secret.encode("utf-8"),
            body.encode("utf-8"),
            hashlib.sha256,
        ).hexdigest()

    def _post(self, payload: dict) -> None:
        """
        Sign payload and POST it to the gateway.

        Raises:
            EmailGatewayError: On connection failure, bad response or gateway rejection
        """
        body = json.dumps(payload, separators=(",", ":"))
        headers = {
            "Content-Type": "application/json",
            "X-API-Key": self.api_key,
            "X-Signature": self._signature(body),
        }

        try:
            response = requests.post(
                self.gateway_url,
                data=body,
                headers=headers,
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Email gateway connection failed: {e}")
            raise EmailGatewayError(f"Connection failed: {e}") from e

        try:
            response_data = response.json()
        except ValueError:
            logger.error(f"Email gateway returned invalid JSON: {response.text}")
            raise EmailGatewayError("Invalid response from gateway")

        if response.status_code != 200 or not response_data.get("success"):
            error_msg = response_data.get("message", "Unknown error")
            logger.error(f"Email gateway error: {error_msg}")
            raise EmailGatewayError(f"Gateway error: {error_msg}")

    def send_email(self, to: str, subject: str, body: str, sender: str = "billing") -> None:
        """
        Send a plain-text email.

        Raises:
            ValueError: If recipient is empty or sender is not one of VALID_SENDERS
            EmailGatewayError: On gateway failure
        """
        if not to:
            raise ValueError("Recipient address is required")
        if sender not in VALID_SENDERS:
            raise ValueError(f"sender must be one of {VALID_SENDERS}, got '{sender}'")

        self._post({
            "type": "custom",
            "email": to,
            "subject": subject,
            "body": body,
            "sender": sender,
        })
        logger.info(f"Email sent to {to}: {subject}")

    def send_invoice_ready(
        self,
        to: str,
        customer_name: str,
        invoice_number: str,
        order_number: str,
        store_name: str,
    ) -> None:
        """Tell a customer their tax invoice can be downloaded from their account."""
        greeting = f"Hi {customer_name}," if customer_name.strip() else "Hello,"
        body = (
            f"{greeting}\n\n"
            f"The tax invoice {invoice_number} for your order {order_number} is now "
            f"available. You can download it from the order details page in your account.\n\n"
            f"Thank you for shopping with {store_name}."
        )
        self.send_email(
            to=to,
            subject=f"Your invoice for order {order_number}",
            body=body,
        )

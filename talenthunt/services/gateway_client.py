# talenthunt/services/gateway_client.py
import logging

import httpx

from talenthunt.config import settings

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    pass


class GatewayClient:
    """Fetches a transaction's current state straight from the gateway."""

    def __init__(self, verify_url: str = None, secret_key: str = None, timeout: float = 15.0):
        self.verify_url = (verify_url or settings.PAYMENT_VERIFY_URL).rstrip("/")
        self.secret_key = secret_key if secret_key is not None else settings.PAYSTACK_SECRET_KEY
        self.timeout = timeout

    def fetch_transaction(self, reference: str) -> dict:
        headers = {"Authorization": f"Bearer {self.secret_key}"}
        url = f"{self.verify_url}/{reference}"

        try:
            response = httpx.get(url, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            body = response.json()
        except httpx.RequestError as e:
            logger.error(f"[Gateway] Request error for {reference}: {e}")
            raise GatewayError(f"request failed: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.error(f"[Gateway] HTTP {e.response.status_code} for {reference}")
            raise GatewayError(f"gateway returned HTTP {e.response.status_code}") from e
        except ValueError as e:
            logger.error(f"[Gateway] Invalid JSON for {reference}: {e}")
            raise GatewayError("gateway returned invalid JSON") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict):
            raise GatewayError("gateway response has no transaction data")
        return data


_client = GatewayClient()


def get_gateway_client() -> GatewayClient:
    return _client

"""
Outbound collaborators: payment gateway, geo-IP lookup and translation.

Every call carries an explicit timeout. The gateway raises UpstreamError so the
caller can decide on a fallback; the enrichment clients are best-effort and
return None on any failure.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from config.settings import settings
from services.errors import UpstreamError

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """Order creation against the Razorpay REST API."""

    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.key_id = key_id
        self.key_secret = key_secret
        self.base_url = (base_url or settings.razorpay_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.gateway_timeout_seconds
        self._transport = transport

    @classmethod
    def from_settings(cls) -> Optional["RazorpayGateway"]:
        """Build a gateway from settings, or None when credentials are missing (demo mode)."""
        if not settings.razorpay_key_id or not settings.razorpay_key_secret:
            return None
        return cls(settings.razorpay_key_id, settings.razorpay_key_secret)

    async def create_order(
        self,
        amount: int,
        currency: str,
        receipt: str,
        description: str,
    ) -> Dict[str, Any]:
        """
        Create a gateway order.

        Returns:
            Dict with at least id, amount and currency

        Raises:
            UpstreamError: on transport failure, timeout, non-2xx status or a malformed body
        """
        payload = {
            "amount": amount,
            "currency": currency,
            "receipt": receipt,
            "notes": {"description": description},
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.post(
                    f"{self.base_url}/orders",
                    json=payload,
                    auth=(self.key_id, self.key_secret),
                )
                res.raise_for_status()
                data = res.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError("razorpay", f"status {e.response.status_code}") from e
        except (httpx.RequestError, ValueError) as e:
            raise UpstreamError("razorpay", str(e) or type(e).__name__) from e

        if not isinstance(data, dict) or not data.get("id"):
            raise UpstreamError("razorpay", "order response carried no id")

        return {
            "id": data["id"],
            "amount": data.get("amount", amount),
            "currency": data.get("currency", currency),
            "receipt": data.get("receipt", receipt),
        }


class GeoIPClient:
    """City lookup by IP via ip-api.com style endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.geoip_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.enrichment_timeout_seconds
        self._transport = transport

    async def city_for(self, ip: Optional[str]) -> Optional[str]:
        if not ip:
            return None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.get(f"{self.base_url}/{ip}")
                res.raise_for_status()
                city = res.json().get("city")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning(f"Geo-IP lookup failed for {ip}: {e}")
            return None
        return city or None


class TranslationClient:
    """LibreTranslate-compatible translation."""

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.translate_url
        self.api_key = api_key if api_key is not None else settings.translate_key
        self.timeout = timeout if timeout is not None else settings.enrichment_timeout_seconds
        self._transport = transport

    async def translate(self, text: str, target_lang: str) -> Optional[str]:
        payload = {"q": text, "source": "auto", "target": target_lang, "format": "text"}
        if self.api_key:
            payload["api_key"] = self.api_key
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                res = await client.post(self.url, json=payload)
                res.raise_for_status()
                translated = res.json().get("translatedText")
        except (httpx.HTTPError, ValueError, AttributeError) as e:
            logger.warning(f"Translation to {target_lang} failed: {e}")
            return None
        return translated or None

# ticketing/services/paystack.py
import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional
from urllib.parse import quote

import httpx
import structlog
from pydantic import BaseModel

from ticketing import config
from ticketing.exceptions import (
    GatewayInitFailed,
    GatewayVerifyFailed,
    InvalidSignature,
    MissingCredential,
)

logger = structlog.get_logger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


class VerifyResult(BaseModel):
    paid: bool
    data: Dict[str, Any] = {}


class PaymentGateway(ABC):
    @abstractmethod
    async def init_session(
        self,
        total_minor: int,
        currency: str,
        buyer_email: str,
        reference: str,
        callback_url: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Create a hosted payment page and return its authorization URL."""

    @abstractmethod
    async def verify(self, reference: str) -> VerifyResult:
        ...

    @abstractmethod
    def validate_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        """Raise InvalidSignature unless ``signature`` authenticates ``raw_body``."""


class PaystackGateway(PaymentGateway):
    def __init__(
        self,
        secret_key: str = config.PAYSTACK_SECRET_KEY,
        base_url: str = config.PAYSTACK_BASE_URL,
        timeout: float = config.PAYSTACK_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url
        self.timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        if not self.secret_key:
            raise MissingCredential()
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self.secret_key}"},
        )

    async def init_session(self, total_minor, currency, buyer_email, reference, callback_url, metadata=None):
        payload = {
            "email": buyer_email,
            "amount": total_minor,  # already minor units (kobo)
            "currency": currency,
            "reference": reference,
            "callback_url": callback_url,
            "metadata": metadata or {},
        }
        client = self._client()
        try:
            async with client:
                response = await client.post("/transaction/initialize", json=payload)
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError("unexpected response body")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("paystack_init_failed", reference=reference, error=str(exc))
            raise GatewayInitFailed() from exc

        authorization_url = (body.get("data") or {}).get("authorization_url")
        if response.is_error or not body.get("status") or not authorization_url:
            logger.warning(
                "paystack_init_rejected",
                reference=reference,
                status_code=response.status_code,
                message=body.get("message"),
            )
            raise GatewayInitFailed(body.get("message") or GatewayInitFailed.message)

        logger.info("paystack_session_created", reference=reference, amount=total_minor, currency=currency)
        return authorization_url

    async def verify(self, reference: str) -> VerifyResult:
        client = self._client()
        try:
            async with client:
                response = await client.get(f"/transaction/verify/{quote(reference, safe='')}")
            body = response.json()
            if not isinstance(body, dict):
                raise ValueError("unexpected response body")
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("paystack_verify_failed", reference=reference, error=str(exc))
            raise GatewayVerifyFailed() from exc

        if response.is_error or not body.get("status"):
            logger.warning(
                "paystack_verify_rejected",
                reference=reference,
                status_code=response.status_code,
                message=body.get("message"),
            )
            raise GatewayVerifyFailed(body.get("message") or GatewayVerifyFailed.message)

        data = body.get("data") or {}
        paid = data.get("status") == "success"
        logger.info("paystack_verified", reference=reference, paid=paid, gateway_status=data.get("status"))
        return VerifyResult(paid=paid, data=data)

    def validate_signature(self, raw_body: bytes, signature: Optional[str]) -> None:
        if not self.secret_key:
            raise MissingCredential()
        if not signature:
            raise InvalidSignature()
        digest = hmac.new(self.secret_key.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
        if not hmac.compare_digest(digest.encode("ascii"), signature.encode("utf-8")):
            raise InvalidSignature()

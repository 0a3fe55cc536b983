import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol

import httpx
from loguru import logger

from app.core.config import settings


@dataclass
class ChargeRequest:
    source_id: str
    amount: int
    currency: str
    idempotency_key: str
    reference_id: str
    verification_token: Optional[str] = None
    note: Optional[str] = None


@dataclass
class ChargeResult:
    id: str
    status: str
    amount: int
    currency: str
    created_at: Optional[str] = None


class ProcessorError(Exception):
    pass


class ProcessorDeclined(ProcessorError):
    """The processor answered and refused the charge"""

    def __init__(self, errors: List[Dict[str, Any]]):
        self.errors = errors or []
        super().__init__(self.code or "PAYMENT_FAILED")

    @property
    def code(self) -> Optional[str]:
        return self.errors[0].get("code") if self.errors else None


class ProcessorUnavailable(ProcessorError):
    """No usable answer: timeout, connection failure or a 5xx after retries"""


class PaymentProcessor(Protocol):
    async def create_payment(self, request: ChargeRequest) -> ChargeResult:
        ...


@dataclass
class SquarePaymentsClient:
    """
    Minimal client for Square's Create Payment endpoint.

    Transport failures are retried with the same idempotency key, so Square
    deduplicates them into a single charge.
    """
    access_token: str
    location_id: str
    base_url: str = "https://connect.squareupsandbox.com"
    api_version: str = "2024-07-17"
    timeout: float = 15.0
    max_retries: int = 2
    retry_delay: float = 0.5
    transport: Optional[httpx.AsyncBaseTransport] = field(default=None, repr=False)

    def _payload(self, request: ChargeRequest) -> Dict[str, Any]:
        payload = {
            "source_id": request.source_id,
            "idempotency_key": request.idempotency_key,
            "amount_money": {"amount": request.amount, "currency": request.currency},
            "autocomplete": True,
            "location_id": self.location_id,
            "reference_id": request.reference_id,
        }
        if request.note:
            payload["note"] = request.note
        if request.verification_token:
            payload["verification_token"] = request.verification_token
        return payload

    async def create_payment(self, request: ChargeRequest) -> ChargeResult:
        headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Square-Version": self.api_version,
            "Content-Type": "application/json",
        }
        payload = self._payload(request)
        delay = self.retry_delay

        for attempt in range(self.max_retries + 1):
            try:
                async with httpx.AsyncClient(
                        base_url=self.base_url,
                        timeout=self.timeout,
                        transport=self.transport,
                ) as client:
                    response = await client.post("/v2/payments", json=payload, headers=headers)
            except httpx.TransportError as e:
                logger.warning(
                    f"Square request for {request.reference_id} failed "
                    f"(attempt {attempt + 1}/{self.max_retries + 1}): {type(e).__name__}"
                )
            else:
                if response.status_code < 500 and response.status_code != 429:
                    return self._parse(response)
                logger.warning(
                    f"Square returned {response.status_code} for {request.reference_id} "
                    f"(attempt {attempt + 1}/{self.max_retries + 1})"
                )

            if attempt < self.max_retries:
                await asyncio.sleep(delay)
                delay *= 2

        raise ProcessorUnavailable(f"Square did not answer for {request.reference_id}")

    @staticmethod
    def _parse(response: httpx.Response) -> ChargeResult:
        try:
            data = response.json()
        except ValueError:
            raise ProcessorUnavailable(f"Square returned a non-JSON body ({response.status_code})")

        errors = data.get("errors") or []
        payment = data.get("payment")
        if response.is_error or errors or not payment:
            raise ProcessorDeclined(errors)

        if payment.get("status") in ("FAILED", "CANCELED"):
            raise ProcessorDeclined([{"code": "PAYMENT_FAILED", "category": "PAYMENT_METHOD_ERROR"}])

        money = payment.get("total_money") or payment.get("amount_money") or {}
        return ChargeResult(
            id=payment["id"],
            status=payment.get("status", "COMPLETED"),
            amount=int(money.get("amount", 0)),
            currency=money.get("currency", ""),
            created_at=payment.get("created_at"),
        )


def get_payment_processor() -> Optional[PaymentProcessor]:
    """FastAPI dependency: None when Square credentials are not configured"""
    if not settings.square_configured:
        return None
    return SquarePaymentsClient(
        access_token=settings.SQUARE_ACCESS_TOKEN,
        location_id=settings.SQUARE_LOCATION_ID,
        base_url=settings.square_base_url,
        api_version=settings.SQUARE_API_VERSION,
        timeout=settings.SQUARE_TIMEOUT_SECONDS,
        max_retries=settings.SQUARE_MAX_RETRIES,
    )

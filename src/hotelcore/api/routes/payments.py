"""Payment gateway callback.

POST /payments/callback

The gateway signs the raw body with HMAC-SHA256 using
PAYMENT_CALLBACK_SECRET and sends X-Gateway-Signature: sha256=<hex>.
Unsigned or mis-signed callbacks are rejected before anything is parsed.
"""

from __future__ import annotations

import hashlib
import hmac

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from hotelcore.api.errors import domain_errors
from hotelcore.config import get_settings
from hotelcore.domain.payments import PaymentResult, apply_payment_result
from hotelcore.observability.logging import get_logger
from hotelcore.observability.redaction import safe_log_context

router = APIRouter(prefix="/payments", tags=["payments"])

logger = get_logger(__name__)

SIGNATURE_HEADER = "X-Gateway-Signature"


class SignatureVerificationError(Exception):
    """Raised when a callback signature is missing or wrong."""


class PaymentCallback(BaseModel):
    model_config = ConfigDict(extra="ignore")

    booking_id: str
    transaction_id: str = Field(..., min_length=1)
    amount_cents: int = Field(..., ge=0)
    currency: str = Field(..., min_length=3, max_length=3)
    status: str


def verify_signature(payload_bytes: bytes, signature_header: str, secret: str) -> None:
    """Check a sha256=<hex> HMAC signature of the raw body.

    Raises:
        SignatureVerificationError: If the signature is missing, malformed
            or does not match.
    """
    if not secret:
        raise SignatureVerificationError("callback secret not configured")
    if not signature_header:
        raise SignatureVerificationError("missing signature header")
    if not signature_header.startswith("sha256="):
        raise SignatureVerificationError("invalid signature format")

    computed = hmac.new(secret.encode("utf-8"), payload_bytes, hashlib.sha256).hexdigest()
    if not hmac.compare_digest(computed, signature_header[len("sha256="):]):
        raise SignatureVerificationError("signature mismatch")


@router.post("/callback")
async def payment_callback(request: Request) -> dict:
    raw = await request.body()
    try:
        verify_signature(
            raw,
            request.headers.get(SIGNATURE_HEADER, ""),
            get_settings().payment_callback_secret,
        )
    except SignatureVerificationError as exc:
        logger.warning(
            "payment callback rejected",
            extra={"extra_fields": safe_log_context(reason=str(exc))},
        )
        raise HTTPException(status_code=401, detail="Invalid signature")

    try:
        callback = PaymentCallback.model_validate_json(raw)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid payload")

    result = PaymentResult(**callback.model_dump())
    with domain_errors():
        return apply_payment_result(result)

"""2Checkout (Verifone) ConvertPlus buy-link signing and INS webhook verification.

Both directions hash a canonical serialization of the parameters: keys are
sorted lexicographically and every value is written as its UTF-8 byte length
followed by the value itself ("3USD"). Buy links are signed with HMAC-SHA256
over that string; INS notifications carry an MD5 of the string followed by
the INS secret word in their ``HASH`` field.
"""

from __future__ import annotations

import enum
import hashlib
import hmac
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional
from urllib.parse import urlencode

from ..core.exceptions import PaymentLinkError

logger = logging.getLogger(__name__)

SIGNATURE_FIELD = "signature"
HASH_FIELD = "HASH"

SUCCESS_STATUSES = frozenset({"COMPLETE", "AUTHRECEIVED", "PAYMENT_AUTHORIZED"})
PENDING_STATUSES = frozenset({"PENDING", "PENDING_APPROVAL", "PAYMENT_RECEIVED"})
FAILED_STATUSES = frozenset({"CANCELED", "REFUND", "REVERSED", "FRAUD"})


class PaymentOutcome(str, enum.Enum):
    SUCCESS = "success"
    PENDING = "pending"
    FAILED = "failed"
    UNRESOLVED = "unresolved"


@dataclass
class LineItem:
    name: str
    price: float
    quantity: int = 1


@dataclass
class PaymentLinkRequest:
    invoice_id: str
    items: List[LineItem] = field(default_factory=list)
    currency: str = "USD"
    return_url: str = ""
    cancel_url: str = ""


def _item_suffix(index: int) -> str:
    return "" if index == 0 else str(index)


def build_payment_params(request: PaymentLinkRequest, seller_id: str) -> Dict[str, str]:
    """Flat, unsigned parameter map for a dynamic-product buy link."""
    if not request.items:
        raise PaymentLinkError("At least one product is required")

    params: Dict[str, str] = {
        "merchant": seller_id,
        "dynamic": "1",
        "currency": request.currency,
        "return-url": request.return_url,
        "return-type": "redirect",
        "cancel-url": request.cancel_url,
        "merchant-order-id": str(request.invoice_id),
    }
    for index, item in enumerate(request.items):
        name = (item.name or "").strip()
        if not name:
            raise PaymentLinkError(f"Product at index {index} must have a name")
        suffix = _item_suffix(index)
        params[f"prod{suffix}"] = name
        params[f"price{suffix}"] = f"{float(item.price):.2f}"
        params[f"qty{suffix}"] = str(int(item.quantity))
        params[f"type{suffix}"] = "PRODUCT"
    return params


def serialize_for_signature(params: Mapping[str, Optional[str]]) -> str:
    parts = []
    for key in sorted(params):
        value = "" if params[key] is None else str(params[key])
        parts.append(f"{len(value.encode('utf-8'))}{value}")
    return "".join(parts)


def sign_params(params: Mapping[str, str], secret: str) -> str:
    unsigned = {k: v for k, v in params.items() if k != SIGNATURE_FIELD}
    message = serialize_for_signature(unsigned).encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def generate_payment_link(
    request: PaymentLinkRequest,
    seller_id: Optional[str],
    secret: Optional[str],
    checkout_url: str = "https://secure.2checkout.com/checkout/buy",
) -> str:
    if not seller_id or not secret:
        raise PaymentLinkError("2Checkout credentials not configured")

    params = build_payment_params(request, seller_id)
    params[SIGNATURE_FIELD] = sign_params(params, secret)
    logger.info(
        f"Generated 2Checkout link for invoice {request.invoice_id} "
        f"({len(request.items)} item(s), {request.currency})"
    )
    return f"{checkout_url}?{urlencode(params)}"


def verify_payment_link_signature(params: Mapping[str, str], secret: str) -> bool:
    received = params.get(SIGNATURE_FIELD)
    if not received or not secret:
        return False
    expected = sign_params(params, secret)
    return hmac.compare_digest(expected.encode("utf-8"), received.lower().encode("utf-8"))


def compute_ins_hash(payload: Mapping[str, Optional[str]], secret: str) -> str:
    fields = {k: v for k, v in payload.items() if k != HASH_FIELD}
    return hashlib.md5((serialize_for_signature(fields) + secret).encode("utf-8")).hexdigest()


def verify_ins_signature(payload: Mapping[str, Optional[str]], secret: Optional[str]) -> bool:
    """True only when the payload's HASH matches. Never raises."""
    received = payload.get(HASH_FIELD)
    if not received or not secret:
        return False
    try:
        expected = compute_ins_hash(payload, secret)
    except (TypeError, ValueError) as e:
        logger.warning(f"Could not hash INS payload: {e}")
        return False
    return hmac.compare_digest(expected.encode("utf-8"), str(received).lower().encode("utf-8"))


def classify_payment_status(status: Optional[str]) -> PaymentOutcome:
    normalized = (status or "").strip().upper()
    if normalized in SUCCESS_STATUSES:
        return PaymentOutcome.SUCCESS
    if normalized in PENDING_STATUSES:
        return PaymentOutcome.PENDING
    if normalized in FAILED_STATUSES:
        return PaymentOutcome.FAILED
    return PaymentOutcome.UNRESOLVED

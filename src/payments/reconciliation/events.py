"""Webhook event variants.

The processor's JSON body is parsed (only after its signature has been
verified) into one of three explicit variants. Unknown shapes never reach the
coordinator as half-populated dictionaries: either a variant can be built from
the body or ``MalformedEvent`` is raised.

Wire shape (Razorpay):

    {
      "event": "payment.captured",
      "payload": {
        "payment": {"entity": {"id": "pay_X", "order_id": "order_Y",
                               "notes": {"order_id": "<local order id>"},
                               "error_description": null}},
        "order": {"entity": {"id": "order_Y", "notes": {...}}}
      }
    }
"""

from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

SUCCEEDED_KINDS = frozenset({"payment.captured", "order.paid"})
FAILED_KINDS = frozenset({"payment.failed"})


class MalformedEvent(Exception):
    """The body cannot be mapped to a local order."""


# ---------------------------------------------------------------------------
# Wire envelope
# ---------------------------------------------------------------------------
class _Entity(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    order_id: str | None = None
    # Razorpay sends an empty list when an entity has no notes
    notes: dict[str, Any] | list[Any] | None = None
    error_description: str | None = None
    error_reason: str | None = None


class _EntityWrapper(BaseModel):
    model_config = ConfigDict(extra="ignore")

    entity: _Entity = Field(default_factory=_Entity)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    payment: _EntityWrapper | None = None
    order: _EntityWrapper | None = None


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="ignore")

    event: str
    payload: _Payload = Field(default_factory=_Payload)


# ---------------------------------------------------------------------------
# Variants
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PaymentSucceeded:
    kind: str
    order_id: str
    remote_payment_id: str
    remote_order_id: str


@dataclass(frozen=True)
class PaymentFailed:
    kind: str
    order_id: str
    remote_payment_id: str | None
    reason: str


@dataclass(frozen=True)
class UnrecognizedEvent:
    kind: str
    order_id: str


WebhookEvent = PaymentSucceeded | PaymentFailed | UnrecognizedEvent


def parse_event(raw_body: bytes) -> WebhookEvent:
    try:
        envelope = _Envelope.model_validate_json(raw_body)
    except PydanticValidationError as exc:
        raise MalformedEvent("Body is not a recognizable webhook envelope") from exc

    payment = envelope.payload.payment.entity if envelope.payload.payment else _Entity()
    order = envelope.payload.order.entity if envelope.payload.order else _Entity()

    order_id = _note(payment, "order_id") or _note(order, "order_id")
    if not order_id:
        raise MalformedEvent("Event carries no order_id in its notes")

    if envelope.event in SUCCEEDED_KINDS:
        remote_order_id = order.id or payment.order_id
        if not payment.id or not remote_order_id:
            raise MalformedEvent("Payment event is missing processor identifiers")
        return PaymentSucceeded(
            kind=envelope.event,
            order_id=order_id,
            remote_payment_id=payment.id,
            remote_order_id=remote_order_id,
        )

    if envelope.event in FAILED_KINDS:
        return PaymentFailed(
            kind=envelope.event,
            order_id=order_id,
            remote_payment_id=payment.id,
            reason=payment.error_description or payment.error_reason or "Unknown failure",
        )

    return UnrecognizedEvent(kind=envelope.event, order_id=order_id)


def _note(entity: _Entity, key: str) -> str | None:
    if not isinstance(entity.notes, dict):
        return None
    value = entity.notes.get(key)
    if value is None:
        return None
    return str(value)

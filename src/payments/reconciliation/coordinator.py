"""Reconciliation Coordinator: drives an order from checkout to confirmed payment.

Flow:
    1. initiate            → order persisted in CREATED
    2. create_remote_intent → processor intent created, ref stored, PAYMENT_INTENT_CREATED
    3. handle_webhook_event → signature checked, event parsed, order marked PAID once
    4. cancel              → CANCELLED from CREATED / PAYMENT_INTENT_CREATED

Three parties fail independently here (the client, the processor and webhook
delivery). Correctness rests on two rules: the order id is the only
correlation key, and the transition to PAID is a single conditional write in
the Order Store. Processors redeliver webhooks, so a repeated confirmation is
a no-op rather than an error.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from ordering.order.order import (
    CANCELLABLE_STATES,
    Order,
    OrderStatus,
    PaymentConfirmation,
)
from ordering.order.store import OrderStore, PaidResult
from payments.gateway.port import PaymentGateway
from payments.reconciliation.events import (
    MalformedEvent,
    PaymentFailed,
    PaymentSucceeded,
    UnrecognizedEvent,
    parse_event,
)
from payments.reconciliation.signature import SignatureCheck, SignatureVerifier
from shared.exceptions import Forbidden, InvalidTransition, ObjectNotFoundError, OrderAlreadyPaid

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class RemoteIntent:
    """What the client-side payment widget needs to collect the payment."""

    order_id: str
    remote_intent_id: str
    public_key: str
    amount_minor: int
    currency: str


class WebhookResult(Enum):
    REJECTED_SIGNATURE = "rejected_signature"
    REJECTED_MALFORMED = "rejected_malformed"
    PAID = "paid"
    ALREADY_PAID = "already_paid"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"
    FAILURE_RECORDED = "failure_recorded"
    IGNORED = "ignored"


_REJECTED = frozenset({WebhookResult.REJECTED_SIGNATURE, WebhookResult.REJECTED_MALFORMED})


@dataclass(frozen=True)
class WebhookOutcome:
    result: WebhookResult
    order_id: str | None = None

    @property
    def acknowledged(self) -> bool:
        """Whether the processor should receive a success response."""
        return self.result not in _REJECTED


class ReconciliationCoordinator:
    def __init__(
        self,
        store: OrderStore,
        gateway: PaymentGateway,
        verifier: SignatureVerifier,
        currency: str = "INR",
    ) -> None:
        self.store = store
        self.gateway = gateway
        self.verifier = verifier
        self.currency = currency

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def initiate(self, owner_id, line_items, shipping_destination, expected_total=None) -> str:
        """Validate checkout data and persist a new order. Returns the order id."""
        order = Order.create(
            owner_id=owner_id,
            line_items=line_items,
            shipping_destination=shipping_destination,
            currency=self.currency,
            expected_total=expected_total,
        )
        order_id = self.store.create(order)
        logger.info(
            "Order created",
            order_id=order_id,
            owner_id=order.owner_id,
            total_amount=str(order.total_amount),
            item_count=len(order.line_items),
        )
        return order_id

    def create_remote_intent(self, order_id: str, requesting_owner_id: str) -> RemoteIntent:
        """Create a processor-side payment intent for the order.

        Safe to call again after a failure or timeout: each call creates a new
        remote intent and the latest one replaces the reference on file.
        """
        order = self._owned_order(order_id, requesting_owner_id)
        self._assert_payable(order)

        amount_minor = order.total_minor
        intent = self.gateway.create_intent(
            amount_minor=amount_minor,
            currency=order.currency,
            correlation_id=order.id,
            metadata={"order_id": order.id, "owner_id": order.owner_id},
        )

        if not self.store.attach_remote_intent(order.id, intent.intent_id):
            # Paid or cancelled while the gateway call was in flight
            current = self.store.get(order.id)
            logger.warning(
                "Remote intent orphaned by concurrent status change",
                order_id=order.id,
                remote_intent_id=intent.intent_id,
                status=current.status if current else None,
            )
            self._assert_payable(current)
            raise InvalidTransition(f"Order {order.id} can no longer accept a payment intent")

        logger.info(
            "Remote payment intent created",
            order_id=order.id,
            remote_intent_id=intent.intent_id,
            amount_minor=amount_minor,
            replaced_ref=order.remote_payment_ref,
        )
        return RemoteIntent(
            order_id=order.id,
            remote_intent_id=intent.intent_id,
            public_key=intent.public_key,
            amount_minor=intent.amount_minor,
            currency=intent.currency,
        )

    def cancel(self, order_id: str, requesting_owner_id: str) -> None:
        order = self._owned_order(order_id, requesting_owner_id)
        if OrderStatus(order.status) not in CANCELLABLE_STATES:
            raise InvalidTransition(f"Cannot cancel an order in {order.status} state")

        if not self.store.mark_cancelled(order.id, order.owner_id):
            current = self.store.get(order.id)
            status = current.status if current else "unknown"
            raise InvalidTransition(f"Cannot cancel an order in {status} state")

        logger.info("Order cancelled", order_id=order.id, owner_id=order.owner_id)

    # -------------------------------------------------------------------
    # Owner-scoped reads
    # -------------------------------------------------------------------
    def get_order(self, order_id: str, requesting_owner_id: str) -> Order:
        return self._owned_order(order_id, requesting_owner_id)

    def order_history(self, owner_id: str) -> list[Order]:
        return self.store.list_by_owner(owner_id)

    # -------------------------------------------------------------------
    # Webhook
    # -------------------------------------------------------------------
    def handle_webhook_event(self, raw_body: bytes, signature_header: str | None) -> WebhookOutcome:
        """Verify, parse and apply a processor webhook.

        Only a bad signature or an unusable body is rejected. Every dispatched
        event is acknowledged, whatever happened to the order, because the
        processor only knows how to retry and the paid transition is
        idempotent anyway.
        """
        if self.verifier.verify(raw_body, signature_header) is not SignatureCheck.VALID:
            logger.warning("Webhook signature mismatch, request rejected", body_length=len(raw_body or b""))
            return WebhookOutcome(WebhookResult.REJECTED_SIGNATURE)

        try:
            event = parse_event(raw_body)
        except MalformedEvent as exc:
            logger.warning("Webhook rejected, unusable event body", reason=str(exc))
            return WebhookOutcome(WebhookResult.REJECTED_MALFORMED)

        log = logger.bind(order_id=event.order_id, event_kind=event.kind)

        if isinstance(event, PaymentSucceeded):
            return self._apply_payment(event, signature_header, log)
        if isinstance(event, PaymentFailed):
            return self._record_failure(event, log)
        if isinstance(event, UnrecognizedEvent):
            log.info("Ignoring unhandled webhook event")
            return WebhookOutcome(WebhookResult.IGNORED, event.order_id)
        raise TypeError(f"Unhandled webhook event variant {type(event).__name__}")

    def _apply_payment(self, event: PaymentSucceeded, signature: str, log) -> WebhookOutcome:
        order = self.store.get(event.order_id)
        if order is None:
            log.error("Payment confirmed for unknown order", remote_payment_id=event.remote_payment_id)
            return WebhookOutcome(WebhookResult.NOT_FOUND, event.order_id)

        confirmation = PaymentConfirmation(
            remote_payment_id=event.remote_payment_id,
            remote_order_id=event.remote_order_id,
            signature=signature,
        )
        result = self.store.compare_and_set_paid(order.id, order.remote_payment_ref, confirmation)

        if result is PaidResult.PAID:
            log.info(
                "Order marked as paid",
                remote_payment_id=event.remote_payment_id,
                remote_order_id=event.remote_order_id,
            )
            return WebhookOutcome(WebhookResult.PAID, order.id)

        if result is PaidResult.ALREADY_PAID:
            current = self.store.get(order.id)
            on_file = current.payment_confirmation if current else None
            if on_file is not None and on_file.remote_payment_id != event.remote_payment_id:
                log.error(
                    "Second payment captured for an already paid order, review for refund",
                    remote_payment_id=event.remote_payment_id,
                    confirmed_payment_id=on_file.remote_payment_id,
                )
            else:
                log.info("Duplicate payment confirmation ignored", remote_payment_id=event.remote_payment_id)
            return WebhookOutcome(WebhookResult.ALREADY_PAID, order.id)

        if result is PaidResult.NOT_FOUND:
            log.error("Payment confirmed for unknown order", remote_payment_id=event.remote_payment_id)
            return WebhookOutcome(WebhookResult.NOT_FOUND, order.id)

        log.error(
            "Payment confirmation does not match order, manual review required",
            remote_payment_id=event.remote_payment_id,
            remote_order_id=event.remote_order_id,
            remote_payment_ref=order.remote_payment_ref,
            status=order.status,
        )
        return WebhookOutcome(WebhookResult.MISMATCH, order.id)

    def _record_failure(self, event: PaymentFailed, log) -> WebhookOutcome:
        if self.store.get(event.order_id) is None:
            log.error("Payment failure reported for unknown order", remote_payment_id=event.remote_payment_id)
            return WebhookOutcome(WebhookResult.NOT_FOUND, event.order_id)

        self.store.record_payment_failure(event.order_id, event.remote_payment_id, event.reason)
        log.warning("Payment failed", remote_payment_id=event.remote_payment_id, reason=event.reason)
        return WebhookOutcome(WebhookResult.FAILURE_RECORDED, event.order_id)

    # -------------------------------------------------------------------
    # Guards
    # -------------------------------------------------------------------
    def _owned_order(self, order_id: str, requesting_owner_id: str) -> Order:
        order = self.store.get(order_id)
        if order is None:
            raise ObjectNotFoundError({"_entity": f"Order {order_id} not found"})
        if order.owner_id != str(requesting_owner_id):
            raise Forbidden("You are not authorized to access this order")
        return order

    @staticmethod
    def _assert_payable(order: Order | None) -> None:
        if order is None:
            raise ObjectNotFoundError({"_entity": "Order not found"})
        if order.is_settled:
            raise OrderAlreadyPaid(f"Payment for order {order.id} has already been completed")
        if OrderStatus(order.status) is OrderStatus.CANCELLED:
            raise InvalidTransition(f"Order {order.id} has been cancelled")

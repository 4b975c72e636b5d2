"""Order Store: durable order storage with atomic conditional status updates.

Every status change is a single ``UPDATE ... WHERE`` guarded by the states it
may leave from, so concurrent callers (for example two deliveries of the same
webhook landing on different workers) are serialized by the database rather
than by application locks. Nothing here reads a status and then writes it back.

Rows are read back as ``Order`` aggregates. Writes go through SQLAlchemy
rather than a protean repository, since a repository save has no
compare-and-set.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker

from ordering.order.order import (
    CANCELLABLE_STATES,
    INTENT_STATES,
    PAYABLE_STATES,
    LineItem,
    Order,
    OrderStatus,
    PaymentConfirmation,
    ShippingDestination,
)
from ordering.order.records import LineItemRecord, OrderRecord, PaymentFailureRecord
from shared.exceptions import InvalidTotal


class PaidResult(Enum):
    PAID = "paid"
    ALREADY_PAID = "already_paid"
    MISMATCH = "mismatch"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class PaymentFailure:
    order_id: str
    remote_payment_id: str | None
    reason: str
    recorded_at: datetime


def _now() -> datetime:
    return datetime.now(UTC)


def _aware(value: datetime | None) -> datetime | None:
    # SQLite hands timestamps back without tzinfo
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _values(states) -> list[str]:
    return [state.value for state in states]


class OrderStore:
    def __init__(self, engine) -> None:
        self.engine = engine
        self._sessions = sessionmaker(engine, expire_on_commit=False)

    # -------------------------------------------------------------------
    # Creation and queries
    # -------------------------------------------------------------------
    def create(self, order: Order) -> str:
        """Insert a new order in CREATED state and return its id."""
        items = list(order.line_items)
        destination = order.shipping_destination
        if not items or order.total_minor != sum(item.subtotal_minor for item in items):
            raise InvalidTotal({"total_amount": ["Total amount does not match line items"]})

        now = _now()
        record = OrderRecord(
            order_id=str(order.id),
            owner_id=str(order.owner_id),
            status=OrderStatus.CREATED.value,
            total_minor=order.total_minor,
            currency=order.currency,
            ship_line1=destination.line1,
            ship_line2=destination.line2,
            ship_city=destination.city,
            ship_region=destination.region,
            ship_postal_code=destination.postal_code,
            ship_country=destination.country,
            ship_landmark=destination.landmark,
            created_at=now,
            updated_at=now,
            line_items=[
                LineItemRecord(
                    position=position,
                    product_ref=item.product_ref,
                    title=item.title,
                    unit_price_minor=item.unit_price_minor,
                    quantity=item.quantity,
                )
                for position, item in enumerate(items)
            ],
        )
        with self._sessions.begin() as session:
            session.add(record)
        return record.order_id

    def get(self, order_id: str) -> Order | None:
        with self._sessions() as session:
            record = session.scalars(select(OrderRecord).where(OrderRecord.order_id == order_id)).one_or_none()
            return _to_order(record) if record is not None else None

    def list_by_owner(self, owner_id: str) -> list[Order]:
        """Return the owner's orders, newest first."""
        with self._sessions() as session:
            records = session.scalars(
                select(OrderRecord)
                .where(OrderRecord.owner_id == owner_id)
                .order_by(OrderRecord.created_at.desc(), OrderRecord.pk.desc())
            ).all()
            return [_to_order(record) for record in records]

    # -------------------------------------------------------------------
    # Conditional transitions
    # -------------------------------------------------------------------
    def compare_and_set_paid(
        self,
        order_id: str,
        expected_remote_ref: str | None,
        confirmation: PaymentConfirmation,
    ) -> PaidResult:
        """Mark the order paid if, and only if, it is still payable under ``expected_remote_ref``.

        The confirmation is written at most once. A repeated call for an order
        that already carries a confirmation reports ALREADY_PAID.
        """
        if not expected_remote_ref or confirmation.remote_order_id != expected_remote_ref:
            return PaidResult.MISMATCH if self._exists(order_id) else PaidResult.NOT_FOUND

        now = _now()
        with self._sessions.begin() as session:
            result = session.execute(
                update(OrderRecord)
                .where(
                    OrderRecord.order_id == order_id,
                    OrderRecord.remote_payment_ref == expected_remote_ref,
                    OrderRecord.status.in_(_values(PAYABLE_STATES)),
                    OrderRecord.confirmed_payment_id.is_(None),
                )
                .values(
                    status=OrderStatus.PAID.value,
                    confirmed_payment_id=confirmation.remote_payment_id,
                    confirmed_remote_order_id=confirmation.remote_order_id,
                    confirmation_signature=confirmation.signature,
                    paid_at=now,
                    updated_at=now,
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 1:
                return PaidResult.PAID

            current = session.execute(
                select(OrderRecord.confirmed_payment_id).where(OrderRecord.order_id == order_id)
            ).one_or_none()

        if current is None:
            return PaidResult.NOT_FOUND
        if current.confirmed_payment_id is not None:
            return PaidResult.ALREADY_PAID
        return PaidResult.MISMATCH

    def attach_remote_intent(self, order_id: str, remote_ref: str) -> bool:
        """Record a freshly created remote intent, replacing any earlier one."""
        with self._sessions.begin() as session:
            result = session.execute(
                update(OrderRecord)
                .where(
                    OrderRecord.order_id == order_id,
                    OrderRecord.status.in_(_values(INTENT_STATES)),
                )
                .values(
                    status=OrderStatus.PAYMENT_INTENT_CREATED.value,
                    remote_payment_ref=remote_ref,
                    updated_at=_now(),
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def mark_cancelled(self, order_id: str, owner_id: str) -> bool:
        with self._sessions.begin() as session:
            result = session.execute(
                update(OrderRecord)
                .where(
                    OrderRecord.order_id == order_id,
                    OrderRecord.owner_id == owner_id,
                    OrderRecord.status.in_(_values(CANCELLABLE_STATES)),
                )
                .values(status=OrderStatus.CANCELLED.value, updated_at=_now())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    # -------------------------------------------------------------------
    # Payment failure audit trail
    # -------------------------------------------------------------------
    def record_payment_failure(self, order_id: str, remote_payment_id: str | None, reason: str) -> None:
        with self._sessions.begin() as session:
            session.add(
                PaymentFailureRecord(
                    order_id=order_id,
                    remote_payment_id=remote_payment_id,
                    reason=reason,
                    recorded_at=_now(),
                )
            )

    def payment_failures(self, order_id: str) -> list[PaymentFailure]:
        with self._sessions() as session:
            records = session.scalars(
                select(PaymentFailureRecord)
                .where(PaymentFailureRecord.order_id == order_id)
                .order_by(PaymentFailureRecord.id)
            ).all()
            return [
                PaymentFailure(
                    order_id=record.order_id,
                    remote_payment_id=record.remote_payment_id,
                    reason=record.reason,
                    recorded_at=_aware(record.recorded_at),
                )
                for record in records
            ]

    def _exists(self, order_id: str) -> bool:
        with self._sessions() as session:
            found = session.scalar(select(OrderRecord.pk).where(OrderRecord.order_id == order_id))
            return found is not None


def _to_order(record: OrderRecord) -> Order:
    confirmation = None
    if record.confirmed_payment_id is not None:
        confirmation = PaymentConfirmation(
            remote_payment_id=record.confirmed_payment_id,
            remote_order_id=record.confirmed_remote_order_id,
            signature=record.confirmation_signature,
        )

    return Order(
        id=record.order_id,
        owner_id=record.owner_id,
        line_items=[
            LineItem(
                product_ref=item.product_ref,
                title=item.title,
                unit_price_minor=item.unit_price_minor,
                quantity=item.quantity,
            )
            for item in record.line_items
        ],
        total_minor=record.total_minor,
        currency=record.currency,
        shipping_destination=ShippingDestination(
            line1=record.ship_line1,
            line2=record.ship_line2,
            city=record.ship_city,
            region=record.ship_region,
            postal_code=record.ship_postal_code,
            country=record.ship_country,
            landmark=record.ship_landmark,
        ),
        status=record.status,
        remote_payment_ref=record.remote_payment_ref,
        payment_confirmation=confirmation,
        paid_at=_aware(record.paid_at),
        created_at=_aware(record.created_at),
        updated_at=_aware(record.updated_at),
    )

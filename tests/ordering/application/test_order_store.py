"""Tests for the Order Store: persistence and conditional transitions."""

from decimal import Decimal

import pytest
from helpers import make_destination, make_items
from ordering.order.order import Order, OrderStatus, PaymentConfirmation
from ordering.order.records import OrderRecord
from ordering.order.store import PaidResult
from shared.exceptions import InvalidTotal
from sqlalchemy import update


def _new_order(owner_id="user-001"):
    return Order.create(
        owner_id=owner_id,
        line_items=make_items(),
        shipping_destination=make_destination(),
        currency="INR",
    )


def _lines(order):
    return [(item.product_ref, item.title, item.unit_price, item.quantity) for item in order.line_items]


def _force_status(engine, order_id, status):
    with engine.begin() as conn:
        conn.execute(update(OrderRecord).where(OrderRecord.order_id == order_id).values(status=status.value))


def _confirmation(remote_order_id="order_R1", payment_id="pay_001"):
    return PaymentConfirmation(
        remote_payment_id=payment_id,
        remote_order_id=remote_order_id,
        signature="sig",
    )


class TestCreateAndQuery:
    def test_create_returns_id(self, store):
        order = _new_order()
        assert store.create(order) == order.id

    def test_round_trip(self, store):
        order = _new_order()
        store.create(order)

        stored = store.get(order.id)
        assert stored.owner_id == "user-001"
        assert stored.status == OrderStatus.CREATED.value
        assert stored.total_amount == Decimal("2000.00")
        assert stored.currency == "INR"
        assert _lines(stored) == _lines(order)
        assert stored.shipping_destination == order.shipping_destination
        assert stored.created_at is not None
        assert stored.created_at.tzinfo is not None

    def test_get_unknown_returns_none(self, store):
        assert store.get("missing") is None

    def test_inconsistent_total_rejected(self, store):
        order = _new_order()
        order.total_minor = 100
        with pytest.raises(InvalidTotal):
            store.create(order)
        assert store.get(order.id) is None

    def test_list_by_owner_newest_first(self, store):
        first = _new_order()
        second = _new_order()
        other = _new_order(owner_id="user-002")
        for order in (first, second, other):
            store.create(order)

        history = store.list_by_owner("user-001")
        assert [order.id for order in history] == [second.id, first.id]

    def test_list_by_owner_empty(self, store):
        assert store.list_by_owner("nobody") == []


class TestAttachRemoteIntent:
    def test_attach_moves_to_intent_created(self, store):
        order = _new_order()
        store.create(order)

        assert store.attach_remote_intent(order.id, "order_R1") is True
        stored = store.get(order.id)
        assert stored.status == OrderStatus.PAYMENT_INTENT_CREATED.value
        assert stored.remote_payment_ref == "order_R1"

    def test_newer_intent_replaces_ref(self, store):
        order = _new_order()
        store.create(order)
        store.attach_remote_intent(order.id, "order_R1")

        assert store.attach_remote_intent(order.id, "order_R2") is True
        assert store.get(order.id).remote_payment_ref == "order_R2"

    @pytest.mark.parametrize("status", [OrderStatus.PAID, OrderStatus.CANCELLED, OrderStatus.SHIPPED])
    def test_attach_refused_outside_payable_states(self, store, engine, status):
        order = _new_order()
        store.create(order)
        _force_status(engine, order.id, status)

        assert store.attach_remote_intent(order.id, "order_R1") is False
        assert store.get(order.id).remote_payment_ref is None

    def test_attach_unknown_order(self, store):
        assert store.attach_remote_intent("missing", "order_R1") is False


class TestCompareAndSetPaid:
    def _order_with_intent(self, store, ref="order_R1"):
        order = _new_order()
        store.create(order)
        store.attach_remote_intent(order.id, ref)
        return order

    def test_sets_paid_with_confirmation(self, store):
        order = self._order_with_intent(store)

        result = store.compare_and_set_paid(order.id, "order_R1", _confirmation())

        assert result is PaidResult.PAID
        stored = store.get(order.id)
        assert stored.status == OrderStatus.PAID.value
        assert stored.payment_confirmation == _confirmation()
        assert stored.paid_at is not None

    def test_second_call_is_already_paid(self, store):
        order = self._order_with_intent(store)
        store.compare_and_set_paid(order.id, "order_R1", _confirmation())

        result = store.compare_and_set_paid(order.id, "order_R1", _confirmation())

        assert result is PaidResult.ALREADY_PAID

    def test_confirmation_written_at_most_once(self, store):
        order = self._order_with_intent(store)
        store.compare_and_set_paid(order.id, "order_R1", _confirmation(payment_id="pay_first"))
        store.compare_and_set_paid(order.id, "order_R1", _confirmation(payment_id="pay_second"))

        assert store.get(order.id).payment_confirmation.remote_payment_id == "pay_first"

    def test_stale_expected_ref_is_mismatch(self, store):
        order = self._order_with_intent(store)
        store.attach_remote_intent(order.id, "order_R2")

        result = store.compare_and_set_paid(order.id, "order_R1", _confirmation("order_R1"))

        assert result is PaidResult.MISMATCH
        assert store.get(order.id).status == OrderStatus.PAYMENT_INTENT_CREATED.value

    def test_confirmation_for_other_remote_order_is_mismatch(self, store):
        order = self._order_with_intent(store)

        result = store.compare_and_set_paid(order.id, "order_R1", _confirmation("order_OTHER"))

        assert result is PaidResult.MISMATCH
        assert store.get(order.id).payment_confirmation is None

    def test_no_ref_on_file_is_mismatch(self, store):
        order = _new_order()
        store.create(order)

        result = store.compare_and_set_paid(order.id, None, _confirmation())

        assert result is PaidResult.MISMATCH
        assert store.get(order.id).status == OrderStatus.CREATED.value

    def test_cancelled_order_is_mismatch(self, store):
        order = self._order_with_intent(store)
        store.mark_cancelled(order.id, order.owner_id)

        result = store.compare_and_set_paid(order.id, "order_R1", _confirmation())

        assert result is PaidResult.MISMATCH
        assert store.get(order.id).status == OrderStatus.CANCELLED.value

    def test_unknown_order(self, store):
        assert store.compare_and_set_paid("missing", "order_R1", _confirmation()) is PaidResult.NOT_FOUND
        assert store.compare_and_set_paid("missing", None, _confirmation()) is PaidResult.NOT_FOUND


class TestMarkCancelled:
    @pytest.mark.parametrize("status", [OrderStatus.CREATED, OrderStatus.PAYMENT_INTENT_CREATED])
    def test_cancellable(self, store, engine, status):
        order = _new_order()
        store.create(order)
        _force_status(engine, order.id, status)

        assert store.mark_cancelled(order.id, order.owner_id) is True
        assert store.get(order.id).status == OrderStatus.CANCELLED.value

    @pytest.mark.parametrize(
        "status",
        [OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED, OrderStatus.CANCELLED],
    )
    def test_not_cancellable(self, store, engine, status):
        order = _new_order()
        store.create(order)
        _force_status(engine, order.id, status)

        assert store.mark_cancelled(order.id, order.owner_id) is False
        assert store.get(order.id).status == status.value

    def test_other_owner_cannot_cancel(self, store):
        order = _new_order()
        store.create(order)

        assert store.mark_cancelled(order.id, "user-999") is False
        assert store.get(order.id).status == OrderStatus.CREATED.value


class TestPaymentFailures:
    def test_failures_recorded_in_order(self, store):
        order = _new_order()
        store.create(order)

        store.record_payment_failure(order.id, "pay_1", "Card declined")
        store.record_payment_failure(order.id, None, "Bank timeout")

        failures = store.payment_failures(order.id)
        assert [f.reason for f in failures] == ["Card declined", "Bank timeout"]
        assert failures[0].remote_payment_id == "pay_1"
        assert store.get(order.id).status == OrderStatus.CREATED.value

    def test_no_failures(self, store):
        assert store.payment_failures("missing") == []

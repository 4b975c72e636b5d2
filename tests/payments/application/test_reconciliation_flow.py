"""Checkout to confirmed payment, driven through the coordinator only."""

from decimal import Decimal

from helpers import make_destination, make_item, payment_event, sign
from ordering.order.order import OrderStatus
from payments.reconciliation.coordinator import WebhookResult
from structlog.testing import capture_logs


class TestCheckoutToPaid:
    def test_full_flow(self, coordinator, store):
        order_id = coordinator.initiate(
            owner_id="user-001",
            line_items=[
                make_item(unit_price=Decimal("500"), quantity=2, product_ref="prod-a"),
                make_item(unit_price=Decimal("1000"), quantity=1, product_ref="prod-b"),
            ],
            shipping_destination=make_destination(),
        )
        assert store.get(order_id).total_amount == Decimal("2000")

        intent = coordinator.create_remote_intent(order_id, "user-001")
        assert intent.remote_intent_id
        assert intent.amount_minor == 200000

        body = payment_event(order_id, intent.remote_intent_id, payment_id="pay_e2e")
        outcome = coordinator.handle_webhook_event(body, sign(body))

        assert outcome.result is WebhookResult.PAID
        order = coordinator.get_order(order_id, "user-001")
        assert order.status == OrderStatus.PAID.value
        assert order.payment_confirmation.remote_payment_id == "pay_e2e"
        assert order.payment_confirmation.remote_order_id == intent.remote_intent_id
        assert order.is_settled


class TestWebhookWithoutIntent:
    def test_mismatch_is_acknowledged_and_logged(self, coordinator, store):
        order_id = coordinator.initiate(
            owner_id="user-001",
            line_items=[make_item(unit_price=Decimal("500"), quantity=2, product_ref="prod-a")],
            shipping_destination=make_destination(),
        )
        before = store.get(order_id)

        body = payment_event(order_id, "order_NEVER_CREATED")
        with capture_logs() as logs:
            outcome = coordinator.handle_webhook_event(body, sign(body))

        assert outcome.result is WebhookResult.MISMATCH
        assert outcome.acknowledged is True
        after = store.get(order_id)
        assert after.status == before.status == OrderStatus.CREATED.value
        assert after.payment_confirmation is None
        assert after.updated_at == before.updated_at
        review = [entry for entry in logs if entry["log_level"] == "error"]
        assert review and review[0]["order_id"] == order_id

"""Builders shared across the test suite."""

import json
from decimal import Decimal

from payments.reconciliation.signature import compute_signature
from shared.auth import issue_token

WEBHOOK_SECRET = "whsec_test_secret"
JWT_SECRET = "jwt-test-secret"


def make_items():
    """Checkout line items as the API hands them to the order model."""
    return [
        {"product_ref": "prod-mattress", "title": "Ortho Mattress", "unit_price": Decimal("500"), "quantity": 2},
        {"product_ref": "prod-pillow", "title": "Memory Pillow", "unit_price": Decimal("1000"), "quantity": 1},
    ]


def make_item(unit_price="10", quantity=1, product_ref="prod-001", title=None):
    return {"product_ref": product_ref, "title": title, "unit_price": unit_price, "quantity": quantity}


def make_destination(**overrides):
    fields = {
        "line1": "12 MG Road",
        "city": "Bengaluru",
        "region": "Karnataka",
        "postal_code": "560001",
        "country": "India",
        "landmark": "Near metro station",
    }
    fields.update(overrides)
    return fields


def payment_event(order_id, remote_order_id, kind="payment.captured", payment_id="pay_test_001", **entity):
    """Build a processor webhook body as raw bytes."""
    payment_entity = {
        "id": payment_id,
        "order_id": remote_order_id,
        "notes": {"order_id": order_id} if order_id is not None else [],
        **entity,
    }
    body = {
        "event": kind,
        "payload": {
            "payment": {"entity": payment_entity},
            "order": {"entity": {"id": remote_order_id}},
        },
    }
    return json.dumps(body).encode("utf-8")


def sign(raw_body, secret=WEBHOOK_SECRET):
    return compute_signature(raw_body, secret)


def auth_headers(owner_id, secret=JWT_SECRET):
    return {"Authorization": f"Bearer {issue_token(owner_id, secret)}"}

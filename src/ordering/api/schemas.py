"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal order model. Business validation (quantities, prices, totals, required
address fields) happens in the order model so that every entry point gets the
same rules and error messages.
"""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ordering.order.order import MAX_QUANTITY, MAX_UNIT_PRICE, Order


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    line1: str = ""
    line2: str | None = None
    city: str = ""
    region: str = ""
    postal_code: str = ""
    country: str = ""
    landmark: str | None = None


class LineItemSchema(BaseModel):
    product_ref: str
    unit_price: Decimal = Field(le=MAX_UNIT_PRICE)
    quantity: int = Field(le=MAX_QUANTITY)
    title: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    line_items: list[LineItemSchema]
    shipping_destination: AddressSchema
    total_amount: Decimal | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "line_items": [
                        {"product_ref": "prod-ortho-queen", "title": "Ortho Queen", "unit_price": "500.00", "quantity": 2},
                        {"product_ref": "prod-pillow", "title": "Memory Pillow", "unit_price": "1000.00", "quantity": 1},
                    ],
                    "shipping_destination": {
                        "line1": "12 MG Road",
                        "city": "Bengaluru",
                        "region": "Karnataka",
                        "postal_code": "560001",
                        "country": "India",
                        "landmark": "Opposite metro station",
                    },
                    "total_amount": "2000.00",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderCreatedResponse(BaseModel):
    order_id: str
    total_amount: str
    currency: str


class StatusResponse(BaseModel):
    status: str = "ok"


class PaymentConfirmationSchema(BaseModel):
    remote_payment_id: str
    remote_order_id: str


class OrderResponse(BaseModel):
    order_id: str
    status: str
    line_items: list[LineItemSchema]
    total_amount: str
    currency: str
    shipping_destination: AddressSchema
    remote_payment_ref: str | None = None
    payment_confirmation: PaymentConfirmationSchema | None = None
    paid_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order: Order) -> "OrderResponse":
        destination = order.shipping_destination
        confirmation = order.payment_confirmation
        return cls(
            order_id=str(order.id),
            status=order.status,
            line_items=[
                LineItemSchema(
                    product_ref=item.product_ref,
                    unit_price=item.unit_price,
                    quantity=item.quantity,
                    title=item.title,
                )
                for item in order.line_items
            ],
            total_amount=str(order.total_amount),
            currency=order.currency,
            shipping_destination=AddressSchema(
                line1=destination.line1,
                line2=destination.line2,
                city=destination.city,
                region=destination.region,
                postal_code=destination.postal_code,
                country=destination.country,
                landmark=destination.landmark,
            ),
            remote_payment_ref=order.remote_payment_ref,
            payment_confirmation=(
                PaymentConfirmationSchema(
                    remote_payment_id=confirmation.remote_payment_id,
                    remote_order_id=confirmation.remote_order_id,
                )
                if confirmation
                else None
            ),
            paid_at=order.paid_at,
            created_at=order.created_at,
            updated_at=order.updated_at,
        )

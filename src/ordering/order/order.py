"""Order aggregate: the customer's purchase record.

Orders are built once, at checkout, from validated line items and a shipping
address. Every later change of status goes through the Order Store's
conditional writes, never through mutation of an ``Order`` followed by a save.

Money is held in integer minor units (paise) and exposed as ``Decimal``.

State Machine:
    CREATED → PAYMENT_INTENT_CREATED → PAID → SHIPPED → DELIVERED
    CANCELLED (from CREATED, PAYMENT_INTENT_CREATED)
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String, ValueObject

from ordering.domain import ordering
from shared.exceptions import InvalidAddress, InvalidLineItems, InvalidTotal

MINOR_UNITS = Decimal("0.01")

MAX_QUANTITY = 10_000
MAX_UNIT_PRICE = Decimal("10000000.00")
MAX_UNIT_PRICE_MINOR = 1_000_000_000
# Largest amount a signed 64-bit column holds
MAX_TOTAL_MINOR = 2**63 - 1


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    CREATED = "created"
    PAYMENT_INTENT_CREATED = "payment_intent_created"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.CREATED: {
        OrderStatus.PAYMENT_INTENT_CREATED,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PAYMENT_INTENT_CREATED: {
        OrderStatus.PAYMENT_INTENT_CREATED,  # A fresh intent replaces the previous one
        OrderStatus.PAID,
        OrderStatus.CANCELLED,
    },
    OrderStatus.PAID: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

CANCELLABLE_STATES = frozenset(
    status for status, targets in _VALID_TRANSITIONS.items() if OrderStatus.CANCELLED in targets
)
PAYABLE_STATES = frozenset(
    status for status, targets in _VALID_TRANSITIONS.items() if OrderStatus.PAID in targets
)
INTENT_STATES = frozenset(
    status for status, targets in _VALID_TRANSITIONS.items() if OrderStatus.PAYMENT_INTENT_CREATED in targets
)
SETTLED_STATES = frozenset({OrderStatus.PAID, OrderStatus.SHIPPED, OrderStatus.DELIVERED})


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in _VALID_TRANSITIONS.get(current, set())


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@ordering.value_object(part_of="Order")
class ShippingDestination:
    """Postal address the order ships to.

    ``line2`` and ``landmark`` are optional; everything else is required.
    """

    line1 = String(required=True, max_length=255)
    line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    region = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)
    landmark = String(max_length=255)


@ordering.value_object(part_of="Order")
class PaymentConfirmation:
    """Processor-side identifiers from a verified payment webhook."""

    remote_payment_id = String(required=True, max_length=255)
    remote_order_id = String(required=True, max_length=255)
    signature = String(required=True, max_length=255)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@ordering.entity(part_of="Order")
class LineItem:
    """A product captured at purchase time with its price locked in."""

    product_ref = String(required=True, max_length=255)
    title = String(max_length=255)
    unit_price_minor = Integer(required=True, min_value=0, max_value=MAX_UNIT_PRICE_MINOR)
    quantity = Integer(required=True, min_value=1, max_value=MAX_QUANTITY)

    @property
    def unit_price(self) -> Decimal:
        return from_minor_units(self.unit_price_minor)

    @property
    def subtotal_minor(self) -> int:
        return self.unit_price_minor * self.quantity

    @property
    def subtotal(self) -> Decimal:
        return from_minor_units(self.subtotal_minor)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@ordering.aggregate
class Order:
    owner_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.CREATED.value,
    )
    line_items = HasMany(LineItem)
    total_minor = Integer(required=True, min_value=1, max_value=MAX_TOTAL_MINOR)
    currency = String(required=True, max_length=3)
    shipping_destination = ValueObject(ShippingDestination)
    remote_payment_ref = String(max_length=255)
    payment_confirmation = ValueObject(PaymentConfirmation)
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @property
    def total_amount(self) -> Decimal:
        return from_minor_units(self.total_minor)

    @property
    def is_settled(self) -> bool:
        return OrderStatus(self.status) in SETTLED_STATES

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, owner_id, line_items, shipping_destination, currency, expected_total=None):
        """Validate checkout data and build a new order in CREATED state.

        Args:
            owner_id: The customer placing the order.
            line_items: List of dicts with product_ref, unit_price, quantity
                        and an optional title. Prices are major units.
            shipping_destination: Dict with line1, line2, city, region,
                                  postal_code, country and landmark.
            currency: ISO currency code the order is charged in.
            expected_total: Optional client computed total. The total is
                            always computed from the line items; this is
                            only checked against it.
        """
        items = build_line_items(line_items)
        destination = build_destination(shipping_destination)

        total_minor = sum(item.subtotal_minor for item in items)
        if total_minor <= 0:
            raise InvalidTotal({"total_amount": ["Order total must be greater than zero"]})
        if total_minor > MAX_TOTAL_MINOR:
            raise InvalidTotal({"total_amount": ["Order total is too large"]})

        total = from_minor_units(total_minor)
        if expected_total is not None:
            try:
                expected = Decimal(str(expected_total))
            except InvalidOperation:
                raise InvalidTotal({"total_amount": ["Total amount is not a number"]}) from None
            if expected != total:
                raise InvalidTotal({"total_amount": [f"Total amount {expected} does not match line items ({total})"]})

        return cls(
            owner_id=owner_id,
            line_items=items,
            total_minor=total_minor,
            currency=currency,
            shipping_destination=destination,
        )


# ---------------------------------------------------------------------------
# Checkout input and money helpers
# ---------------------------------------------------------------------------
def compute_total(line_items) -> Decimal:
    return from_minor_units(sum(item.subtotal_minor for item in line_items))


def to_minor_units(amount: Decimal) -> int:
    return int((amount / MINOR_UNITS).to_integral_value(rounding=ROUND_HALF_UP))


def from_minor_units(amount: int) -> Decimal:
    return (Decimal(amount) * MINOR_UNITS).quantize(MINOR_UNITS)


def parse_unit_price(value) -> int:
    """Convert a major-unit price such as ``"19.99"`` to minor units.

    Raises ``ValueError`` for anything but a non-negative amount with at most
    two decimal places, no larger than ``MAX_UNIT_PRICE``.
    """
    if value is None or isinstance(value, bool):
        raise ValueError("Unit price is required")
    try:
        price = Decimal(str(value))
    except InvalidOperation:
        raise ValueError("Unit price is not a number") from None
    if not price.is_finite() or price < 0:
        raise ValueError("Unit price must be zero or more")

    try:
        exact = price.quantize(MINOR_UNITS)
    except InvalidOperation:
        raise ValueError("Unit price is out of range") from None
    if exact > MAX_UNIT_PRICE:
        raise ValueError(f"Unit price must not exceed {MAX_UNIT_PRICE}")
    if exact != price:
        raise ValueError("Unit price has more than two decimal places")
    return to_minor_units(exact)


def build_line_items(line_items) -> list[LineItem]:
    """Build line items from checkout data, collecting errors per item.

    Errors are keyed ``line_items[<index>].<field>``.
    """
    if not line_items:
        raise InvalidLineItems({"line_items": ["At least one line item is required"]})

    errors: dict[str, list[str]] = {}
    items = []
    for index, data in enumerate(line_items):
        problems: dict[str, list[str]] = {}

        quantity = data.get("quantity")
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            problems["quantity"] = ["Quantity must be a whole number"]

        try:
            unit_price_minor = parse_unit_price(data.get("unit_price"))
        except ValueError as exc:
            problems["unit_price"] = [str(exc)]

        if not problems:
            try:
                items.append(
                    LineItem(
                        product_ref=str(data.get("product_ref") or "").strip() or None,
                        title=data.get("title"),
                        unit_price_minor=unit_price_minor,
                        quantity=quantity,
                    )
                )
            except ValidationError as exc:
                problems.update(exc.messages)

        for field_name, messages in problems.items():
            errors[f"line_items[{index}].{field_name}"] = list(messages)

    if errors:
        raise InvalidLineItems(errors)
    return items


_ADDRESS_FIELDS = ("line1", "line2", "city", "region", "postal_code", "country", "landmark")


def build_destination(data) -> ShippingDestination:
    """Build the shipping address, trimming values and dropping blank ones."""
    if not data:
        raise InvalidAddress({"shipping_destination": ["A shipping address is required"]})

    try:
        return ShippingDestination(**{name: str(data.get(name) or "").strip() or None for name in _ADDRESS_FIELDS})
    except ValidationError as exc:
        raise InvalidAddress(dict(exc.messages)) from None

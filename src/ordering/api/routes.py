"""FastAPI routes for the Ordering domain: checkout, history and cancellation."""

from fastapi import APIRouter, Depends

from ordering.api.schemas import (
    CreateOrderRequest,
    OrderCreatedResponse,
    OrderResponse,
    StatusResponse,
)
from shared.auth import current_owner_id
from shared.web import get_coordinator

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderCreatedResponse)
def create_order(
    body: CreateOrderRequest,
    owner_id: str = Depends(current_owner_id),
    coordinator=Depends(get_coordinator),
) -> OrderCreatedResponse:
    """Create an order from checkout data. The total is computed server-side."""
    order_id = coordinator.initiate(
        owner_id=owner_id,
        line_items=[item.model_dump() for item in body.line_items],
        shipping_destination=body.shipping_destination.model_dump(),
        expected_total=body.total_amount,
    )
    order = coordinator.get_order(order_id, owner_id)
    return OrderCreatedResponse(
        order_id=str(order.id),
        total_amount=str(order.total_amount),
        currency=order.currency,
    )


@order_router.get("/history", response_model=list[OrderResponse])
def order_history(
    owner_id: str = Depends(current_owner_id),
    coordinator=Depends(get_coordinator),
) -> list[OrderResponse]:
    """All orders of the logged-in customer, newest first."""
    return [OrderResponse.from_order(order) for order in coordinator.order_history(owner_id)]


@order_router.get("/{order_id}", response_model=OrderResponse)
def get_order(
    order_id: str,
    owner_id: str = Depends(current_owner_id),
    coordinator=Depends(get_coordinator),
) -> OrderResponse:
    return OrderResponse.from_order(coordinator.get_order(order_id, owner_id))


@order_router.post("/{order_id}/cancel", response_model=StatusResponse)
def cancel_order(
    order_id: str,
    owner_id: str = Depends(current_owner_id),
    coordinator=Depends(get_coordinator),
) -> StatusResponse:
    coordinator.cancel(order_id, owner_id)
    return StatusResponse(status="cancelled")

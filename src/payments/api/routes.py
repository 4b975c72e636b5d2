"""FastAPI routes for the Payments domain: payment intents and the processor webhook."""

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from payments.api.schemas import (
    ConfigureGatewayRequest,
    CreateIntentRequest,
    GatewayConfigResponse,
    IntentResponse,
    StatusResponse,
)
from payments.gateway.fake_adapter import FakeGateway
from payments.reconciliation.signature import SIGNATURE_HEADER
from shared.auth import current_owner_id
from shared.web import get_coordinator, get_gateway, get_settings

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intents", response_model=IntentResponse)
def create_intent(
    body: CreateIntentRequest,
    owner_id: str = Depends(current_owner_id),
    coordinator=Depends(get_coordinator),
) -> IntentResponse:
    """Create a remote payment intent for the client-side payment widget."""
    intent = coordinator.create_remote_intent(body.order_id, owner_id)
    return IntentResponse(
        order_id=intent.order_id,
        remote_intent_id=intent.remote_intent_id,
        public_key=intent.public_key,
        amount_minor=intent.amount_minor,
        currency=intent.currency,
    )


@payment_router.post("/webhook", response_model=StatusResponse)
async def process_webhook(request: Request, coordinator=Depends(get_coordinator)):
    """Receive a payment processor webhook.

    The body is read as raw bytes; the signature is computed over exactly
    those bytes before anything parses them.
    """
    raw_body = await request.body()
    signature = request.headers.get(SIGNATURE_HEADER)

    outcome = await run_in_threadpool(coordinator.handle_webhook_event, raw_body, signature)
    if not outcome.acknowledged:
        return JSONResponse(status_code=400, content={"status": "rejected"})
    return StatusResponse(status="ok")


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
def configure_gateway(
    body: ConfigureGatewayRequest,
    settings=Depends(get_settings),
    gateway=Depends(get_gateway),
) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Allows toggling success/failure/timeout behavior for manual API testing.
    """
    if settings.is_production:
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        should_succeed=body.should_succeed,
        failure_reason=body.failure_reason,
        should_time_out=body.should_time_out,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        should_succeed=gateway.should_succeed,
        should_time_out=gateway.should_time_out,
        failure_reason=gateway.failure_reason,
    )

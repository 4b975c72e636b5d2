"""Pydantic request/response schemas for the Payments API.

The webhook route has no request schema on purpose: its body is read as raw
bytes and only parsed after the signature has been verified.
"""

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class CreateIntentRequest(BaseModel):
    order_id: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "order_id": "3f2b9c0e5a7d4e1f8b6a2c4d9e0f1a2b",
                }
            ]
        }
    }


class ConfigureGatewayRequest(BaseModel):
    should_succeed: bool = True
    failure_reason: str = "Gateway unavailable"
    should_time_out: bool = False


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class IntentResponse(BaseModel):
    order_id: str
    remote_intent_id: str
    public_key: str
    amount_minor: int
    currency: str


class StatusResponse(BaseModel):
    status: str


class GatewayConfigResponse(BaseModel):
    gateway: str
    should_succeed: bool
    should_time_out: bool
    failure_reason: str

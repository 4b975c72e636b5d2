"""Configurable fake payment gateway for development and testing.

This adapter simulates a real payment gateway without any external calls.
It can be configured at runtime to succeed, fail or time out, making it
useful for:
- Manual API testing via /payments/gateway/configure
- Automated tests with predictable outcomes
- Development without real gateway credentials
"""

from uuid import uuid4

from payments.gateway.port import GatewayError, GatewayTimeout, IntentResult, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self, public_key: str = "rzp_test_fake") -> None:
        self.public_key = public_key
        self.should_succeed: bool = True
        self.should_time_out: bool = False
        self.failure_reason: str = "Gateway unavailable"
        self.calls: list[dict] = []

    def configure(
        self,
        should_succeed: bool,
        failure_reason: str = "Gateway unavailable",
        should_time_out: bool = False,
    ) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.should_time_out = should_time_out

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        correlation_id: str,
        metadata: dict[str, str],
    ) -> IntentResult:
        call = {
            "method": "create_intent",
            "amount_minor": amount_minor,
            "currency": currency,
            "correlation_id": correlation_id,
            "metadata": dict(metadata),
        }
        self.calls.append(call)

        if self.should_time_out:
            raise GatewayTimeout("Timed out creating payment intent")
        if not self.should_succeed:
            raise GatewayError(self.failure_reason)

        return IntentResult(
            intent_id=f"order_fake_{uuid4().hex[:14]}",
            public_key=self.public_key,
            amount_minor=amount_minor,
            currency=currency,
        )

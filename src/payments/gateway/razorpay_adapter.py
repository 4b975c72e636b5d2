"""Razorpay payment gateway adapter.

Creates Razorpay "orders" (the processor-side payment intent) over the REST API
with HTTP basic auth. The local order id travels as ``receipt`` and inside
``notes``; Razorpay echoes ``notes`` back on every payment webhook.

Calls are bounded by a timeout and never retried here: a retry creates a new
remote order, so that decision belongs to the client.
"""

import httpx
import structlog

from payments.gateway.port import GatewayError, GatewayTimeout, IntentResult, PaymentGateway

logger = structlog.get_logger(__name__)


class RazorpayGateway(PaymentGateway):
    def __init__(
        self,
        key_id: str,
        key_secret: str,
        base_url: str = "https://api.razorpay.com/v1",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.key_id = key_id
        self._client = httpx.Client(
            base_url=base_url,
            auth=(key_id, key_secret),
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        correlation_id: str,
        metadata: dict[str, str],
    ) -> IntentResult:
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": correlation_id,
            "payment_capture": 1,
            "notes": {key: str(value) for key, value in metadata.items()},
        }

        try:
            response = self._client.post("/orders", json=payload)
        except httpx.TimeoutException as exc:
            logger.warning("Razorpay order creation timed out", correlation_id=correlation_id)
            raise GatewayTimeout("Timed out creating payment intent") from exc
        except httpx.HTTPError as exc:
            logger.warning("Razorpay unreachable", correlation_id=correlation_id, error=str(exc))
            raise GatewayError("Payment gateway unreachable") from exc

        if response.is_error:
            logger.warning(
                "Razorpay rejected order creation",
                correlation_id=correlation_id,
                status_code=response.status_code,
                description=_error_description(response),
            )
            raise GatewayError(f"Payment gateway returned {response.status_code}")

        try:
            intent_id = response.json()["id"]
        except (ValueError, KeyError, TypeError) as exc:
            raise GatewayError("Payment gateway returned an unexpected response") from exc

        return IntentResult(
            intent_id=intent_id,
            public_key=self.key_id,
            amount_minor=amount_minor,
            currency=currency,
        )


def _error_description(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["description"]
    except (ValueError, KeyError, TypeError):
        return response.text[:200]

"""Payment gateway port (abstract interface).

Defines the contract that all payment gateway adapters must implement.
This enables swapping between FakeGateway (dev/test) and RazorpayGateway
(production) without changing any coordinator or API code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


class GatewayError(Exception):
    """The payment processor could not be reached or refused the request.

    Always retry-safe for the caller: the local order is left untouched.
    """


class GatewayTimeout(GatewayError):
    """The payment processor did not answer within the configured timeout."""


@dataclass(frozen=True)
class IntentResult:
    """A remote payment intent created on the processor."""

    intent_id: str
    public_key: str
    amount_minor: int
    currency: str


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_intent(
        self,
        amount_minor: int,
        currency: str,
        correlation_id: str,
        metadata: dict[str, str],
    ) -> IntentResult:
        """Create a remote payment intent tagged with ``correlation_id``.

        The metadata is echoed back by the processor in webhook events and is
        the only way to map an event to a local order.
        """
        ...

    def close(self) -> None:
        """Release connections held by the adapter. Called on app shutdown."""

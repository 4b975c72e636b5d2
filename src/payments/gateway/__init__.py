"""Payment gateway factory.

build_gateway() picks the adapter named by the settings:
- FakeGateway for development and testing
- RazorpayGateway for production
"""

from payments.gateway.fake_adapter import FakeGateway
from payments.gateway.port import PaymentGateway
from payments.gateway.razorpay_adapter import RazorpayGateway


def build_gateway(settings) -> PaymentGateway:
    if settings.gateway_backend == "fake":
        return FakeGateway(public_key=settings.gateway_key_id)
    return RazorpayGateway(
        key_id=settings.gateway_key_id,
        key_secret=settings.gateway_key_secret.get_secret_value(),
        base_url=settings.gateway_base_url,
        timeout=settings.gateway_timeout_seconds,
    )

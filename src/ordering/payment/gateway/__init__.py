"""Payment gateway factory.

get_gateway() / set_gateway() swap the provider adapter; FakeGateway is the
default for development and tests.
"""

from ordering.payment.gateway.fake_adapter import FakeGateway
from ordering.payment.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None

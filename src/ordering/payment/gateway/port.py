"""Payment gateway port (abstract interface).

The storefront never talks to the payment provider directly. The service
asks the gateway for a hosted checkout form and later for the verdict on a
callback token; everything provider-specific stays behind this interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class CheckoutFormResult:
    """Result of asking the provider for a hosted checkout form."""

    success: bool
    token: str | None = None
    payment_form: str | None = None  # opaque, rendered by the storefront as-is
    payment_page_url: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class PaymentVerdict:
    """The provider's answer for a checkout form token."""

    success: bool
    payment_reference: str | None = None
    failure_reason: str | None = None
    order_id: str | None = None  # the order the form was created for


@dataclass(frozen=True)
class Buyer:
    name: str
    email: str
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    country: str | None = None


@dataclass(frozen=True)
class CheckoutFormRequest:
    order_id: str
    order_number: str
    amount: float
    currency: str
    buyer: Buyer
    basket: list[dict] = field(default_factory=list)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_checkout_form(self, request: CheckoutFormRequest) -> CheckoutFormResult:
        """Create a hosted checkout form for an order."""
        ...

    @abstractmethod
    def retrieve_result(self, token: str) -> PaymentVerdict:
        """Ask the provider how the checkout behind ``token`` ended."""
        ...

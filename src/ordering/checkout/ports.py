"""Ports to the services behind checkout.

The storefront reaches the Order Service and the Payment Service only
through these interfaces. Calls are asynchronous and never raise for
transport or service failures: they return a result with ``success=False``
and a message the shopper can act on.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ordering.api.schemas import OrderRecordSchema, OrderSubmissionRequest


@dataclass(frozen=True)
class OrderSubmissionResult:
    success: bool
    order_id: str | None = None
    order_number: str | None = None
    message: str = ""


@dataclass(frozen=True)
class PaymentInitiationResult:
    success: bool
    payment_form: str | None = None  # opaque, passed through to the page untouched
    payment_page_url: str | None = None
    message: str = ""


@dataclass(frozen=True)
class OrderLookupResult:
    success: bool
    order: OrderRecordSchema | None = None
    message: str = ""


class OrderService(ABC):
    @abstractmethod
    async def submit_order(self, submission: OrderSubmissionRequest) -> OrderSubmissionResult:
        """Hand a priced cart to the service and get back the assigned order."""
        ...

    @abstractmethod
    async def lookup_order(self, order_number: str, email: str) -> OrderLookupResult:
        """Fetch an order for tracking; the e-mail must match a contact on file."""
        ...


class PaymentService(ABC):
    @abstractmethod
    async def initiate_payment(self, order_id: str) -> PaymentInitiationResult:
        ...

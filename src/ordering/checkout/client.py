"""HTTP adapters for the Order Service and Payment Service ports.

Both adapters wrap an injected ``httpx.AsyncClient`` whose ``base_url``
points at the service. There is no retry: a failed call is logged and
returned as a failure result, and the caller decides what to do next.
"""

import httpx
import structlog
from pydantic import ValidationError as SchemaError

from ordering.api.schemas import OrderRecordSchema, OrderSubmissionRequest
from ordering.checkout.ports import (
    OrderLookupResult,
    OrderService,
    OrderSubmissionResult,
    PaymentInitiationResult,
    PaymentService,
)

logger = structlog.get_logger(__name__)

UNREACHABLE = "The order service could not be reached. Please try again in a moment."
PAYMENT_UNREACHABLE = "The payment service could not be reached. Please try again in a moment."


def _envelope(response: httpx.Response) -> dict:
    """Decode a ``{success, message, data}`` body; anything else becomes a failure envelope."""
    try:
        body = response.json()
    except ValueError:
        body = None

    if not isinstance(body, dict):
        return {"success": False, "message": f"Unexpected response from service (HTTP {response.status_code})"}

    if response.is_error or not body.get("success", False):
        message = body.get("message")
        if not message and isinstance(body.get("detail"), list):
            message = "; ".join(str(err.get("msg", err)) for err in body["detail"])
        return {"success": False, "message": message or f"Request failed (HTTP {response.status_code})"}
    return body


class HttpOrderService(OrderService):
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def submit_order(self, submission: OrderSubmissionRequest) -> OrderSubmissionResult:
        try:
            response = await self.client.post("/orders", json=submission.model_dump(mode="json"))
        except httpx.HTTPError as exc:
            logger.warning("Order submission failed", error=str(exc))
            return OrderSubmissionResult(success=False, message=UNREACHABLE)

        body = _envelope(response)
        if not body["success"]:
            logger.info("Order submission rejected", status_code=response.status_code, message=body["message"])
            return OrderSubmissionResult(success=False, message=body["message"])

        data = body.get("data") or {}
        return OrderSubmissionResult(
            success=True,
            order_id=data.get("order_id"),
            order_number=data.get("order_number"),
            message=body.get("message") or "",
        )

    async def lookup_order(self, order_number: str, email: str) -> OrderLookupResult:
        try:
            response = await self.client.get(
                "/orders/track",
                params={"order_number": order_number, "email": email},
            )
        except httpx.HTTPError as exc:
            logger.warning("Order lookup failed", order_number=order_number, error=str(exc))
            return OrderLookupResult(success=False, message=UNREACHABLE)

        if response.status_code == 404:
            return OrderLookupResult(
                success=False,
                message="No order matches that order number and e-mail address.",
            )

        body = _envelope(response)
        if not body["success"]:
            return OrderLookupResult(success=False, message=body["message"])

        try:
            order = OrderRecordSchema.model_validate(body.get("data"))
        except SchemaError as exc:
            logger.warning("Order lookup returned a malformed record", order_number=order_number, error=str(exc))
            return OrderLookupResult(success=False, message="The order service returned an unreadable order.")
        return OrderLookupResult(success=True, order=order)


class HttpPaymentService(PaymentService):
    def __init__(self, client: httpx.AsyncClient):
        self.client = client

    async def initiate_payment(self, order_id: str) -> PaymentInitiationResult:
        try:
            response = await self.client.post("/payments/checkout", json={"order_id": order_id})
        except httpx.HTTPError as exc:
            logger.warning("Payment initiation failed", order_id=order_id, error=str(exc))
            return PaymentInitiationResult(success=False, message=PAYMENT_UNREACHABLE)

        body = _envelope(response)
        if not body["success"]:
            logger.info("Payment initiation rejected", order_id=order_id, message=body["message"])
            return PaymentInitiationResult(success=False, message=body["message"])

        data = body.get("data") or {}
        return PaymentInitiationResult(
            success=True,
            payment_form=data.get("payment_form"),
            payment_page_url=data.get("payment_page_url"),
        )

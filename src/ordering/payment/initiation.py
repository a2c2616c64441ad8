"""Payment initiation and provider callbacks — commands and handler.

Flow:
1. InitiatePayment — asks the gateway for a hosted checkout form for an
   unpaid, non-terminal order and hands the opaque form back untouched.
2. CompletePayment — the provider calls back with the form token. Only the
   token issued for this order is accepted; the gateway's verdict is then
   recorded on the order, and a first successful payment confirms it.
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import Order, PaymentStatus
from ordering.payment.gateway import get_gateway
from ordering.payment.gateway.port import Buyer, CheckoutFormRequest

logger = structlog.get_logger(__name__)


class PaymentGatewayError(Exception):
    """The payment provider refused to start or complete a checkout."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@ordering.command(part_of="Order")
class InitiatePayment:
    order_id = Identifier(required=True)


@ordering.command(part_of="Order")
class CompletePayment:
    order_id = Identifier(required=True)
    token = String(required=True, max_length=255)


def _checkout_request(order) -> CheckoutFormRequest:
    billing = order.billing_address
    return CheckoutFormRequest(
        order_id=str(order.id),
        order_number=order.order_number,
        amount=order.total_amount,
        currency=order.currency,
        buyer=Buyer(
            name=billing.full_name,
            email=billing.email,
            phone=billing.phone,
            address=billing.full_address,
            city=billing.city,
            country=billing.country,
        ),
        basket=[
            {"id": str(item.product_id), "name": item.name, "price": item.line_total}
            for item in order.items
        ],
    )


@ordering.command_handler(part_of=Order)
class PaymentHandler:
    @handle(InitiatePayment)
    def initiate_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        if order.payment_status == PaymentStatus.PAID.value:
            raise ValidationError({"payment": ["This order has already been paid"]})
        if order.is_terminal:
            raise ValidationError({"payment": [f"Order is {order.status}; it can no longer be paid"]})

        result = get_gateway().create_checkout_form(_checkout_request(order))
        if not result.success:
            logger.warning(
                "Payment form refused",
                order_number=order.order_number,
                reason=result.failure_reason,
            )
            raise PaymentGatewayError(result.failure_reason or "Payment could not be started")

        order.issue_payment_token(result.token)
        repo.add(order)

        logger.info("Payment form created", order_number=order.order_number, token=result.token)
        return {
            "token": result.token,
            "payment_form": result.payment_form,
            "payment_page_url": result.payment_page_url,
        }

    @handle(CompletePayment)
    def complete_payment(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        order.check_payment_token(command.token)
        verdict = get_gateway().retrieve_result(command.token)
        if verdict.order_id is not None and verdict.order_id != str(order.id):
            logger.warning("Payment verdict for another order", order_number=order.order_number)
            raise ValidationError({"token": ["Payment token does not belong to this order"]})

        order.record_payment(
            succeeded=verdict.success,
            payment_reference=verdict.payment_reference,
            reason=verdict.failure_reason,
        )
        repo.add(order)

        logger.info(
            "Payment recorded",
            order_number=order.order_number,
            succeeded=verdict.success,
            reason=verdict.failure_reason,
        )
        return {"succeeded": verdict.success, "status": order.status, "message": verdict.failure_reason}

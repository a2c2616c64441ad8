"""FastAPI routes for the Ordering domain — orders and payments."""

import json

from fastapi import APIRouter, Query
from protean.utils.globals import current_domain

from ordering.api.schemas import (
    ErrorResponse,
    OrderListResponse,
    OrderPlacedData,
    OrderPlacedResponse,
    OrderRecordResponse,
    OrderRecordSchema,
    OrderSubmissionRequest,
    PaymentCallbackRequest,
    PaymentCheckoutRequest,
    PaymentFormData,
    PaymentFormResponse,
    PaymentOutcomeData,
    PaymentOutcomeResponse,
    UpdateStatusRequest,
)
from ordering.order.lookup import find_order_for_tracking, list_orders
from ordering.order.order import Order
from ordering.order.placement import PlaceOrder
from ordering.order.status import UpdateOrderStatus
from ordering.payment.initiation import CompletePayment, InitiatePayment

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(
    prefix="/orders",
    tags=["orders"],
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@order_router.post("", status_code=201, response_model=OrderPlacedResponse)
async def place_order(body: OrderSubmissionRequest) -> OrderPlacedResponse:
    command = PlaceOrder(
        items=json.dumps([item.model_dump() for item in body.items]),
        shipping_address=json.dumps(body.shipping_address.model_dump()),
        billing_address=json.dumps(body.billing_address.model_dump()),
        subtotal=body.subtotal,
        discount_amount=body.discount_amount,
        shipping_cost=body.shipping_cost,
        vat_amount=body.vat_amount,
        total_amount=body.total_amount,
        currency=body.currency,
        coupon_code=body.coupon_code,
    )
    result = current_domain.process(command, asynchronous=False)
    return OrderPlacedResponse(data=OrderPlacedData(**result))


@order_router.get("/track", response_model=OrderRecordResponse)
async def track_order(
    order_number: str = Query(min_length=1),
    email: str = Query(min_length=1),
) -> OrderRecordResponse:
    order = find_order_for_tracking(order_number, email)
    return OrderRecordResponse(data=OrderRecordSchema.from_order(order))


@order_router.get("", response_model=OrderListResponse)
async def get_orders(status: str | None = None) -> OrderListResponse:
    orders = list_orders(status=status)
    return OrderListResponse(data=[OrderRecordSchema.from_order(o) for o in orders])


@order_router.get("/{order_id}", response_model=OrderRecordResponse)
async def get_order(order_id: str) -> OrderRecordResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderRecordResponse(data=OrderRecordSchema.from_order(order))


@order_router.post("/{order_id}/status", response_model=OrderRecordResponse)
async def update_order_status(order_id: str, body: UpdateStatusRequest) -> OrderRecordResponse:
    command = UpdateOrderStatus(
        order_id=order_id,
        new_status=body.status,
        note=body.note,
        tracking_number=body.tracking_number,
        shipping_company=body.shipping_company,
    )
    current_domain.process(command, asynchronous=False)

    order = current_domain.repository_for(Order).get(order_id)
    return OrderRecordResponse(message="Order status updated", data=OrderRecordSchema.from_order(order))


# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(
    prefix="/payments",
    tags=["payments"],
    responses={400: {"model": ErrorResponse}, 402: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)


@payment_router.post("/checkout", response_model=PaymentFormResponse)
async def start_checkout(body: PaymentCheckoutRequest) -> PaymentFormResponse:
    result = current_domain.process(InitiatePayment(order_id=body.order_id), asynchronous=False)
    return PaymentFormResponse(data=PaymentFormData(**result))


@payment_router.post("/callback", response_model=PaymentOutcomeResponse)
async def payment_callback(body: PaymentCallbackRequest) -> PaymentOutcomeResponse:
    result = current_domain.process(
        CompletePayment(order_id=body.order_id, token=body.token),
        asynchronous=False,
    )
    return PaymentOutcomeResponse(
        success=result["succeeded"],
        message=result["message"] or "Payment received",
        data=PaymentOutcomeData(succeeded=result["succeeded"], status=result["status"]),
    )

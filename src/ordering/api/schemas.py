"""Pydantic request/response schemas for the Ordering API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. The storefront's HTTP clients speak the same
schemas, so both sides of the wire validate the same shapes.
"""

import json
from datetime import datetime

from pydantic import BaseModel, Field, field_validator


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    full_name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str | None = None
    company: str | None = None
    full_address: str = Field(min_length=1)
    city: str = Field(min_length=1)
    postal_code: str | None = None
    country: str = Field(min_length=1)

    @field_validator("email")
    @classmethod
    def email_must_have_a_domain(cls, value: str) -> str:
        value = value.strip()
        local, _, domain = value.partition("@")
        if not local or "." not in domain:
            raise ValueError("must be a valid e-mail address")
        return value


class OrderItemSchema(BaseModel):
    product_id: str
    name: str
    sku: str | None = None
    quantity: int = Field(ge=1)
    unit_price: float = Field(ge=0)
    options: dict | None = None
    notes: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class OrderSubmissionRequest(BaseModel):
    items: list[OrderItemSchema] = Field(min_length=1)
    subtotal: float = Field(ge=0)
    discount_amount: float = Field(ge=0, default=0.0)
    shipping_cost: float = Field(ge=0, default=0.0)
    vat_amount: float = Field(ge=0, default=0.0)
    total_amount: float = Field(ge=0)
    currency: str = "EUR"
    coupon_code: str | None = None
    shipping_address: AddressSchema
    billing_address: AddressSchema

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "items": [
                        {
                            "product_id": "doypack-12x18-kraft",
                            "name": "Stand-up pouch 12x18 kraft",
                            "quantity": 1000,
                            "unit_price": 0.5742,
                            "options": {"size": "12x18", "material": "kraft"},
                        }
                    ],
                    "subtotal": 574.2,
                    "discount_amount": 0.0,
                    "shipping_cost": 0.0,
                    "vat_amount": 126.32,
                    "total_amount": 700.52,
                    "currency": "EUR",
                    "shipping_address": {
                        "full_name": "Ada Demir",
                        "email": "ada@example.com",
                        "full_address": "Kordon Cd. 12",
                        "city": "Izmir",
                        "postal_code": "35210",
                        "country": "TR",
                    },
                    "billing_address": {
                        "full_name": "Ada Demir",
                        "email": "ada@example.com",
                        "full_address": "Kordon Cd. 12",
                        "city": "Izmir",
                        "postal_code": "35210",
                        "country": "TR",
                    },
                }
            ]
        }
    }


class UpdateStatusRequest(BaseModel):
    status: str
    note: str | None = Field(default=None, max_length=500)
    tracking_number: str | None = None
    shipping_company: str | None = None


# ---------------------------------------------------------------------------
# Payment Request Schemas
# ---------------------------------------------------------------------------
class PaymentCheckoutRequest(BaseModel):
    order_id: str


class PaymentCallbackRequest(BaseModel):
    order_id: str
    token: str


# ---------------------------------------------------------------------------
# Order record (tracking / admin views)
# ---------------------------------------------------------------------------
class StatusTransitionSchema(BaseModel):
    previous_status: str | None = None
    new_status: str
    note: str | None = None
    changed_by_type: str | None = None
    created_at: datetime | None = None


class OrderRecordSchema(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_status: str | None = None
    items: list[OrderItemSchema] = []
    subtotal: float
    discount_amount: float = 0.0
    shipping_cost: float = 0.0
    vat_amount: float = 0.0
    total_amount: float
    currency: str = "EUR"
    coupon_code: str | None = None
    shipping_address: AddressSchema | None = None
    billing_address: AddressSchema | None = None
    tracking_number: str | None = None
    shipping_company: str | None = None
    status_history: list[StatusTransitionSchema] = []
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_order(cls, order) -> "OrderRecordSchema":
        def address(value):
            if value is None:
                return None
            return AddressSchema(
                full_name=value.full_name,
                email=value.email,
                phone=value.phone,
                company=value.company,
                full_address=value.full_address,
                city=value.city,
                postal_code=value.postal_code,
                country=value.country,
            )

        history = sorted(
            order.status_history,
            key=lambda t: (t.created_at is not None, t.created_at),
        )
        return cls(
            order_id=str(order.id),
            order_number=order.order_number,
            status=order.status,
            payment_status=order.payment_status,
            items=[
                OrderItemSchema(
                    product_id=str(item.product_id),
                    name=item.name,
                    sku=item.sku,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    options=json.loads(item.options) if item.options else None,
                    notes=item.notes,
                )
                for item in order.items
            ],
            subtotal=order.subtotal,
            discount_amount=order.discount_amount or 0.0,
            shipping_cost=order.shipping_cost or 0.0,
            vat_amount=order.vat_amount or 0.0,
            total_amount=order.total_amount,
            currency=order.currency,
            coupon_code=order.coupon_code,
            shipping_address=address(order.shipping_address),
            billing_address=address(order.billing_address),
            tracking_number=order.tracking_number,
            shipping_company=order.shipping_company,
            status_history=[
                StatusTransitionSchema(
                    previous_status=t.previous_status,
                    new_status=t.new_status,
                    note=t.note,
                    changed_by_type=t.changed_by_type,
                    created_at=t.created_at,
                )
                for t in history
            ],
            created_at=order.created_at,
            updated_at=order.updated_at,
        )


# ---------------------------------------------------------------------------
# Response envelopes: {success, message, data}
# ---------------------------------------------------------------------------
class OrderPlacedData(BaseModel):
    order_id: str
    order_number: str


class OrderPlacedResponse(BaseModel):
    success: bool = True
    message: str = "Order placed"
    data: OrderPlacedData


class OrderRecordResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: OrderRecordSchema


class OrderListResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: list[OrderRecordSchema]


class PaymentFormData(BaseModel):
    token: str | None = None
    payment_form: str | None = None
    payment_page_url: str | None = None


class PaymentFormResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: PaymentFormData


class PaymentOutcomeData(BaseModel):
    succeeded: bool
    status: str


class PaymentOutcomeResponse(BaseModel):
    success: bool = True
    message: str = ""
    data: PaymentOutcomeData


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    data: dict | None = None

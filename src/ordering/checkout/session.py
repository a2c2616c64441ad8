"""Checkout session — what the checkout page talks to.

Ties the injected cart store, coupon catalogue and service ports together.
The applied coupon is derived on every read from the coupon held in the cart
and the cart's current subtotal; no discount amount is ever cached.

Network failures come back as result objects and leave the cart and its
coupon exactly as they were, so the shopper can simply try again.
"""

from datetime import datetime

import structlog
from protean.exceptions import ValidationError
from pydantic import BaseModel
from pydantic import ValidationError as SchemaError

from ordering.api.schemas import AddressSchema, OrderItemSchema, OrderSubmissionRequest
from ordering.cart.store import CartStore
from ordering.checkout.ports import (
    OrderLookupResult,
    OrderService,
    OrderSubmissionResult,
    PaymentInitiationResult,
    PaymentService,
)
from ordering.checkout.totals import CheckoutTotals, compute_final_total
from ordering.coupon.catalog import CouponCatalog
from ordering.coupon.coupon import AppliedCoupon
from ordering.coupon.evaluator import apply_coupon
from ordering.settings import CheckoutSettings, checkout_settings

logger = structlog.get_logger(__name__)


def _address(value, field: str) -> AddressSchema:
    if isinstance(value, AddressSchema):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump()
    try:
        return AddressSchema.model_validate(value)
    except SchemaError as exc:
        messages = [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]
        raise ValidationError({field: messages}) from exc


def _require(value, field: str, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError({field: [message]})
    return value.strip()


class CheckoutSession:
    def __init__(
        self,
        cart: CartStore,
        coupons: CouponCatalog,
        order_service: OrderService,
        payment_service: PaymentService,
        settings: CheckoutSettings | None = None,
        clock=None,
    ) -> None:
        self.cart = cart
        self.coupons = coupons
        self.order_service = order_service
        self.payment_service = payment_service
        self.settings = settings or checkout_settings()
        self._clock = clock

    def _now(self) -> datetime | None:
        return self._clock() if self._clock else None

    # -------------------------------------------------------------------
    # Coupons
    # -------------------------------------------------------------------
    def apply_coupon(self, code: str) -> AppliedCoupon:
        """Validate ``code`` against the current subtotal and hold it for this session.

        Raises ``ValidationError`` for malformed codes and a ``CouponError``
        subclass for rejections; either way the cart keeps its previous coupon.
        """
        applied = apply_coupon(
            code,
            self.cart.get_total(),
            self.coupons,
            now=self._now(),
            currency=self.settings.currency,
        )
        self.cart.set_coupon(self.coupons.find(applied.code))
        return applied

    def remove_coupon(self) -> None:
        self.cart.remove_coupon()

    def applied_coupon(self) -> AppliedCoupon | None:
        return self.totals().applied_coupon

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def totals(self) -> CheckoutTotals:
        return compute_final_total(
            self.cart.get_total(),
            coupon=self.cart.applied_coupon,
            shipping_rule=self.settings.shipping_rule,
            vat_rate=self.settings.vat_rate,
            now=self._now(),
            currency=self.settings.currency,
        )

    def build_submission(self, shipping, billing=None) -> OrderSubmissionRequest:
        if not self.cart.items:
            raise ValidationError({"cart": ["Your cart is empty"]})

        shipping_address = _address(shipping, "shipping_address")
        billing_address = _address(billing, "billing_address") if billing is not None else shipping_address
        totals = self.totals().rounded()

        return OrderSubmissionRequest(
            items=[
                OrderItemSchema(
                    product_id=str(line.product_id),
                    name=line.name,
                    sku=line.sku,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    options=line.option_values or None,
                    notes=line.notes,
                )
                for line in self.cart.items
            ],
            subtotal=float(totals.subtotal),
            discount_amount=float(totals.discount),
            shipping_cost=float(totals.shipping_cost),
            vat_amount=float(totals.vat_amount),
            total_amount=float(totals.grand_total),
            currency=self.settings.currency,
            coupon_code=totals.applied_coupon.code if totals.applied_coupon else None,
            shipping_address=shipping_address,
            billing_address=billing_address,
        )

    # -------------------------------------------------------------------
    # Service calls
    # -------------------------------------------------------------------
    async def place_order(self, shipping, billing=None) -> OrderSubmissionResult:
        """Submit the cart; billing defaults to the shipping address.

        The cart (and with it the coupon) is cleared only once the service
        has accepted the order.
        """
        submission = self.build_submission(shipping, billing)
        result = await self.order_service.submit_order(submission)

        if not result.success:
            logger.info("Checkout failed, cart kept", message=result.message)
            return result

        logger.info("Checkout complete", order_id=result.order_id, order_number=result.order_number)
        self.cart.clear()
        return result

    async def initiate_payment(self, order_id: str) -> PaymentInitiationResult:
        order_id = _require(order_id, "order_id", "An order is required to start payment")
        return await self.payment_service.initiate_payment(order_id)

    async def track_order(self, order_number: str, email: str) -> OrderLookupResult:
        order_number = _require(order_number, "order_number", "Enter your order number")
        email = _require(email, "email", "Enter the e-mail address used for the order")
        return await self.order_service.lookup_order(order_number, email)

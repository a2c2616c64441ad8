"""Ordering bounded context — cart, coupons, pricing, checkout and order tracking.

Covers the pricing engine that turns cart lines and a discount code into a
payable amount, and the order record whose status history drives the
customer-facing tracking timeline.
"""

from protean.domain import Domain

ordering = Domain(name="ordering")

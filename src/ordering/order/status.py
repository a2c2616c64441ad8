"""Order status updates — command and handler.

Only the fulfillment side moves an order's status; the storefront reads it.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import ChangedBy, Order

logger = structlog.get_logger(__name__)


@ordering.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    new_status = String(required=True, max_length=20)
    note = String(max_length=500)
    changed_by_type = String(choices=ChangedBy, default=ChangedBy.ADMIN.value)
    tracking_number = String(max_length=255)
    shipping_company = String(max_length=100)


@ordering.command_handler(part_of=Order)
class UpdateOrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous_status = order.status

        order.transition_to(
            command.new_status,
            note=command.note,
            changed_by_type=command.changed_by_type or ChangedBy.ADMIN.value,
            tracking_number=command.tracking_number,
            shipping_company=command.shipping_company,
        )
        repo.add(order)

        logger.info(
            "Order status changed",
            order_number=order.order_number,
            previous_status=previous_status,
            new_status=order.status,
        )

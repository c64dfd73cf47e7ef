# storeadmin/workflow.py

"""
Order lifecycle.

The UI offers one button per order: advance to the next status in the
fixed sequence. Nothing is enforced on write. Any status can be stored
directly (the order drawer allows a free choice), two admins advancing the
same order race and the last write wins.
"""

from typing import Dict, Optional, Union

from storeadmin.models import OrderStatus

ORDER_FLOW = tuple(OrderStatus)

STATUS_DESCRIPTIONS: Dict[OrderStatus, str] = {
    OrderStatus.PENDING: "We are preparing your order",
    OrderStatus.CONFIRMED: "Order confirmed",
    OrderStatus.PROCESSING: "Order is being processed",
    OrderStatus.SHIPPED: "Your order is on the way",
    OrderStatus.DELIVERED: "Your order has been delivered",
    OrderStatus.CANCELLED: "Your order was cancelled",
    OrderStatus.RETURNED: "Order returned",
}


def parse_status(value: Union[str, OrderStatus, None]) -> Optional[OrderStatus]:
    if isinstance(value, OrderStatus):
        return value
    try:
        return OrderStatus(value)
    except ValueError:
        return None


def next_status(current: Union[str, OrderStatus, None]) -> Optional[OrderStatus]:
    """The single next step offered for an order, or None"""
    status = parse_status(current)
    if status is None:
        return None
    idx = ORDER_FLOW.index(status)
    if idx + 1 >= len(ORDER_FLOW):
        return None
    return ORDER_FLOW[idx + 1]


def describe(current: Union[str, OrderStatus, None]) -> str:
    status = parse_status(current)
    return STATUS_DESCRIPTIONS.get(status, "") if status else ""


def transition(gateway, order_id: int, target: Union[str, OrderStatus]) -> dict:
    """
    Write `target` into the order's status column and nothing else.
    Blocking; callers run it off the event loop and reload afterwards.
    """
    value = target.value if isinstance(target, OrderStatus) else str(target)
    return gateway.update_order_status(order_id, value)

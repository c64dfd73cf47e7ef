import pytest

from storeadmin import workflow
from storeadmin.models import OrderStatus

from conftest import make_order


@pytest.mark.parametrize("current, expected", [
    ("Pending", OrderStatus.CONFIRMED),
    ("Confirmed", OrderStatus.PROCESSING),
    ("Processing", OrderStatus.SHIPPED),
    ("Shipped", OrderStatus.DELIVERED),
    ("Delivered", OrderStatus.CANCELLED),
    ("Cancelled", OrderStatus.RETURNED),
])
def test_next_status_follows_declaration_order(current, expected):
    assert workflow.next_status(current) == expected


@pytest.mark.parametrize("current", ["Returned", "Lost in transit", "", None])
def test_next_status_is_none_for_last_or_unknown(current):
    assert workflow.next_status(current) is None


def test_next_status_accepts_enum_members():
    assert workflow.next_status(OrderStatus.SHIPPED) is OrderStatus.DELIVERED


def test_describe():
    assert workflow.describe("Shipped") == "Your order is on the way"
    assert workflow.describe("nonsense") == ""


def test_transition_writes_only_the_status(gateway):
    order = gateway.insert_order(make_order(total=250.0))

    record = workflow.transition(gateway, order["id"], OrderStatus.CONFIRMED)

    assert record["status"] == "Confirmed"
    assert record["totalprice"] == 250.0
    assert record["checkoutdata"] == order["checkoutdata"]


def test_transition_does_not_validate_the_target(gateway):
    order = gateway.insert_order(make_order(status="Delivered"))

    record = workflow.transition(gateway, order["id"], "Pending")

    assert record["status"] == "Pending"

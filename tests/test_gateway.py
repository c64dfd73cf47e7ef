from datetime import datetime

import pytest

from storeadmin.date_range import DateRange, in_window, parse_timestamp, window
from storeadmin.errors import RowNotFound
from storeadmin.models import CategoryIn, DescriptionIn, Order, ProductIn, VariantIn, VariantOptionIn

from conftest import make_order


def test_orders_are_listed_newest_first(gateway):
    gateway.insert_order(make_order(created_at=datetime(2024, 1, 1)))
    gateway.insert_order(make_order(created_at=datetime(2024, 3, 1)))
    gateway.insert_order(make_order(created_at=datetime(2024, 2, 1)))

    dates = [o["created_at"] for o in gateway.list_orders()]

    assert dates == sorted(dates, reverse=True)


def test_insert_order_records_order_items(gateway):
    cart = [{"product": {"id": 3, "name": "Chips"}, "quantity": 2, "totalPrice": 40}]
    order = gateway.insert_order(make_order(cartitems=cart))

    items = gateway.list_order_items()

    assert items[0]["orderid"] == order["id"]
    assert items[0]["product"] == {"id": 3, "name": "Chips"}
    assert items[0]["quantity"] == 2


def test_order_writes_are_published(gateway, channel):
    events = []
    channel.subscribe("orders", events.append)

    order = gateway.insert_order(make_order())
    gateway.update_order_status(order["id"], "Confirmed")

    assert [e.type for e in events] == ["INSERT", "UPDATE"]
    assert events[1].old_record["status"] == "Pending"
    assert events[1].record["status"] == "Confirmed"


def test_update_order_is_partial(gateway):
    order = gateway.insert_order(make_order(total=80.0))

    record = gateway.update_order(order["id"], {"checkoutdata": {"phone": "1", "paymentStatus": "Paid"}})

    assert record["status"] == "Pending"
    assert record["totalprice"] == 80.0
    assert record["checkoutdata"]["paymentStatus"] == "Paid"


def test_missing_rows_raise(gateway):
    with pytest.raises(RowNotFound):
        gateway.get_order(404)
    with pytest.raises(RowNotFound):
        gateway.update_order_status(404, "Confirmed")
    with pytest.raises(RowNotFound):
        gateway.delete_category(404)


def test_order_totals_only_carry_the_aggregated_columns(gateway):
    gateway.insert_order(make_order(userid="u1", total=12.5))
    assert list(gateway.list_order_totals()[0]) == ["userid", "created_at", "totalprice"]


def test_detach_category_clears_the_soft_reference(gateway):
    gateway.insert_category(CategoryIn(name="Snacks"))
    gateway.insert_product(ProductIn(name="Chips", category="Snacks"))
    gateway.insert_product(ProductIn(name="Nuts", category="Snacks"))
    gateway.insert_product(ProductIn(name="Soap", category="Household"))

    assert gateway.detach_category("Snacks") == 2

    categories = {p["name"]: p["category"] for p in gateway.list_products()}
    assert categories == {"Chips": "", "Nuts": "", "Soap": "Household"}


def test_product_children_are_nested_on_read(gateway):
    payload = ProductIn(
        name="Tea",
        price=120,
        labels=["new"],
        imageUrls=["http://x/1.png", "http://x/2.png"],
        productdescriptions=[DescriptionIn(title="About", content="Assam")],
        productvariants=[VariantIn(name="Size", productvariantoptions=[
            VariantOptionIn(name="250g", price=120, isdefault=True),
            VariantOptionIn(name="500g", price=220),
        ])],
    )

    product = gateway.insert_product(payload)

    assert product["imageUrls"] == ["http://x/1.png", "http://x/2.png"]
    assert product["labels"] == ["new"]
    assert product["productdescriptions"][0]["content"] == "Assam"
    options = product["productvariants"][0]["productvariantoptions"]
    assert [o["name"] for o in options] == ["250g", "500g"]
    assert options[0]["isdefault"] is True


def test_update_product_replaces_children(gateway):
    product = gateway.insert_product(ProductIn(
        name="Tea",
        imageUrls=["http://x/old.png"],
        productvariants=[VariantIn(name="Size", productvariantoptions=[VariantOptionIn(name="250g")])],
    ))

    updated = gateway.update_product(product["id"], ProductIn(name="Green Tea", imageUrls=["http://x/new.png"]))

    assert updated["name"] == "Green Tea"
    assert updated["imageUrls"] == ["http://x/new.png"]
    assert updated["productvariants"] == []


def test_delete_product_and_publish_toggle(gateway):
    product = gateway.insert_product(ProductIn(name="Tea", imageUrls=["http://x/1.png"]))

    assert gateway.set_product_published(product["id"], False)["ispublished"] is False

    gateway.delete_product(product["id"])
    assert gateway.list_products() == []
    with pytest.raises(RowNotFound):
        gateway.get_product(product["id"])


def test_newest_settings_row_wins(gateway):
    assert gateway.get_settings() == {}
    gateway.save_settings({"logoUrl": "a.png"})
    gateway.save_settings({"logoUrl": "b.png", "siteName": "Corner Shop"})
    assert gateway.get_settings() == {"logoUrl": "b.png", "siteName": "Corner Shop"}


def test_insert_order_returns_the_stored_row(gateway, channel):
    events = []
    channel.subscribe("orders", events.append)
    cart = [{"product": {"id": 1}, "quantity": 1}]

    record = gateway.insert_order(make_order(userid="u9", total=5.0, cartitems=cart))

    assert record["id"] is not None
    assert record["userid"] == "u9"
    assert record["cartitems"] == cart
    assert events[0].record["id"] == record["id"]


def test_default_timestamp_falls_in_todays_window(gateway):
    gateway.insert_order(Order(userid="u", totalprice=1))
    gateway.insert_category(CategoryIn(name="Snacks"))

    today = window(DateRange(value="today"))

    assert in_window(gateway.list_orders()[0], today)
    assert in_window(gateway.list_order_totals()[0], today)
    assert in_window(gateway.list_categories()[0], today)


def test_naive_timestamps_are_kept_as_local_time(gateway):
    gateway.insert_order(make_order(created_at=datetime(2024, 1, 15, 10, 30)))

    stored = gateway.list_orders()[0]["created_at"]

    assert stored.tzinfo is not None
    assert parse_timestamp(stored) == datetime(2024, 1, 15, 10, 30)

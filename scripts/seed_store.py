import os
import sys
from datetime import datetime, timedelta, timezone

from dotenv import load_dotenv
from sqlmodel import Session, select

# --- PATH SETUP ---
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.dirname(current_dir)
sys.path.append(project_root)

from storeadmin.config import load_config
from storeadmin.gateway import DataGateway
from storeadmin.models import Category, Order, OrderStatus, ProductIn, VariantIn, VariantOptionIn, DescriptionIn
from storeadmin.storage import LocalBucket
from storeadmin.utils.db import create_tables, engine

# 1. Setup
load_dotenv()
config = load_config()

CATEGORIES = ["Snacks", "Beverages", "Household"]

PRODUCTS = [
    ProductIn(
        name="Masala Peanuts",
        price=60,
        category="Snacks",
        labels=["spicy", "vegan"],
        productdescriptions=[DescriptionIn(title="Weight", content="200 g")],
        productvariants=[VariantIn(name="Pack", productvariantoptions=[
            VariantOptionIn(name="Single", price=60, isdefault=True),
            VariantOptionIn(name="Family", price=150),
        ])],
    ),
    ProductIn(name="Mango Juice", price=90, category="Beverages", labels=["organic"]),
    ProductIn(name="Dish Soap", price=45, category="Household"),
]


def main():
    print("--- 🛒 Seeding store ---")
    create_tables(engine)
    gateway = DataGateway(engine, LocalBucket(config.storage_dir, config.storage_public_url, config.storage_bucket))

    with Session(engine) as session:
        if session.exec(select(Order)).first() and "--force" not in sys.argv:
            print("❌ Orders already exist. Re-run with --force to add another batch.")
            return
        for name in CATEGORIES:
            session.add(Category(name=name))
        session.commit()
    print(f"   🔹 {len(CATEGORIES)} categories")

    products = [gateway.insert_product(p) for p in PRODUCTS]
    print(f"   🔹 {len(products)} products")

    now = datetime.now(timezone.utc)
    statuses = list(OrderStatus)
    for i in range(12):
        product = products[i % len(products)]
        quantity = 1 + i % 3
        gateway.insert_order(Order(
            created_at=now - timedelta(days=i * 3),
            userid=f"user-{i % 4}",
            totalprice=product["price"] * quantity,
            status=statuses[i % len(statuses)].value,
            checkoutdata={"phone": f"98765{i % 4:05d}", "city": "Pune", "paymentMethod": "cod"},
            cartitems=[{
                "product": {"id": product["id"], "name": product["name"], "category": product["category"]},
                "quantity": quantity,
                "selectedOptions": {},
                "totalPrice": product["price"] * quantity,
            }],
        ))
    print("✅ Seeded 12 orders.")


if __name__ == "__main__":
    main()

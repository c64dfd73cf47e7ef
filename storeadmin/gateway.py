# storeadmin/gateway.py

"""
Remote Data Gateway.

Thin pass-through to the table storage: every call opens its own session,
runs one read or write and returns plain dicts. No retry, no cache.
Backend failures come back as GatewayError so callers can show a generic
message and keep whatever they were displaying.
"""

import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import delete
from sqlmodel import Session, select, col

from storeadmin.errors import GatewayError, RowNotFound
from storeadmin.models import (
    Order,
    OrderItem,
    OrderStatus,
    Category,
    CategoryIn,
    Product,
    ProductIn,
    ProductImage,
    ProductDescription,
    ProductVariant,
    ProductVariantOption,
    Branding,
)
from storeadmin.realtime import ChangeEvent, RealtimeChannel
from storeadmin.storage import LocalBucket

logger = logging.getLogger(__name__)


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive timestamps handed to the gateway are local time"""
    if value is None:
        return None
    return value.astimezone(timezone.utc)


def _loaded(value: Any) -> Any:
    # SQLite hands back the stored UTC value without its offset
    if isinstance(value, datetime) and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row(obj) -> Dict[str, Any]:
    row = obj.model_dump()
    if "created_at" in row:
        row["created_at"] = _loaded(row["created_at"])
    return row


class DataGateway:
    def __init__(self, engine: Engine, storage: LocalBucket, changes: Optional[RealtimeChannel] = None):
        self.engine = engine
        self.storage = storage
        self.changes = changes

    @contextmanager
    def session(self):
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as e:
            raise GatewayError(str(e)) from e

    def _publish(self, kind: str, record: Optional[Dict[str, Any]] = None, old: Optional[Dict[str, Any]] = None) -> None:
        if self.changes is not None:
            self.changes.publish(ChangeEvent(type=kind, table="orders", record=record, old_record=old))

    # --- Orders ---

    def list_orders(self) -> List[Dict[str, Any]]:
        with self.session() as session:
            orders = session.exec(select(Order).order_by(col(Order.created_at).desc())).all()
            return [_row(o) for o in orders]

    def get_order(self, order_id: int) -> Dict[str, Any]:
        with self.session() as session:
            order = session.get(Order, order_id)
            if not order:
                raise RowNotFound("orders", order_id)
            return _row(order)

    def list_order_totals(self) -> List[Dict[str, Any]]:
        """Only the columns the customers aggregation needs"""
        with self.session() as session:
            rows = session.exec(select(Order.userid, Order.created_at, Order.totalprice)).all()
            return [{"userid": u, "created_at": _loaded(c), "totalprice": t} for u, c, t in rows]

    def list_order_items(self) -> List[Dict[str, Any]]:
        with self.session() as session:
            items = session.exec(select(OrderItem)).all()
            return [i.model_dump() for i in items]

    def insert_order(self, order: Order) -> Dict[str, Any]:
        with self.session() as session:
            order.created_at = _as_utc(order.created_at)
            session.add(order)
            session.commit()
            session.refresh(order)
            record = _row(order)
            for line in record["cartitems"] or []:
                session.add(OrderItem(orderid=order.id, product=line.get("product", {}), quantity=line.get("quantity", 1)))
            session.commit()
        self._publish("INSERT", record)
        return record

    def update_order(self, order_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Partial update: only the given columns are written"""
        with self.session() as session:
            order = session.get(Order, order_id)
            if not order:
                raise RowNotFound("orders", order_id)
            old = _row(order)
            for key, value in fields.items():
                if isinstance(value, OrderStatus):
                    value = value.value
                setattr(order, key, value)
            session.add(order)
            session.commit()
            session.refresh(order)
            record = _row(order)
        logger.info("Order %s updated: %s", order_id, ", ".join(sorted(fields)))
        self._publish("UPDATE", record, old)
        return record

    def update_order_status(self, order_id: int, status: str) -> Dict[str, Any]:
        return self.update_order(order_id, {"status": status})

    # --- Categories ---

    def list_categories(self) -> List[Dict[str, Any]]:
        with self.session() as session:
            return [_row(c) for c in session.exec(select(Category).order_by(Category.id)).all()]

    def get_category(self, category_id: int) -> Dict[str, Any]:
        with self.session() as session:
            category = session.get(Category, category_id)
            if not category:
                raise RowNotFound("categories", category_id)
            return _row(category)

    def insert_category(self, payload: CategoryIn) -> Dict[str, Any]:
        with self.session() as session:
            category = Category(**payload.model_dump())
            session.add(category)
            session.commit()
            session.refresh(category)
            return _row(category)

    def update_category(self, category_id: int, payload: CategoryIn) -> Dict[str, Any]:
        with self.session() as session:
            category = session.get(Category, category_id)
            if not category:
                raise RowNotFound("categories", category_id)
            for key, value in payload.model_dump().items():
                setattr(category, key, value)
            session.add(category)
            session.commit()
            session.refresh(category)
            return _row(category)

    def delete_category(self, category_id: int) -> None:
        with self.session() as session:
            category = session.get(Category, category_id)
            if not category:
                raise RowNotFound("categories", category_id)
            session.delete(category)
            session.commit()

    def detach_category(self, name: str) -> int:
        """Clear the soft category reference on every product pointing at `name`"""
        with self.session() as session:
            products = session.exec(select(Product).where(Product.category == name)).all()
            for product in products:
                product.category = ""
                session.add(product)
            session.commit()
            return len(products)

    # --- Products ---

    def list_products(self) -> List[Dict[str, Any]]:
        with self.session() as session:
            products = session.exec(select(Product).order_by(Product.id)).all()
            images = session.exec(select(ProductImage).order_by(ProductImage.id)).all()

            images_by_product: Dict[int, List[str]] = {}
            for img in images:
                images_by_product.setdefault(img.productid, []).append(img.url)

            rows = []
            for p in products:
                row = _row(p)
                row["imageUrls"] = images_by_product.get(p.id, [])
                rows.append(row)
            return rows

    def get_product(self, product_id: int) -> Dict[str, Any]:
        with self.session() as session:
            product = session.get(Product, product_id)
            if not product:
                raise RowNotFound("products", product_id)
            row = _row(product)
            row["imageUrls"] = [
                i.url for i in session.exec(
                    select(ProductImage).where(ProductImage.productid == product_id).order_by(ProductImage.id)
                ).all()
            ]
            row["productdescriptions"] = [
                d.model_dump() for d in session.exec(
                    select(ProductDescription).where(ProductDescription.productid == product_id).order_by(ProductDescription.id)
                ).all()
            ]
            variants = []
            for v in session.exec(
                select(ProductVariant).where(ProductVariant.productid == product_id).order_by(ProductVariant.id)
            ).all():
                variant = v.model_dump()
                variant["productvariantoptions"] = [
                    o.model_dump() for o in session.exec(
                        select(ProductVariantOption).where(ProductVariantOption.variantid == v.id).order_by(ProductVariantOption.id)
                    ).all()
                ]
                variants.append(variant)
            row["productvariants"] = variants
            return row

    def _write_children(self, session: Session, product_id: int, payload: ProductIn) -> None:
        for url in payload.imageUrls:
            session.add(ProductImage(productid=product_id, url=url))
        for desc in payload.productdescriptions:
            session.add(ProductDescription(productid=product_id, title=desc.title, content=desc.content))
        for variant_in in payload.productvariants:
            variant = ProductVariant(productid=product_id, name=variant_in.name, ispublished=variant_in.ispublished)
            session.add(variant)
            session.flush()
            for option in variant_in.productvariantoptions:
                session.add(ProductVariantOption(variantid=variant.id, **option.model_dump()))

    def _delete_children(self, session: Session, product_id: int) -> None:
        variant_ids = session.exec(select(ProductVariant.id).where(ProductVariant.productid == product_id)).all()
        if variant_ids:
            session.exec(delete(ProductVariantOption).where(col(ProductVariantOption.variantid).in_(variant_ids)))
        session.exec(delete(ProductVariant).where(ProductVariant.productid == product_id))
        session.exec(delete(ProductDescription).where(ProductDescription.productid == product_id))
        session.exec(delete(ProductImage).where(ProductImage.productid == product_id))

    def insert_product(self, payload: ProductIn) -> Dict[str, Any]:
        with self.session() as session:
            product = Product(**payload.model_dump(include={
                "name", "price", "category", "labels", "ispublished", "discount", "tax",
            }))
            session.add(product)
            session.flush()
            self._write_children(session, product.id, payload)
            session.commit()
            product_id = product.id
        logger.info("Product %s created", product_id)
        return self.get_product(product_id)

    def update_product(self, product_id: int, payload: ProductIn) -> Dict[str, Any]:
        """Overwrites the row and replaces images, descriptions and variants wholesale"""
        with self.session() as session:
            product = session.get(Product, product_id)
            if not product:
                raise RowNotFound("products", product_id)
            for key, value in payload.model_dump(include={
                "name", "price", "category", "labels", "ispublished", "discount", "tax",
            }).items():
                setattr(product, key, value)
            session.add(product)
            self._delete_children(session, product_id)
            self._write_children(session, product_id, payload)
            session.commit()
        logger.info("Product %s updated", product_id)
        return self.get_product(product_id)

    def set_product_published(self, product_id: int, published: bool) -> Dict[str, Any]:
        with self.session() as session:
            product = session.get(Product, product_id)
            if not product:
                raise RowNotFound("products", product_id)
            product.ispublished = published
            session.add(product)
            session.commit()
            session.refresh(product)
            return _row(product)

    def delete_product(self, product_id: int) -> None:
        with self.session() as session:
            product = session.get(Product, product_id)
            if not product:
                raise RowNotFound("products", product_id)
            self._delete_children(session, product_id)
            session.delete(product)
            session.commit()
        logger.info("Product %s deleted", product_id)

    # --- Settings ---

    def get_settings(self) -> Dict[str, Any]:
        with self.session() as session:
            latest = session.exec(select(Branding).order_by(col(Branding.id).desc()).limit(1)).first()
            return dict(latest.data) if latest else {}

    def save_settings(self, data: Dict[str, Any]) -> Dict[str, Any]:
        with self.session() as session:
            row = Branding(data=data)
            session.add(row)
            session.commit()
            session.refresh(row)
            return dict(row.data)

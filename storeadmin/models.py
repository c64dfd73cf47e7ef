# storeadmin/models.py

"""
The Contract: Define what the store's tables look like

Table names follow the hosted backend (orders, categories, products ...),
so the same models work against the managed Postgres instance or the
local SQLite file used in development.
"""

import base64
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any
from enum import Enum
from sqlalchemy import Column, DateTime, JSON
from pydantic import BaseModel, ConfigDict
from sqlmodel import SQLModel, Field


# --- 1. Enums ---
# The declaration order IS the order lifecycle. workflow.py relies on it.
class OrderStatus(str, Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"


# --- 2. Database Tables ---

# Timestamps are stored in UTC. SQLite drops the offset, the gateway puts it back on read.
def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def timestamp_column(index: bool = False) -> Column:
    return Column(DateTime(timezone=True), index=index)


class Order(SQLModel, table=True):
    __tablename__ = "orders"

    id: Optional[int] = Field(default=None, primary_key=True)
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column(index=True))
    userid: Optional[str] = Field(default=None, index=True)
    totalprice: float = 0.0
    # Stored as plain text so out-of-band values written by other clients survive a read
    status: str = Field(default=OrderStatus.PENDING.value)
    checkoutdata: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    cartitems: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))


class OrderItem(SQLModel, table=True):
    __tablename__ = "order_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    orderid: Optional[int] = Field(default=None, foreign_key="orders.id")
    product: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    quantity: int = 1


class Category(SQLModel, table=True):
    __tablename__ = "categories"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    image_url: str = ""
    is_published: bool = Field(default=True)
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())


class Product(SQLModel, table=True):
    __tablename__ = "products"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    price: float = 0.0
    # Soft reference to Category.name, not a foreign key
    category: str = Field(default="", index=True)
    labels: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    ispublished: bool = Field(default=True)
    discount: float = 0.0
    tax: float = 0.0
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())


class ProductImage(SQLModel, table=True):
    __tablename__ = "productimages"

    id: Optional[int] = Field(default=None, primary_key=True)
    productid: int = Field(foreign_key="products.id", index=True)
    url: str


class ProductDescription(SQLModel, table=True):
    __tablename__ = "productdescriptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    productid: int = Field(foreign_key="products.id", index=True)
    title: str = ""
    content: str = ""


class ProductVariant(SQLModel, table=True):
    __tablename__ = "productvariants"

    id: Optional[int] = Field(default=None, primary_key=True)
    productid: int = Field(foreign_key="products.id", index=True)
    name: str = ""
    ispublished: bool = Field(default=True)


class ProductVariantOption(SQLModel, table=True):
    __tablename__ = "productvariantoptions"

    id: Optional[int] = Field(default=None, primary_key=True)
    variantid: int = Field(foreign_key="productvariants.id", index=True)
    name: str = ""
    price: float = 0.0
    ispublished: bool = Field(default=True)
    isoutofstock: bool = Field(default=False)
    isdefault: bool = Field(default=False)


class Branding(SQLModel, table=True):
    """
    App settings are saved wholesale: every save inserts a new row and
    the newest row wins on load.
    """
    __tablename__ = "branding"

    id: Optional[int] = Field(default=None, primary_key=True)
    data: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now, sa_column=timestamp_column())


# --- 3. Form payloads (not tables) ---
# Shapes the drawers submit. Nested children have no ids: a save replaces them.

class VariantOptionIn(SQLModel):
    name: str = ""
    price: float = 0.0
    ispublished: bool = True
    isoutofstock: bool = False
    isdefault: bool = False


class VariantIn(SQLModel):
    name: str = ""
    ispublished: bool = True
    productvariantoptions: List[VariantOptionIn] = []


class DescriptionIn(SQLModel):
    title: str = ""
    content: str = ""


class ProductIn(SQLModel):
    name: str
    price: float = 0.0
    category: str = ""
    labels: List[str] = []
    ispublished: bool = True
    discount: float = 0.0
    tax: float = 0.0
    imageUrls: List[str] = []
    productdescriptions: List[DescriptionIn] = []
    productvariants: List[VariantIn] = []


class CategoryIn(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    image_url: str = ""
    is_published: bool = True


class ImageUpload(SQLModel):
    """A file picked in a drawer, sent inline as base64"""
    filename: str
    content_base64: str

    def data(self) -> bytes:
        return base64.b64decode(self.content_base64, validate=True)


class AppSettings(BaseModel):
    """
    Branding document (logo, site text, menu, nav, slides, features,
    carousels). Saved and loaded wholesale; keys the admin does not know
    about are kept as they are.
    """
    model_config = ConfigDict(extra="allow")

    logoUrl: str = ""
    branding: Dict[str, Any] = {}

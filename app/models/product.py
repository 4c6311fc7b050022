# app/models/product.py
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Column
from sqlmodel import Field, SQLModel


def _now() -> datetime:
    return datetime.now(timezone.utc)


class Product(SQLModel, table=True):
    """
    Storefront listing for a vehicle product: wheels, exhausts, turbo kits
    and the like. `stock_quantity` drives the stock badge shown to shoppers.
    """

    __tablename__ = "products"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    name: str = Field(min_length=2, max_length=200, index=True)
    slug: str = Field(max_length=255, unique=True, index=True)

    sku: str | None = Field(default=None, max_length=100, index=True)
    part_number: str | None = Field(default=None, max_length=100, index=True)
    brand: str | None = Field(default=None, max_length=100, index=True)
    category: str | None = Field(default=None, max_length=100, index=True)
    description: str | None = None

    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)

    # Inactive listings stay in the table but disappear from the storefront.
    is_active: bool = Field(default=True, index=True)
    is_featured: bool = Field(default=False, index=True)

    hero_image_url: str | None = None

    created_at: datetime = Field(default_factory=_now)
    updated_at: datetime = Field(default_factory=_now)


class ProductImage(SQLModel, table=True):
    __tablename__ = "product_images"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)
    product_id: uuid.UUID = Field(foreign_key="products.id", index=True)
    image_url: str
    sort_order: int = Field(default=0, ge=0)  # gallery position, 0 first


class Part(SQLModel, table=True):
    """
    Replacement part. Carted and ordered like a product, but it has no
    slug, category or gallery, and it carries free-form specifications
    (e.g. {"thread": "M12x1.5", "material": "steel"}).
    """

    __tablename__ = "parts"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True, index=True)

    name: str = Field(min_length=2, max_length=200, index=True)
    sku: str | None = Field(default=None, max_length=100, index=True)
    part_number: str | None = Field(default=None, max_length=100, index=True)
    brand: str | None = Field(default=None, max_length=100, index=True)
    description: str | None = None

    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = Field(default=True, index=True)
    image_url: str | None = None

    specifications: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=_now)

# app/schemas/product.py
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Literal

from pydantic import ConfigDict, computed_field, field_validator
from sqlmodel import SQLModel, Field

from app.core.config import get_settings
from app.core.pricing import stock_status


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("field cannot be empty")
    return v


def _strip_optional(v: str | None) -> str | None:
    if v is None:
        return v
    return _strip_required(v)


class ProductCreate(SQLModel):
    """Admin payload for a new listing. Without `slug`, one is derived from `name`."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    slug: str | None = None
    sku: str | None = Field(default=None, max_length=100)
    part_number: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True
    is_featured: bool = False

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("slug", "sku", "part_number", "brand", "category")
    @classmethod
    def normalize_optional(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProductRead(SQLModel):
    """
    Product representation for clients, with the derived stock badge.
    """

    id: uuid.UUID
    name: str
    slug: str
    sku: str | None
    part_number: str | None
    brand: str | None
    category: str | None
    description: str | None
    price: Decimal
    stock_quantity: int
    is_active: bool
    is_featured: bool
    hero_image_url: str | None
    created_at: datetime
    updated_at: datetime

    @computed_field
    @property
    def stock_status(self) -> str:
        return stock_status(self.stock_quantity, get_settings().LOW_STOCK_THRESHOLD)


class ProductUpdate(SQLModel):
    """PATCH body; only fields present in the request are applied."""

    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    slug: str | None = None
    sku: str | None = Field(default=None, max_length=100)
    part_number: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    is_featured: bool | None = None
    hero_image_url: str | None = None

    @field_validator("name", "slug")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class ProductImageRead(SQLModel):
    """
    Read model for gallery images.
    """

    model_config = ConfigDict(extra="forbid")

    id: uuid.UUID
    product_id: uuid.UUID
    image_url: str
    sort_order: int


# ----- Parts -----


class PartCreate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(max_length=200)
    sku: str | None = Field(default=None, max_length=100)
    part_number: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal = Field(gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int = Field(default=0, ge=0)
    is_active: bool = True
    image_url: str | None = None
    specifications: dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return _strip_required(v)


class PartRead(SQLModel):
    id: uuid.UUID
    name: str
    sku: str | None
    part_number: str | None
    brand: str | None
    description: str | None
    price: Decimal
    stock_quantity: int
    is_active: bool
    image_url: str | None
    specifications: dict[str, Any] | None
    created_at: datetime

    @computed_field
    @property
    def stock_status(self) -> str:
        return stock_status(self.stock_quantity, get_settings().LOW_STOCK_THRESHOLD)


class PartUpdate(SQLModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, max_length=200)
    sku: str | None = Field(default=None, max_length=100)
    part_number: str | None = Field(default=None, max_length=100)
    brand: str | None = Field(default=None, max_length=100)
    description: str | None = None
    price: Decimal | None = Field(default=None, gt=0, max_digits=12, decimal_places=2)
    stock_quantity: int | None = Field(default=None, ge=0)
    is_active: bool | None = None
    image_url: str | None = None
    specifications: dict[str, Any] | None = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str | None) -> str | None:
        return _strip_optional(v)


class StockAdjust(SQLModel):
    """
    Admin restock / correction. `delta` may be negative; the resulting
    stock can never go below zero.
    """

    model_config = ConfigDict(extra="forbid")

    delta: int


# ----- Catalog search -----


class CatalogItem(SQLModel):
    """
    Flattened product-or-part row returned by catalog search.
    """

    id: uuid.UUID
    kind: Literal["product", "part"]
    name: str
    sku: str | None
    part_number: str | None
    brand: str | None
    category: str | None
    price: Decimal
    stock_quantity: int
    image_url: str | None
    stock_status: str


class CatalogSearchResult(SQLModel):
    query: str | None
    total: int
    items: list[CatalogItem]

# app/services/product_service.py
import logging
import re
import uuid
from decimal import Decimal
from typing import Iterable

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.pricing import stock_status
from app.core.storage_utils import (
    delete_public_url,
    generate_filename,
    upload_to_storage,
    validate_image,
)
from app.core.time_utils import utcnow
from app.models.product import Part, Product, ProductImage
from app.repositories.product_repo import ProductRepository
from app.schemas.product import (
    CatalogItem,
    CatalogSearchResult,
    PartCreate,
    PartUpdate,
    ProductCreate,
    ProductUpdate,
)

logger = logging.getLogger(__name__)

_NON_SLUG_CHARS = re.compile(r"[^a-z0-9]+")

# Columns a PATCH may not null out; an explicit null for them is ignored.
_REQUIRED_PRODUCT_FIELDS = frozenset({"name", "price", "stock_quantity", "is_active", "is_featured"})
_REQUIRED_PART_FIELDS = frozenset({"name", "price", "stock_quantity", "is_active"})


def _missing(what: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{what} not found")


def _apply_changes(target, changes: dict, required: frozenset[str]) -> None:
    for field, value in changes.items():
        if value is None and field in required:
            continue
        setattr(target, field, value)


class ProductService:
    """
    Catalog management: products with their hero and gallery images,
    standalone parts, stock levels and the combined storefront search.

    Routers decide who may call what; everything here assumes the caller
    is already authorized.
    """

    def __init__(self, repo: ProductRepository):
        self.repo = repo

    # ----- Slugs and stock -----

    @staticmethod
    def _slugify(raw: str) -> str:
        """'Turbo Kit  GT-35' -> 'turbo-kit-gt-35'; falls back to 'product'."""
        return _NON_SLUG_CHARS.sub("-", raw.strip().lower()).strip("-") or "product"

    def _free_slug(self, session: Session, wanted: str) -> str:
        candidate, n = wanted, 1
        while self.repo.get_by_slug(session, candidate) is not None:
            n += 1
            candidate = f"{wanted}-{n}"
        return candidate

    @staticmethod
    def _adjusted_stock(current: int, delta: int) -> int:
        result = current + delta
        if result < 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Stock cannot go below zero (current {current}, delta {delta})",
            )
        return result

    # ----- Products -----

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        featured: bool | None = None,
        category: str | None = None,
    ) -> list[Product]:
        return self.repo.list_products(
            session,
            skip=skip,
            limit=limit,
            only_active=only_active,
            featured=featured,
            category=category,
        )

    def get_product(self, session: Session, product_id: uuid.UUID) -> Product:
        product = self.repo.get_by_id(session, product_id)
        if product is None:
            raise _missing("Product")
        return product

    def get_product_by_slug(self, session: Session, slug: str) -> Product:
        product = self.repo.get_by_slug(session, slug)
        if product is None:
            raise _missing("Product")
        return product

    def create_product(self, session: Session, payload: ProductCreate) -> Product:
        # An explicit slug is normalized the same way as one derived from the name.
        slug = self._free_slug(session, self._slugify(payload.slug or payload.name))
        product = self.repo.create(session, Product(**payload.model_dump(exclude={"slug"}), slug=slug))
        logger.info("Product %s listed as /%s", product.id, product.slug)
        return product

    def update_product(
        self,
        session: Session,
        product_id: uuid.UUID,
        payload: ProductUpdate,
    ) -> Product:
        product = self.get_product(session, product_id)
        changes = payload.model_dump(exclude_unset=True)

        requested_slug = changes.pop("slug", None)
        if requested_slug is not None:
            normalized = self._slugify(requested_slug)
            if normalized != product.slug:
                product.slug = self._free_slug(session, normalized)

        _apply_changes(product, changes, _REQUIRED_PRODUCT_FIELDS)
        product.updated_at = utcnow()
        return self.repo.update(session, product)

    def adjust_product_stock(self, session: Session, product_id: uuid.UUID, delta: int) -> Product:
        product = self.get_product(session, product_id)
        product.stock_quantity = self._adjusted_stock(product.stock_quantity, delta)
        product.updated_at = utcnow()
        logger.info("Stock of product %s moved %+d to %d", product.id, delta, product.stock_quantity)
        return self.repo.update(session, product)

    def list_low_stock(self, session: Session) -> list[Product]:
        return self.repo.list_low_stock(session, get_settings().LOW_STOCK_THRESHOLD)

    def delete_product(self, session: Session, product_id: uuid.UUID) -> None:
        """Remove the product, its gallery rows and every stored image file."""
        product = self.get_product(session, product_id)

        if product.hero_image_url:
            delete_public_url(product.hero_image_url)
        for image in self.repo.list_images_for_product(session, product_id):
            delete_public_url(image.image_url)
            self.repo.delete_image(session, image)

        self.repo.delete(session, product)
        logger.info("Product %s removed from catalog", product_id)

    # ----- Product images -----

    def set_hero_image(
        self,
        session: Session,
        product_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Product:
        """
        Store the main listing photo at products/<id>/hero.<ext>. Any
        previous hero file is deleted first, since its extension may differ.
        """
        product = self.get_product(session, product_id)
        ext = validate_image(content_type, file_bytes)

        if product.hero_image_url:
            delete_public_url(product.hero_image_url)

        product.hero_image_url = upload_to_storage(
            f"products/{product.id}/hero.{ext}", file_bytes, content_type
        )
        product.updated_at = utcnow()
        return self.repo.update(session, product)

    def list_images(self, session: Session, product_id: uuid.UUID) -> list[ProductImage]:
        self.get_product(session, product_id)
        return self.repo.list_images_for_product(session, product_id)

    def add_gallery_images(
        self,
        session: Session,
        product_id: uuid.UUID,
        files: Iterable[tuple[str, bytes]],
    ) -> list[ProductImage]:
        """
        Append photos to the gallery. `files` yields (content_type, bytes)
        pairs; new images sort after the existing ones.
        """
        product = self.get_product(session, product_id)
        position = len(self.repo.list_images_for_product(session, product.id))

        added: list[ProductImage] = []
        for content_type, file_bytes in files:
            ext = validate_image(content_type, file_bytes)
            url = upload_to_storage(
                f"products/{product.id}/gallery/{generate_filename(ext)}", file_bytes, content_type
            )
            added.append(
                self.repo.create_image(
                    session,
                    ProductImage(product_id=product.id, image_url=url, sort_order=position),
                )
            )
            position += 1
        return added

    def remove_gallery_image(self, session: Session, product_id: uuid.UUID, image_id: uuid.UUID) -> None:
        image = self.repo.get_image_by_id(session, image_id)
        # An image id that belongs to another product is treated as unknown.
        if image is None or image.product_id != product_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Image not found for this product",
            )
        delete_public_url(image.image_url)
        self.repo.delete_image(session, image)

    # ----- Parts -----

    def list_parts(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Part]:
        return self.repo.list_parts(session, skip=skip, limit=limit, only_active=only_active)

    def get_part(self, session: Session, part_id: uuid.UUID) -> Part:
        part = self.repo.get_part(session, part_id)
        if part is None:
            raise _missing("Part")
        return part

    def create_part(self, session: Session, payload: PartCreate) -> Part:
        part = self.repo.save_part(session, Part(**payload.model_dump()))
        logger.info("Part %s listed", part.id)
        return part

    def update_part(self, session: Session, part_id: uuid.UUID, payload: PartUpdate) -> Part:
        part = self.get_part(session, part_id)
        _apply_changes(part, payload.model_dump(exclude_unset=True), _REQUIRED_PART_FIELDS)
        return self.repo.save_part(session, part)

    def adjust_part_stock(self, session: Session, part_id: uuid.UUID, delta: int) -> Part:
        part = self.get_part(session, part_id)
        part.stock_quantity = self._adjusted_stock(part.stock_quantity, delta)
        logger.info("Stock of part %s moved %+d to %d", part.id, delta, part.stock_quantity)
        return self.repo.save_part(session, part)

    def delete_part(self, session: Session, part_id: uuid.UUID) -> None:
        part = self.get_part(session, part_id)
        if part.image_url:
            delete_public_url(part.image_url)
        self.repo.delete_part(session, part)

    def set_part_image(
        self,
        session: Session,
        part_id: uuid.UUID,
        content_type: str,
        file_bytes: bytes,
    ) -> Part:
        part = self.get_part(session, part_id)
        ext = validate_image(content_type, file_bytes)
        if part.image_url:
            delete_public_url(part.image_url)
        part.image_url = upload_to_storage(f"parts/{part.id}/image.{ext}", file_bytes, content_type)
        return self.repo.save_part(session, part)

    # ----- Storefront search -----

    @staticmethod
    def _as_catalog_item(listing: Product | Part, threshold: int) -> CatalogItem:
        is_part = isinstance(listing, Part)
        return CatalogItem(
            id=listing.id,
            kind="part" if is_part else "product",
            name=listing.name,
            sku=listing.sku,
            part_number=listing.part_number,
            brand=listing.brand,
            category=None if is_part else listing.category,
            price=listing.price,
            stock_quantity=listing.stock_quantity,
            image_url=listing.image_url if is_part else listing.hero_image_url,
            stock_status=stock_status(listing.stock_quantity, threshold),
        )

    def search_catalog(
        self,
        session: Session,
        query: str | None = None,
        category: str | None = None,
        brand: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        kind: str | None = None,
        limit: int = 50,
    ) -> CatalogSearchResult:
        """
        One name-sorted result list across products and parts.

        Parts carry no category, so any category filter leaves them out.
        """
        if min_price is not None and max_price is not None and min_price > max_price:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="min_price cannot exceed max_price",
            )

        query = (query or "").strip() or None
        listings: list[Product | Part] = []

        if kind in (None, "product"):
            listings.extend(
                self.repo.search_products(session, query, category, brand, min_price, max_price, limit)
            )
        if kind in (None, "part") and not category:
            listings.extend(self.repo.search_parts(session, query, brand, min_price, max_price, limit))

        threshold = get_settings().LOW_STOCK_THRESHOLD
        items = sorted(
            (self._as_catalog_item(listing, threshold) for listing in listings),
            key=lambda item: item.name.lower(),
        )[:limit]
        return CatalogSearchResult(query=query, total=len(items), items=items)

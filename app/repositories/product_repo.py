# app/repositories/product_repo.py
import uuid
from decimal import Decimal

from sqlalchemy import or_
from sqlmodel import Session, col, select

from app.models.product import Part, Product, ProductImage

_SEARCHABLE_FIELDS = ("name", "description", "brand", "sku", "part_number")


def _persist(session: Session, row):
    session.add(row)
    session.commit()
    session.refresh(row)
    return row


def _remove(session: Session, row) -> None:
    session.delete(row)
    session.commit()


def _filtered(stmt, model, query: str | None, brand: str | None, min_price, max_price):
    """Text, brand and price filters shared by product and part search."""
    if query:
        pattern = f"%{query}%"
        stmt = stmt.where(
            or_(*(col(getattr(model, field)).ilike(pattern) for field in _SEARCHABLE_FIELDS))
        )
    if brand:
        stmt = stmt.where(col(model.brand).ilike(brand))
    if min_price is not None:
        stmt = stmt.where(model.price >= min_price)
    if max_price is not None:
        stmt = stmt.where(model.price <= max_price)
    return stmt


class ProductRepository:
    """Catalog tables: products, their gallery images, and parts."""

    # ----- Products -----

    def get_by_id(self, session: Session, product_id: uuid.UUID) -> Product | None:
        return session.get(Product, product_id)

    def get_by_ids(self, session: Session, product_ids: list[uuid.UUID]) -> list[Product]:
        if not product_ids:
            return []
        return list(session.exec(select(Product).where(col(Product.id).in_(product_ids))).all())

    def get_by_slug(self, session: Session, slug: str) -> Product | None:
        return session.exec(select(Product).where(Product.slug == slug)).first()

    def list_products(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
        featured: bool | None = None,
        category: str | None = None,
    ) -> list[Product]:
        stmt = select(Product)
        if only_active:
            stmt = stmt.where(col(Product.is_active).is_(True))
        if featured is not None:
            stmt = stmt.where(Product.is_featured == featured)
        if category:
            stmt = stmt.where(Product.category == category)
        stmt = stmt.order_by(col(Product.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def search_products(
        self,
        session: Session,
        query: str | None = None,
        category: str | None = None,
        brand: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        limit: int = 50,
    ) -> list[Product]:
        """Active products matching `query` as a case-insensitive substring."""
        stmt = select(Product).where(col(Product.is_active).is_(True))
        stmt = _filtered(stmt, Product, query, brand, min_price, max_price)
        if category:
            stmt = stmt.where(col(Product.category).ilike(category))
        return list(session.exec(stmt.order_by(col(Product.name)).limit(limit)).all())

    def list_low_stock(self, session: Session, threshold: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(col(Product.is_active).is_(True))
            .where(Product.stock_quantity <= threshold)
            .order_by(col(Product.stock_quantity))
        )
        return list(session.exec(stmt).all())

    def create(self, session: Session, product: Product) -> Product:
        return _persist(session, product)

    def update(self, session: Session, product: Product) -> Product:
        return _persist(session, product)

    def delete(self, session: Session, product: Product) -> None:
        _remove(session, product)

    # ----- Gallery -----

    def list_images_for_product(self, session: Session, product_id: uuid.UUID) -> list[ProductImage]:
        stmt = (
            select(ProductImage)
            .where(ProductImage.product_id == product_id)
            .order_by(col(ProductImage.sort_order))
        )
        return list(session.exec(stmt).all())

    def get_image_by_id(self, session: Session, image_id: uuid.UUID) -> ProductImage | None:
        return session.get(ProductImage, image_id)

    def create_image(self, session: Session, image: ProductImage) -> ProductImage:
        return _persist(session, image)

    def delete_image(self, session: Session, image: ProductImage) -> None:
        _remove(session, image)

    # ----- Parts -----

    def get_part(self, session: Session, part_id: uuid.UUID) -> Part | None:
        return session.get(Part, part_id)

    def get_parts_by_ids(self, session: Session, part_ids: list[uuid.UUID]) -> list[Part]:
        if not part_ids:
            return []
        return list(session.exec(select(Part).where(col(Part.id).in_(part_ids))).all())

    def list_parts(
        self,
        session: Session,
        skip: int = 0,
        limit: int = 50,
        only_active: bool = True,
    ) -> list[Part]:
        stmt = select(Part)
        if only_active:
            stmt = stmt.where(col(Part.is_active).is_(True))
        stmt = stmt.order_by(col(Part.created_at).desc()).offset(skip).limit(limit)
        return list(session.exec(stmt).all())

    def search_parts(
        self,
        session: Session,
        query: str | None = None,
        brand: str | None = None,
        min_price: Decimal | None = None,
        max_price: Decimal | None = None,
        limit: int = 50,
    ) -> list[Part]:
        stmt = _filtered(
            select(Part).where(col(Part.is_active).is_(True)), Part, query, brand, min_price, max_price
        )
        return list(session.exec(stmt.order_by(col(Part.name)).limit(limit)).all())

    def save_part(self, session: Session, part: Part) -> Part:
        return _persist(session, part)

    def delete_part(self, session: Session, part: Part) -> None:
        _remove(session, part)

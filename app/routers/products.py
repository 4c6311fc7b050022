# app/routers/products.py
import logging
import uuid
from decimal import Decimal
from typing import Literal

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlmodel import Session

from app.core.auth import require_admin
from app.core.storage_utils import read_upload
from app.database import get_session
from app.repositories.product_repo import ProductRepository
from app.repositories.subscription_repo import SubscriptionRepository
from app.repositories.user_repo import UserRepository
from app.schemas.product import (
    CatalogSearchResult,
    PartCreate,
    PartRead,
    PartUpdate,
    ProductCreate,
    ProductImageRead,
    ProductRead,
    ProductUpdate,
    StockAdjust,
)
from app.services.notification_service import NotificationService
from app.services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products", tags=["Products"])
parts_router = APIRouter(prefix="/parts", tags=["Parts"])
catalog_router = APIRouter(prefix="/catalog", tags=["Catalog"])

ADMIN_ONLY = [Depends(require_admin)]

catalog = ProductRepository()
service = ProductService(catalog)
announcer = NotificationService(SubscriptionRepository(), catalog, UserRepository())


def _announce_listing(session: Session, kind: str, item_id: uuid.UUID) -> None:
    result = announcer.notify_new_listing(session, kind, item_id)
    logger.info(
        "Announced %s %s: %d delivered, %d failed",
        kind,
        item_id,
        result.success_count,
        result.fail_count,
    )


# -------- Products (storefront) --------


@router.get("", response_model=list[ProductRead])
def browse_products(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    only_active: bool = True,
    featured: bool | None = None,
    category: str | None = None,
    session: Session = Depends(get_session),
):
    return service.list_products(
        session,
        skip=skip,
        limit=limit,
        only_active=only_active,
        featured=featured,
        category=category,
    )


# Registered before "/{product_id}" so the literal path wins.
@router.get("/low-stock", response_model=list[ProductRead], dependencies=ADMIN_ONLY)
def low_stock_products(session: Session = Depends(get_session)):
    return service.list_low_stock(session)


@router.get("/slug/{slug}", response_model=ProductRead)
def product_by_slug(slug: str, session: Session = Depends(get_session)):
    return service.get_product_by_slug(session, slug)


@router.get("/{product_id}", response_model=ProductRead)
def product_detail(product_id: uuid.UUID, session: Session = Depends(get_session)):
    return service.get_product(session, product_id)


@router.get("/{product_id}/images", response_model=list[ProductImageRead])
def product_gallery(product_id: uuid.UUID, session: Session = Depends(get_session)):
    return service.list_images(session, product_id)


# -------- Products (admin) --------


@router.post(
    "",
    response_model=ProductRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=ADMIN_ONLY,
)
def list_new_product(
    payload: ProductCreate,
    notify: bool = False,
    session: Session = Depends(get_session),
):
    """
    Add a product to the catalog. With `?notify=true` every subscriber
    who has not heard about it yet gets an announcement email.
    """
    product = service.create_product(session, payload)
    if notify:
        _announce_listing(session, "product", product.id)
    return product


@router.patch("/{product_id}", response_model=ProductRead, dependencies=ADMIN_ONLY)
def edit_product(
    product_id: uuid.UUID,
    payload: ProductUpdate,
    session: Session = Depends(get_session),
):
    return service.update_product(session, product_id, payload)


@router.post("/{product_id}/stock", response_model=ProductRead, dependencies=ADMIN_ONLY)
def restock_product(
    product_id: uuid.UUID,
    payload: StockAdjust,
    session: Session = Depends(get_session),
):
    """Apply a signed stock delta; the result may not drop below zero."""
    return service.adjust_product_stock(session, product_id, payload.delta)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=ADMIN_ONLY)
def delist_product(product_id: uuid.UUID, session: Session = Depends(get_session)):
    service.delete_product(session, product_id)


@router.post("/{product_id}/hero-image", response_model=ProductRead, dependencies=ADMIN_ONLY)
def replace_hero_image(
    product_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    content_type, file_bytes = read_upload(file)
    return service.set_hero_image(
        session=session,
        product_id=product_id,
        content_type=content_type,
        file_bytes=file_bytes,
    )


@router.post("/{product_id}/gallery", response_model=list[ProductImageRead], dependencies=ADMIN_ONLY)
def add_gallery_photos(
    product_id: uuid.UUID,
    files: list[UploadFile] = File(...),
    session: Session = Depends(get_session),
):
    if not files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files uploaded")
    return service.add_gallery_images(session, product_id, [read_upload(f) for f in files])


@router.delete("/{product_id}/gallery/{image_id}", dependencies=ADMIN_ONLY)
def remove_gallery_photo(
    product_id: uuid.UUID,
    image_id: uuid.UUID,
    session: Session = Depends(get_session),
) -> dict[str, str]:
    service.remove_gallery_image(session, product_id, image_id)
    return {"message": "Gallery image deleted successfully"}


# -------- Parts --------


@parts_router.get("", response_model=list[PartRead])
def browse_parts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=200),
    only_active: bool = True,
    session: Session = Depends(get_session),
):
    return service.list_parts(session, skip=skip, limit=limit, only_active=only_active)


@parts_router.get("/{part_id}", response_model=PartRead)
def part_detail(part_id: uuid.UUID, session: Session = Depends(get_session)):
    return service.get_part(session, part_id)


@parts_router.post(
    "",
    response_model=PartRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=ADMIN_ONLY,
)
def list_new_part(
    payload: PartCreate,
    notify: bool = False,
    session: Session = Depends(get_session),
):
    part = service.create_part(session, payload)
    if notify:
        _announce_listing(session, "part", part.id)
    return part


@parts_router.patch("/{part_id}", response_model=PartRead, dependencies=ADMIN_ONLY)
def edit_part(part_id: uuid.UUID, payload: PartUpdate, session: Session = Depends(get_session)):
    return service.update_part(session, part_id, payload)


@parts_router.post("/{part_id}/stock", response_model=PartRead, dependencies=ADMIN_ONLY)
def restock_part(part_id: uuid.UUID, payload: StockAdjust, session: Session = Depends(get_session)):
    return service.adjust_part_stock(session, part_id, payload.delta)


@parts_router.post("/{part_id}/image", response_model=PartRead, dependencies=ADMIN_ONLY)
def replace_part_image(
    part_id: uuid.UUID,
    file: UploadFile = File(...),
    session: Session = Depends(get_session),
):
    content_type, file_bytes = read_upload(file)
    return service.set_part_image(session, part_id, content_type, file_bytes)


@parts_router.delete("/{part_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=ADMIN_ONLY)
def delist_part(part_id: uuid.UUID, session: Session = Depends(get_session)):
    service.delete_part(session, part_id)


# -------- Search --------


@catalog_router.get("/search", response_model=CatalogSearchResult)
def search(
    q: str | None = None,
    category: str | None = None,
    brand: str | None = None,
    min_price: Decimal | None = None,
    max_price: Decimal | None = None,
    kind: Literal["product", "part"] | None = None,
    limit: int = Query(50, ge=1, le=200),
    session: Session = Depends(get_session),
):
    """
    Case-insensitive match on name, description, brand, SKU and part
    number across products and parts.
    """
    return service.search_catalog(
        session,
        query=q,
        category=category,
        brand=brand,
        min_price=min_price,
        max_price=max_price,
        kind=kind,
        limit=limit,
    )

# app/services/cart_service.py
import uuid

from fastapi import HTTPException, status
from sqlmodel import Session

from app.core.config import get_settings
from app.core.pricing import ZERO, compute_tax, shipping_for_subtotal, to_money
from app.models.cart import CartItem
from app.models.product import Part, Product
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import (
    CartItemCreate,
    CartItemRead,
    CartItemUpdate,
    CartSummary,
)


def _empty_cart() -> CartSummary:
    return CartSummary(items=[], total_quantity=0, subtotal=ZERO, shipping=ZERO, tax=ZERO, total=ZERO)


def _line_read(line: CartItem) -> CartItemRead:
    return CartItemRead(
        id=line.id,
        user_id=line.user_id,
        item_id=line.item_id,
        is_part=line.is_part,
        quantity=line.quantity,
        snapshot_price=line.snapshot_price,
        line_total=to_money(line.snapshot_price * line.quantity),
        item_name=line.item_name,
        item_sku=line.item_sku,
        item_image_url=line.item_image_url,
        created_at=line.created_at,
    )


class CartService:
    """
    Customer carts holding products and parts side by side.

    Each line remembers the price the listing had when it was last added
    (`snapshot_price`); checkout re-prices from the live catalog anyway.
    Quantities are checked against stock on every change but stock is
    never reserved.
    """

    def __init__(self, cart_repo: CartRepository, product_repo: ProductRepository):
        self.cart_repo = cart_repo
        self.product_repo = product_repo

    def _sellable_listing(self, session: Session, item_id: uuid.UUID, is_part: bool) -> Product | Part:
        label = "Part" if is_part else "Product"
        if is_part:
            listing = self.product_repo.get_part(session, item_id)
        else:
            listing = self.product_repo.get_by_id(session, item_id)

        if listing is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{label} not found")
        if not listing.is_active:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"{label} is inactive")
        return listing

    @staticmethod
    def _check_stock(listing: Product | Part, wanted: int) -> None:
        if wanted > listing.stock_quantity:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Not enough stock available (only {listing.stock_quantity} left)",
            )

    def _line_or_404(self, session: Session, user_id: uuid.UUID, item_id: uuid.UUID, is_part: bool) -> CartItem:
        line = self.cart_repo.get_item(session, user_id, item_id, is_part)
        if line is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not in cart")
        return line

    def get_cart_summary(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        """
        Lines plus a price preview: shipping and tax are computed exactly as
        checkout would, before any coupon.
        """
        lines = [_line_read(line) for line in self.cart_repo.list_for_user(session, user_id)]
        if not lines:
            return _empty_cart()

        settings = get_settings()
        subtotal = to_money(sum((line.line_total for line in lines), ZERO))
        shipping = shipping_for_subtotal(
            subtotal,
            settings.FREE_SHIPPING_THRESHOLD,
            settings.FLAT_SHIPPING_RATE,
        )
        tax = compute_tax(subtotal, settings.TAX_RATE)

        return CartSummary(
            items=lines,
            total_quantity=sum(line.quantity for line in lines),
            subtotal=subtotal,
            shipping=shipping,
            tax=tax,
            total=to_money(subtotal + shipping + tax),
        )

    def add_to_cart(self, session: Session, user_id: uuid.UUID, payload: CartItemCreate) -> CartSummary:
        """
        Adding a listing that is already in the cart bumps its quantity and
        refreshes its price snapshot.
        """
        listing = self._sellable_listing(session, payload.item_id, payload.is_part)
        line = self.cart_repo.get_item(session, user_id, payload.item_id, payload.is_part)

        if line is not None:
            combined = line.quantity + payload.quantity
            self._check_stock(listing, combined)
            line.quantity = combined
            line.snapshot_price = listing.price
        else:
            self._check_stock(listing, payload.quantity)
            line = CartItem(
                user_id=user_id,
                product_id=None if payload.is_part else listing.id,
                part_id=listing.id if payload.is_part else None,
                is_part=payload.is_part,
                quantity=payload.quantity,
                snapshot_price=listing.price,
                item_name=listing.name,
                item_sku=listing.sku,
                item_image_url=listing.image_url if payload.is_part else listing.hero_image_url,
            )

        self.cart_repo.save(session, line)
        return self.get_cart_summary(session, user_id)

    def update_quantity(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        payload: CartItemUpdate,
        is_part: bool = False,
    ) -> CartSummary:
        line = self._line_or_404(session, user_id, item_id, is_part)
        self._check_stock(self._sellable_listing(session, item_id, is_part), payload.quantity)

        line.quantity = payload.quantity
        self.cart_repo.save(session, line)
        return self.get_cart_summary(session, user_id)

    def remove_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        is_part: bool = False,
    ) -> CartSummary:
        self.cart_repo.delete(session, self._line_or_404(session, user_id, item_id, is_part))
        return self.get_cart_summary(session, user_id)

    def clear_cart(self, session: Session, user_id: uuid.UUID) -> CartSummary:
        self.cart_repo.clear_user_cart(session, user_id)
        return _empty_cart()

# app/routers/cart.py
import uuid

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_user
from app.database import get_session
from app.models.user import User
from app.repositories.cart_repo import CartRepository
from app.repositories.product_repo import ProductRepository
from app.schemas.cart import CartItemCreate, CartItemUpdate, CartSummary
from app.services.cart_service import CartService

# Carts belong to customers only; require_user turns admins away with 403.
router = APIRouter(prefix="/cart", tags=["Cart"], dependencies=[Depends(require_user)])

service = CartService(CartRepository(), ProductRepository())


@router.get("", response_model=CartSummary)
def view_cart(
    session: Session = Depends(get_session),
    shopper: User = Depends(require_user),
):
    """Cart lines with subtotal, shipping, tax and total already priced."""
    return service.get_cart_summary(session, shopper.id)


@router.post("", response_model=CartSummary)
def put_in_cart(
    payload: CartItemCreate,
    session: Session = Depends(get_session),
    shopper: User = Depends(require_user),
):
    return service.add_to_cart(session, shopper.id, payload)


@router.patch("/{item_id}", response_model=CartSummary)
def change_line_quantity(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    is_part: bool = False,
    session: Session = Depends(get_session),
    shopper: User = Depends(require_user),
):
    """
    Set the quantity of one cart line.

    `item_id` is a product id unless `?is_part=true`, in which case it
    names a part. The new quantity is checked against stock.
    """
    return service.update_quantity(
        session=session,
        user_id=shopper.id,
        item_id=item_id,
        payload=payload,
        is_part=is_part,
    )


@router.delete("/{item_id}", response_model=CartSummary)
def drop_line(
    item_id: uuid.UUID,
    is_part: bool = False,
    session: Session = Depends(get_session),
    shopper: User = Depends(require_user),
):
    return service.remove_item(session, shopper.id, item_id, is_part)


@router.delete("", response_model=CartSummary)
def empty_cart(
    session: Session = Depends(get_session),
    shopper: User = Depends(require_user),
):
    return service.clear_cart(session, shopper.id)

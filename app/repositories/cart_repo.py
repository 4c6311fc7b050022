# app/repositories/cart_repo.py
import uuid

from sqlmodel import Session, col, select

from app.models.cart import CartItem


class CartRepository:
    """
    Persistence for cart lines. A line is keyed by (user, listing kind,
    listing id), so the same product can sit in a cart only once.
    """

    def list_for_user(self, session: Session, user_id: uuid.UUID) -> list[CartItem]:
        stmt = select(CartItem).where(CartItem.user_id == user_id).order_by(col(CartItem.created_at))
        return list(session.exec(stmt).all())

    def get_item(
        self,
        session: Session,
        user_id: uuid.UUID,
        item_id: uuid.UUID,
        is_part: bool = False,
    ) -> CartItem | None:
        listing_column = CartItem.part_id if is_part else CartItem.product_id
        stmt = (
            select(CartItem)
            .where(CartItem.user_id == user_id)
            .where(CartItem.is_part == is_part)
            .where(listing_column == item_id)
        )
        return session.exec(stmt).first()

    def save(self, session: Session, item: CartItem) -> CartItem:
        session.add(item)
        session.commit()
        session.refresh(item)
        return item

    def delete(self, session: Session, item: CartItem) -> None:
        session.delete(item)
        session.commit()

    def clear_user_cart(self, session: Session, user_id: uuid.UUID, commit: bool = True) -> None:
        """
        Remove all of a user's lines.

        Checkout passes commit=False so the deletes land in the same
        transaction as the new order.
        """
        for line in self.list_for_user(session, user_id):
            session.delete(line)
        if commit:
            session.commit()
        else:
            session.flush()

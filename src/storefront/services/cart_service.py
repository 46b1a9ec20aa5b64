"""Cart business logic"""
from sqlalchemy.orm import Session
from storefront.models.cart import CartItem
from storefront.models.product import Product
from storefront.models.user import User
from storefront.services.errors import NotFoundError
from typing import List, Optional
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class CartService:
    """
    Per-user cart keyed by (user_id, product_id).

    Every mutation is a single upsert or delete of one row; concurrent
    writes to the same row are last-write-wins.
    """

    @staticmethod
    def _require_user(db: Session, user_id: str):
        if not db.query(User.id).filter(User.id == user_id).first():
            raise NotFoundError(f"User {user_id} not found")

    @staticmethod
    def _require_product(db: Session, product_id: str) -> Product:
        product = db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError(f"Product {product_id} not found")
        return product

    @staticmethod
    def _get_item(db: Session, user_id: str, product_id: str) -> Optional[CartItem]:
        return (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id, CartItem.product_id == product_id)
            .first()
        )

    @staticmethod
    def get_cart(db: Session, user_id: str) -> List[CartItem]:
        """Read all cart lines of a user"""
        with tracer.start_as_current_span("cart_service.get_cart") as span:
            span.set_attribute("user.id", user_id)
            items = db.query(CartItem).filter(CartItem.user_id == user_id).order_by(CartItem.id).all()
            span.set_attribute("cart.lines", len(items))
            return items

    @staticmethod
    def add_item(db: Session, user_id: str, product_id: str, quantity: int = 1) -> List[CartItem]:
        """Add ``quantity`` units of a product"""
        with tracer.start_as_current_span("cart_service.add_item") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("product.id", product_id)

            if quantity < 1:
                raise ValueError("Quantity must be a positive integer")
            CartService._require_user(db, user_id)
            CartService._require_product(db, product_id)

            item = CartService._get_item(db, user_id, product_id)
            if item:
                item.quantity += quantity
            else:
                db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
            db.commit()

            logger.info(f"Added {quantity} x {product_id} to cart of {user_id}")
            return CartService.get_cart(db, user_id)

    @staticmethod
    def remove_one(db: Session, user_id: str, product_id: str) -> List[CartItem]:
        """Decrement one unit; the line disappears at zero"""
        item = CartService._get_item(db, user_id, product_id)
        if not item:
            raise NotFoundError(f"Product {product_id} is not in the cart")

        if item.quantity > 1:
            item.quantity -= 1
        else:
            db.delete(item)
        db.commit()

        return CartService.get_cart(db, user_id)

    @staticmethod
    def set_quantity(db: Session, user_id: str, product_id: str, quantity: int) -> List[CartItem]:
        """Set an absolute quantity; zero deletes the line"""
        with tracer.start_as_current_span("cart_service.set_quantity") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("product.id", product_id)
            span.set_attribute("quantity", quantity)

            if quantity < 0:
                raise ValueError("Quantity must not be negative")

            item = CartService._get_item(db, user_id, product_id)
            if quantity == 0:
                if item:
                    db.delete(item)
                    db.commit()
                return CartService.get_cart(db, user_id)

            if item:
                item.quantity = quantity
            else:
                CartService._require_user(db, user_id)
                CartService._require_product(db, product_id)
                db.add(CartItem(user_id=user_id, product_id=product_id, quantity=quantity))
            db.commit()

            return CartService.get_cart(db, user_id)

    @staticmethod
    def delete_item(db: Session, user_id: str, product_id: str) -> List[CartItem]:
        """Remove one cart line"""
        item = CartService._get_item(db, user_id, product_id)
        if not item:
            raise NotFoundError(f"Product {product_id} is not in the cart")

        db.delete(item)
        db.commit()

        return CartService.get_cart(db, user_id)

    @staticmethod
    def clear_cart(db: Session, user_id: str, commit: bool = True) -> int:
        """
        Delete every cart line of a user.

        With ``commit=False`` the delete joins the caller's transaction.
        """
        deleted = (
            db.query(CartItem)
            .filter(CartItem.user_id == user_id)
            .delete()
        )
        if commit:
            db.commit()

        logger.info(f"Cleared {deleted} cart lines of user {user_id}")
        return deleted

"""FastAPI routes for the per-user cart"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.services.auth import Principal, require_owner_or_admin
from storefront.services.cart_service import CartService
from storefront.services.errors import NotFoundError
from storefront.models.cart import CartItem
from storefront.models.schemas import (
    CartItemAdd, CartItemRemoveOne, CartItemSet, CartLineResponse, CartResponse
)
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


def cart_response(user_id: str, items: List[CartItem]) -> CartResponse:
    lines = [
        CartLineResponse(
            product_id=item.product_id,
            quantity=item.quantity,
            name=item.product.name,
            image_url=item.product.main_image,
            price=float(item.product.price),
            offer_price=float(item.product.offer_price) if item.product.offer_price is not None else None
        )
        for item in items
    ]
    return CartResponse(
        user_id=user_id,
        items=lines,
        total_quantity=sum(line.quantity for line in lines)
    )


@router.get("/{user_id}", response_model=CartResponse)
def get_cart(
    user_id: str,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Read the whole cart"""
    return cart_response(user_id, CartService.get_cart(db, user_id))


@router.post("/{user_id}", response_model=CartResponse)
def add_to_cart(
    user_id: str,
    item: CartItemAdd,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Add units of a product"""
    try:
        items = CartService.add_item(db, user_id, item.product_id, item.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return cart_response(user_id, items)


@router.post("/{user_id}/remove-one", response_model=CartResponse)
def remove_one_from_cart(
    user_id: str,
    item: CartItemRemoveOne,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Remove a single unit of a product"""
    try:
        items = CartService.remove_one(db, user_id, item.product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return cart_response(user_id, items)


@router.put("/{user_id}", response_model=CartResponse)
def set_cart_quantity(
    user_id: str,
    item: CartItemSet,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Set the quantity of a product; zero removes it"""
    try:
        items = CartService.set_quantity(db, user_id, item.product_id, item.quantity)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return cart_response(user_id, items)


@router.delete("/{user_id}/items/{product_id}", response_model=CartResponse)
def delete_cart_item(
    user_id: str,
    product_id: str,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Delete one cart line"""
    try:
        items = CartService.delete_item(db, user_id, product_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return cart_response(user_id, items)


@router.delete("/{user_id}", response_model=CartResponse)
def clear_cart(
    user_id: str,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Empty the cart"""
    CartService.clear_cart(db, user_id)
    return cart_response(user_id, [])

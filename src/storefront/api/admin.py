"""
FastAPI routes for the admin back-office

Every route here requires an ADMIN session.
"""
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.config import Settings
from storefront.api.dependencies import get_settings, get_image_client
from storefront.services.auth import require_admin
from storefront.services.image_client import ImageHostClient
from storefront.services.order_service import OrderService
from storefront.services.user_service import UserService
from storefront.services.errors import ConflictError, ImageHostError
from storefront.models.order import OrderStatus
from storefront.models.user import Role
from storefront.models.schemas import (
    OrderResponse, OrderListResponse, OrderStatusChange, OrderUpdate,
    UserResponse, UserListResponse, AdminUserRoleUpdate, AdminUserDelete,
    DashboardStats, ImageUploadResponse, MessageResponse
)
from typing import Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["admin"], dependencies=[Depends(require_admin)])


@router.get("/admin/orders", response_model=OrderListResponse)
def list_all_orders(
    status: Optional[OrderStatus] = Query(None, description="Filter by status"),
    db: Session = Depends(get_db)
):
    """List every order, newest first"""
    orders, total = OrderService.get_orders(db, status=status)
    return OrderListResponse(total=total, orders=orders)


@router.get("/admin/orders/{order_id}", response_model=OrderResponse)
def get_order(order_id: str, db: Session = Depends(get_db)):
    """Get a specific order by ID"""
    order = OrderService.get_order(db, order_id)
    if not order:
        logger.warning(f"Order {order_id} not found")
        raise HTTPException(status_code=404, detail=f"Order with id {order_id} not found")
    return order


@router.post("/admin/order-status", response_model=OrderResponse)
def change_order_status(change: OrderStatusChange, db: Session = Depends(get_db)):
    """Overwrite the status of an order"""
    order = OrderService.update_order_status(db, change.order_id, change.status)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order with id {change.order_id} not found")
    return order


@router.put("/admin/orders/{order_id}", response_model=OrderResponse)
def update_order_status(order_id: str, status_update: OrderUpdate, db: Session = Depends(get_db)):
    """Overwrite the status of an order"""
    order = OrderService.update_order_status(db, order_id, status_update.status)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order with id {order_id} not found")
    return order


@router.delete("/admin/orders/{order_id}", response_model=MessageResponse)
def delete_order(order_id: str, db: Session = Depends(get_db)):
    """Delete an order with its items and payment"""
    try:
        deleted = OrderService.delete_order(db, order_id)
    except Exception as e:
        logger.error(f"Failed to delete order {order_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete order")
    if not deleted:
        raise HTTPException(status_code=404, detail=f"Order with id {order_id} not found")
    return MessageResponse(message=f"Order {order_id} deleted")


@router.get("/admin/users", response_model=UserListResponse)
def list_users(
    role: Optional[Role] = Query(None, description="Filter by role"),
    db: Session = Depends(get_db)
):
    """List users, newest first"""
    users, total = UserService.get_users(db, role=role)
    return UserListResponse(total=total, users=users)


@router.put("/admin/users", response_model=UserResponse)
def update_user_role(update: AdminUserRoleUpdate, db: Session = Depends(get_db)):
    """Change the role of a user"""
    user = UserService.update_role(db, update.id, update.role)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.delete("/admin/users", response_model=MessageResponse)
def delete_user(payload: AdminUserDelete, db: Session = Depends(get_db)):
    """Delete a user; 409 while orders, addresses or cart rows reference it"""
    try:
        deleted = UserService.delete_user(db, payload.id)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="User not found")
    return MessageResponse(message="User deleted")


@router.get("/dashboard/stats", response_model=DashboardStats)
def dashboard_stats(db: Session = Depends(get_db)):
    """Back-office counters and the last six months of orders"""
    return OrderService.get_dashboard_stats(db)


@router.post("/upload-image", response_model=ImageUploadResponse)
async def upload_image(
    image: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    image_client: ImageHostClient = Depends(get_image_client)
):
    """Forward a product image to the image host"""
    if image.content_type not in settings.image_allowed_types:
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail=f"Unsupported image type {image.content_type}"
        )

    content = await image.read()
    if len(content) > settings.image_max_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Image larger than {settings.image_max_bytes} bytes"
        )

    try:
        image_url = await image_client.upload(image.filename or "upload", content, image.content_type)
    except ImageHostError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    return ImageUploadResponse(image_url=image_url)

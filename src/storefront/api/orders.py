"""
FastAPI routes for checkout, payment confirmation and order history
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import RedirectResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.config import Settings
from storefront.api.dependencies import get_settings, get_payment_client
from storefront.services.auth import Principal, get_current_principal, require_owner_or_admin
from storefront.services.order_service import OrderService
from storefront.services.payment_client import PaymentProviderClient
from storefront.services.errors import ConflictError, NotFoundError, PaymentVerificationError
from storefront.models.order import PaymentStatus
from storefront.models.schemas import (
    OrderCreate,
    OrderCreateAfterPayment,
    OrderResponse,
    OrderListResponse,
    PaymentConfirmRequest,
    PaymentWebhookPayload,
    PreparePaymentResponse,
)
from typing import Optional
from urllib.parse import urlencode
import uuid
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["orders"])


def _create(db: Session, principal: Principal, order: OrderCreate, **kwargs):
    try:
        return OrderService.create_order(db, principal.id, order, **kwargs)
    except ValueError as e:
        logger.error(f"Validation error: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except Exception as e:
        logger.error(f"Failed to create order {order.id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create order. Please try again."
        )


@router.get("/order/prepare-payment", response_model=PreparePaymentResponse)
def prepare_payment(
    principal: Principal = Depends(get_current_principal),
    settings: Settings = Depends(get_settings)
):
    """Issue the transaction id that becomes the order id"""
    transaction_id = str(uuid.uuid4())
    logger.info(f"Prepared transaction {transaction_id} for user {principal.id}")
    return PreparePaymentResponse(transaction_id=transaction_id, currency=settings.default_currency)


@router.post("/order/create", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order: OrderCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """
    Create a pending order

    This endpoint:
    1. Checks products exist and total_amount matches the items
    2. Stores the order, its items and a PENDING payment in one transaction
    3. Clears the cart when clear_cart is set
    """
    logger.info(f"Creating order {order.id} for user {principal.id}")
    return _create(db, principal, order, clear_cart=order.clear_cart)


@router.post("/orders/create-after-payment", response_model=OrderResponse)
def create_order_after_payment(
    order: OrderCreateAfterPayment,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Create the order once the widget has reported; the cart is always cleared"""
    logger.info(f"Creating order {order.id} after payment for user {principal.id}")
    return _create(
        db,
        principal,
        order,
        clear_cart=True,
        reported_status=order.payment_status,
        transaction_id=order.transaction_id
    )


@router.post("/orders/confirm", response_model=OrderResponse)
async def confirm_payment(
    confirmation: PaymentConfirmRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    payment_client: PaymentProviderClient = Depends(get_payment_client)
):
    """
    Reconcile a payment result reported by the browser

    When the provider API key is configured the result is verified with
    the provider first and the provider's answer wins.
    """
    order = OrderService.get_order(db, confirmation.transaction_id)
    if not order:
        raise HTTPException(status_code=404, detail=f"Order {confirmation.transaction_id} not found")
    if order.user_id != principal.id and not principal.is_admin:
        raise HTTPException(status_code=403, detail="Insufficient permissions")

    reported_status = confirmation.status
    amount = confirmation.amount
    payment_method = confirmation.payment_method
    currency = None
    if payment_client.is_configured:
        try:
            verification = await payment_client.verify_transaction(confirmation.transaction_id)
        except PaymentVerificationError as e:
            raise HTTPException(status_code=502, detail=str(e))
        reported_status = verification["status"]
        amount = verification["amount"] if verification["amount"] is not None else amount
        payment_method = verification["payment_method"] or payment_method
        currency = verification["currency"]

    try:
        return OrderService.reconcile_payment(
            db,
            confirmation.transaction_id,
            reported_status,
            amount=amount,
            payment_method=payment_method,
            currency=currency
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/kkiapay-callback")
async def payment_webhook(
    request: Request,
    db: Session = Depends(get_db),
    payment_client: PaymentProviderClient = Depends(get_payment_client)
):
    """Provider webhook; the body must carry a valid HMAC signature"""
    raw_body = await request.body()
    signature = request.headers.get("x-kkiapay-signature")

    if not payment_client.verify_signature(raw_body, signature):
        logger.warning("Rejected payment webhook with missing or invalid signature")
        raise HTTPException(status_code=401, detail="Invalid webhook signature")

    try:
        payload = PaymentWebhookPayload.model_validate_json(raw_body)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.errors(include_url=False, include_context=False))

    logger.info(f"Payment webhook {payload.event_type or 'event'} for transaction {payload.transaction_id}")

    order = OrderService.find_order_for_transaction(db, payload.transaction_id, payload.order_reference)
    if not order:
        logger.warning(
            f"No order for transaction {payload.transaction_id} or reference {payload.order_reference}"
        )
        raise HTTPException(status_code=404, detail=f"Order {payload.order_reference} not found")

    try:
        order = OrderService.reconcile_payment(
            db,
            order.id,
            payload.status,
            transaction_id=payload.transaction_id,
            amount=payload.amount,
            payment_method=payload.payment_method,
            currency=payload.currency
        )
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return {
        "success": True,
        "order_id": order.id,
        "payment_status": order.payment_status.value
    }


@router.get("/kkiapay-callback")
async def payment_redirect(
    transaction_id_param: Optional[str] = Query(None, alias="transactionId"),
    provider_transaction_id: Optional[str] = Query(None, alias="transaction_id"),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    payment_client: PaymentProviderClient = Depends(get_payment_client)
):
    """
    Browser return from the payment widget

    Verifies the transaction with the provider, reconciles the order and
    redirects to the order status page.
    """
    def redirect(order_id: str, outcome: str, message: Optional[str] = None) -> RedirectResponse:
        params = {"orderId": order_id, "status": outcome}
        if message:
            params["message"] = message
        url = f"{settings.public_base_url}/order-status?{urlencode(params)}"
        return RedirectResponse(url, status_code=status.HTTP_307_TEMPORARY_REDIRECT)

    order_id = transaction_id_param
    if not order_id:
        return redirect("unknown", "failed", "Missing order id")

    order = OrderService.get_order(db, order_id)
    if not order:
        logger.error(f"Payment callback for unknown order {order_id}")
        return redirect(order_id, "failed", "Order not found")

    try:
        verification = await payment_client.verify_transaction(provider_transaction_id or order_id)
    except PaymentVerificationError as e:
        logger.error(f"Payment verification failed for order {order_id}: {e}")
        return redirect(order_id, "failed", "Payment could not be verified")

    try:
        order = OrderService.reconcile_payment(
            db,
            order_id,
            verification["status"],
            transaction_id=verification["transaction_id"],
            amount=verification["amount"],
            payment_method=verification["payment_method"],
            currency=verification["currency"]
        )
    except ConflictError:
        logger.warning(f"Order {order_id} payment already settled as {order.payment_status.value}")

    if order.payment_status == PaymentStatus.COMPLETED:
        return redirect(order_id, "success")
    return redirect(order_id, "failed", verification["message"] or "Payment failed or was cancelled")


@router.get("/order/user-orders", response_model=OrderListResponse)
def get_my_orders(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Orders of the current user, newest first"""
    orders, total = OrderService.get_orders(db, user_id=principal.id)
    return OrderListResponse(total=total, orders=orders)


@router.get("/user/orders", response_model=OrderListResponse)
def get_current_user_orders(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Orders of the current user, newest first"""
    orders, total = OrderService.get_orders(db, user_id=principal.id)
    return OrderListResponse(total=total, orders=orders)


@router.get("/orders/{user_id}", response_model=OrderListResponse)
def get_user_orders(
    user_id: str,
    principal: Principal = Depends(require_owner_or_admin),
    db: Session = Depends(get_db)
):
    """Orders of a given user (owner or admin)"""
    orders, total = OrderService.get_orders(db, user_id=user_id)
    return OrderListResponse(total=total, orders=orders)

"""
Order creation, payment reconciliation and back-office order logic
"""
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from storefront.models.order import (
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    ExternalPaymentStatus,
    TERMINAL_PAYMENT_STATUSES,
)
from storefront.models.product import Product
from storefront.models.user import Address, User
from storefront.models.schemas import OrderCreate
from storefront.services.cart_service import CartService
from storefront.services.errors import ConflictError, NotFoundError
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Tuple
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    """Round an amount to cents"""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _recent_months(now: datetime, count: int) -> List[Tuple[int, int]]:
    months = []
    year, month = now.year, now.month
    for _ in range(count):
        months.append((year, month))
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    months.reverse()
    return months


class OrderService:
    """Order service for business logic"""

    @staticmethod
    def _query(db: Session):
        return db.query(Order).options(
            selectinload(Order.items).selectinload(OrderItem.product),
            selectinload(Order.payment)
        )

    @staticmethod
    def _apply_payment_status(db: Session, order: Order, payment: Payment, target: PaymentStatus):
        payment.status = target
        payment.payment_date = datetime.utcnow()
        order.payment_status = target
        if target == PaymentStatus.COMPLETED:
            CartService.clear_cart(db, order.user_id, commit=False)

    @staticmethod
    def create_order(
        db: Session,
        user_id: str,
        order_data: OrderCreate,
        clear_cart: bool = False,
        reported_status: Optional[ExternalPaymentStatus] = None,
        transaction_id: Optional[str] = None
    ) -> Order:
        """
        Create a pending order with its items and payment in one transaction

        Process:
        1. Reject a reused transaction id
        2. Check every product exists
        3. Check total_amount equals the sum of quantity x price
        4. Insert order, items (prices frozen) and a PENDING payment
        5. Apply a reported payment result, if any
        6. Clear the cart when asked or when the payment completed
        """
        with tracer.start_as_current_span("order_service.create_order") as span:
            span.set_attribute("order.id", order_data.id)
            span.set_attribute("user.id", user_id)
            span.set_attribute("items.count", len(order_data.items))

            logger.info(f"Creating order {order_data.id} for user {user_id} with {len(order_data.items)} items")

            if not order_data.items:
                raise ValueError("Order must contain at least one item")

            if db.query(Order.id).filter(Order.id == order_data.id).first():
                raise ConflictError(f"Order {order_data.id} already exists")

            # Step 2: products must exist
            product_ids = {item.product_id for item in order_data.items}
            found = {
                row.id for row in db.query(Product.id).filter(Product.id.in_(product_ids)).all()
            }
            missing = sorted(product_ids - found)
            if missing:
                raise ValueError(f"Unknown products: {', '.join(missing)}")

            # Step 3: total must match the lines
            computed_total = sum(
                (to_money(item.price) * item.quantity for item in order_data.items),
                Decimal("0.00")
            )
            total_amount = to_money(order_data.total_amount)
            if computed_total != total_amount:
                raise ValueError(
                    f"total_amount {total_amount} does not match items total {computed_total}"
                )
            span.set_attribute("order.total_amount", float(total_amount))

            address = order_data.shipping_address
            shipping_address_id = None
            if address.id is not None:
                saved = (
                    db.query(Address)
                    .filter(Address.id == address.id, Address.user_id == user_id)
                    .first()
                )
                if not saved:
                    raise ValueError(f"Address {address.id} not found")
                shipping_address_id = saved.id

            # Step 4: one transaction for order, items and payment
            try:
                order = Order(
                    id=order_data.id,
                    user_id=user_id,
                    status=OrderStatus.PENDING,
                    payment_status=PaymentStatus.PENDING,
                    total_amount=total_amount,
                    currency=order_data.currency,
                    shipping_address_id=shipping_address_id,
                    shipping_address_line1=address.area,
                    shipping_address_line2=address.street,
                    shipping_city=address.city,
                    shipping_state=address.state,
                    shipping_zip_code=address.pincode,
                    shipping_country=address.country,
                    user_email=order_data.user_email,
                    user_phone_number=order_data.user_phone_number or address.phone_number
                )
                db.add(order)
                db.flush()

                for item_data in order_data.items:
                    db.add(OrderItem(
                        order_id=order.id,
                        product_id=item_data.product_id,
                        quantity=item_data.quantity,
                        price_at_order=to_money(item_data.price)
                    ))

                payment = Payment(
                    order_id=order.id,
                    amount=total_amount,
                    currency=order_data.currency,
                    payment_method=order_data.payment_method,
                    transaction_id=transaction_id or order.id,
                    status=PaymentStatus.PENDING
                )
                db.add(payment)

                # Step 5
                if reported_status is not None:
                    target = reported_status.to_payment_status()
                    if target != PaymentStatus.PENDING:
                        OrderService._apply_payment_status(db, order, payment, target)
                    span.set_attribute("payment.status", target.value)

                # Step 6
                if clear_cart:
                    CartService.clear_cart(db, user_id, commit=False)

                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Order {order_data.id} rejected by the database: {e.orig}")
                # Only a concurrent insert of the same id is a conflict
                if db.query(Order.id).filter(Order.id == order_data.id).first():
                    raise ConflictError(f"Order {order_data.id} already exists")
                raise
            except Exception:
                db.rollback()
                raise

            logger.info(f"Order {order_data.id} created successfully")
            return OrderService.get_order(db, order_data.id)

    @staticmethod
    def reconcile_payment(
        db: Session,
        order_id: str,
        reported_status: ExternalPaymentStatus,
        transaction_id: Optional[str] = None,
        amount: Optional[float] = None,
        payment_method: Optional[str] = None,
        currency: Optional[str] = None
    ) -> Order:
        """
        Apply an externally reported payment result to an order.

        SUCCESS maps to COMPLETED, FAILED and CANCELLED to FAILED, PENDING
        stays PENDING. Repeating the current status changes nothing; a
        settled payment never moves to another status. Order.status is not
        touched.
        """
        with tracer.start_as_current_span("order_service.reconcile_payment") as span:
            span.set_attribute("order.id", order_id)
            span.set_attribute("payment.reported_status", reported_status.value)

            order = OrderService.get_order(db, order_id)
            if not order:
                raise NotFoundError(f"Order {order_id} not found")

            target = reported_status.to_payment_status()
            payment = order.payment

            if payment is not None and payment.status == target and order.payment_status == target:
                logger.info(f"Payment of order {order_id} already {target.value}")
                return order

            if payment is not None and payment.status in TERMINAL_PAYMENT_STATUSES:
                raise ConflictError(
                    f"Payment of order {order_id} is already {payment.status.value}"
                )

            try:
                if payment is None:
                    payment = Payment(
                        order_id=order.id,
                        amount=to_money(amount) if amount is not None else order.total_amount,
                        currency=currency or order.currency,
                        payment_method=payment_method or "UNKNOWN",
                        transaction_id=transaction_id or order.id,
                        status=PaymentStatus.PENDING
                    )
                    db.add(payment)
                else:
                    if transaction_id:
                        payment.transaction_id = transaction_id
                    if payment_method:
                        payment.payment_method = payment_method
                    if currency:
                        payment.currency = currency

                OrderService._apply_payment_status(db, order, payment, target)
                db.commit()
            except Exception:
                db.rollback()
                raise

            span.set_attribute("payment.status", target.value)
            logger.info(f"Payment of order {order_id} reconciled to {target.value}")

            db.expire_all()
            return OrderService.get_order(db, order_id)

    @staticmethod
    def find_order_for_transaction(
        db: Session,
        transaction_id: str,
        reference: Optional[str] = None
    ) -> Optional[Order]:
        """Resolve an order by the provider transaction id stored on its payment, then by order id"""
        with tracer.start_as_current_span("order_service.find_order_for_transaction") as span:
            span.set_attribute("payment.transaction_id", transaction_id)

            order = (
                OrderService._query(db)
                .join(Payment, Payment.order_id == Order.id)
                .filter(Payment.transaction_id == transaction_id)
                .first()
            )
            if order is None and reference:
                order = OrderService.get_order(db, reference)

            if order is not None:
                span.set_attribute("order.id", order.id)
            return order

    @staticmethod
    def get_order(db: Session, order_id: str) -> Optional[Order]:
        """Get order by ID"""
        with tracer.start_as_current_span("order_service.get_order") as span:
            span.set_attribute("order.id", order_id)
            return OrderService._query(db).filter(Order.id == order_id).first()

    @staticmethod
    def get_orders(
        db: Session,
        user_id: Optional[str] = None,
        status: Optional[OrderStatus] = None
    ) -> Tuple[List[Order], int]:
        """Get list of orders, newest first"""
        with tracer.start_as_current_span("order_service.get_orders") as span:
            query = OrderService._query(db)

            if user_id:
                query = query.filter(Order.user_id == user_id)
                span.set_attribute("filter.user_id", user_id)

            if status:
                query = query.filter(Order.status == status)
                span.set_attribute("filter.status", status.value)

            orders = query.order_by(Order.order_date.desc(), Order.created_at.desc()).all()

            span.set_attribute("orders.returned", len(orders))
            return orders, len(orders)

    @staticmethod
    def update_order_status(
        db: Session,
        order_id: str,
        status: OrderStatus
    ) -> Optional[Order]:
        """Overwrite order status; any status may follow any other"""
        with tracer.start_as_current_span("order_service.update_status") as span:
            span.set_attribute("order.id", order_id)
            span.set_attribute("status.new", status.value)

            order = OrderService.get_order(db, order_id)
            if not order:
                return None

            old_status = order.status
            order.status = status
            db.commit()
            db.refresh(order)

            logger.info(f"Order {order_id} status: {old_status.value} -> {status.value}")
            return order

    @staticmethod
    def delete_order(db: Session, order_id: str) -> bool:
        """Delete an order with its items and payment in one transaction"""
        with tracer.start_as_current_span("order_service.delete_order") as span:
            span.set_attribute("order.id", order_id)

            if not db.query(Order.id).filter(Order.id == order_id).first():
                return False

            try:
                items = db.query(OrderItem).filter(OrderItem.order_id == order_id).delete(synchronize_session=False)
                db.query(Payment).filter(Payment.order_id == order_id).delete(synchronize_session=False)
                deleted = db.query(Order).filter(Order.id == order_id).delete(synchronize_session=False)
                if not deleted:
                    db.rollback()
                    return False
                db.commit()
            except Exception:
                db.rollback()
                raise

            db.expunge_all()
            span.set_attribute("order_items.deleted", items)
            logger.info(f"Deleted order {order_id} with {items} items")
            return True

    @staticmethod
    def get_dashboard_stats(db: Session, now: Optional[datetime] = None, months: int = 6) -> Dict:
        """Counters, revenue, recent orders and a per-month breakdown"""
        with tracer.start_as_current_span("order_service.dashboard_stats"):
            now = now or datetime.utcnow()

            total_revenue = (
                db.query(func.coalesce(func.sum(Payment.amount), 0))
                .filter(Payment.status == PaymentStatus.COMPLETED)
                .scalar()
            )

            recent_orders = (
                db.query(Order)
                .order_by(Order.order_date.desc(), Order.created_at.desc())
                .limit(15)
                .all()
            )

            window = _recent_months(now, months)
            start = datetime(window[0][0], window[0][1], 1)
            buckets = {key: {"orders": 0, "revenue": Decimal("0.00")} for key in window}
            for order in db.query(Order).filter(Order.order_date >= start).all():
                key = (order.order_date.year, order.order_date.month)
                if key not in buckets:
                    continue
                buckets[key]["orders"] += 1
                if order.payment_status == PaymentStatus.COMPLETED:
                    buckets[key]["revenue"] += Decimal(order.total_amount)

            return {
                "total_products": db.query(func.count(Product.id)).scalar(),
                "total_orders": db.query(func.count(Order.id)).scalar(),
                "total_users": db.query(func.count(User.id)).scalar(),
                "pending_orders": db.query(func.count(Order.id)).filter(Order.status == OrderStatus.PENDING).scalar(),
                "total_revenue": float(total_revenue or 0),
                "recent_orders": recent_orders,
                "monthly": [
                    {
                        "month": f"{year:04d}-{month:02d}",
                        "orders": buckets[(year, month)]["orders"],
                        "revenue": float(buckets[(year, month)]["revenue"]),
                    }
                    for year, month in window
                ],
            }

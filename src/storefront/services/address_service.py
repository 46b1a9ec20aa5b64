"""Address book business logic"""
from sqlalchemy.orm import Session
from storefront.models.user import Address, User
from storefront.models.schemas import AddressCreate, AddressUpdate
from storefront.services.errors import NotFoundError
from typing import List, Optional
from opentelemetry import trace
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class AddressService:
    """Address service; at most one default address per user"""

    @staticmethod
    def _clear_default(db: Session, user_id: str, keep_id: Optional[int] = None):
        query = db.query(Address).filter(Address.user_id == user_id, Address.is_default.is_(True))
        if keep_id is not None:
            query = query.filter(Address.id != keep_id)
        query.update({Address.is_default: False}, synchronize_session="fetch")

    @staticmethod
    def get_address(db: Session, user_id: str, address_id: int) -> Optional[Address]:
        """Get an address owned by ``user_id``"""
        return (
            db.query(Address)
            .filter(Address.id == address_id, Address.user_id == user_id)
            .first()
        )

    @staticmethod
    def get_addresses(db: Session, user_id: str) -> List[Address]:
        """List addresses of a user, newest first"""
        return (
            db.query(Address)
            .filter(Address.user_id == user_id)
            .order_by(Address.id.desc())
            .all()
        )

    @staticmethod
    def create_address(db: Session, user_id: str, address_data: AddressCreate) -> Address:
        """Create an address; a new default demotes the previous one"""
        with tracer.start_as_current_span("address_service.create_address") as span:
            span.set_attribute("user.id", user_id)

            if not db.query(User.id).filter(User.id == user_id).first():
                raise NotFoundError(f"User {user_id} not found")

            try:
                if address_data.is_default:
                    AddressService._clear_default(db, user_id)

                address = Address(user_id=user_id, **address_data.model_dump())
                db.add(address)
                db.commit()
            except Exception:
                db.rollback()
                raise
            db.refresh(address)

            span.set_attribute("address.id", address.id)
            logger.info(f"Created address {address.id} for user {user_id}")
            return address

    @staticmethod
    def update_address(
        db: Session,
        user_id: str,
        address_id: int,
        address_data: AddressUpdate
    ) -> Optional[Address]:
        """Update an address owned by ``user_id``"""
        address = AddressService.get_address(db, user_id, address_id)
        if not address:
            return None

        update_data = address_data.model_dump(exclude_unset=True)
        try:
            if update_data.get("is_default"):
                AddressService._clear_default(db, user_id, keep_id=address_id)

            for field, value in update_data.items():
                if value is None and field not in ("street", "pincode"):
                    continue
                setattr(address, field, value)

            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(address)

        return address

    @staticmethod
    def delete_address(db: Session, user_id: str, address_id: int) -> bool:
        """Delete an address; orders keep their shipping snapshot"""
        address = AddressService.get_address(db, user_id, address_id)
        if not address:
            return False

        db.delete(address)
        db.commit()

        logger.info(f"Deleted address {address_id} of user {user_id}")
        return True

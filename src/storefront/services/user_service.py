"""User business logic"""
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from storefront.models.user import Role, User
from storefront.models.schemas import RegisterRequest, ProfileUpdate
from storefront.services.auth import hash_password, verify_password
from storefront.services.errors import ConflictError, NotFoundError
from datetime import datetime, timedelta
from typing import List, Optional, Tuple
from opentelemetry import trace
import secrets
import logging

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

MIN_PASSWORD_LENGTH = 6


class UserService:
    """User service for business logic"""

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        """Get user by ID"""
        with tracer.start_as_current_span("user_service.get_user") as span:
            span.set_attribute("user.id", user_id)
            return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email.strip().lower()).first()

    @staticmethod
    def get_users(db: Session, role: Optional[Role] = None) -> Tuple[List[User], int]:
        """Get list of users, newest first"""
        query = db.query(User)

        if role is not None:
            query = query.filter(User.role == role)

        total = query.count()
        users = query.order_by(User.created_at.desc(), User.email).all()

        return users, total

    @staticmethod
    def create_user(db: Session, user_data: RegisterRequest, role: Role = Role.USER) -> User:
        """Create new user"""
        with tracer.start_as_current_span("user_service.create_user") as span:
            email = user_data.email.strip().lower()

            if UserService.get_user_by_email(db, email):
                raise ConflictError(f"Email {email} already exists")

            user = User(
                email=email,
                hashed_password=hash_password(user_data.password),
                role=role,
                first_name=user_data.first_name,
                last_name=user_data.last_name
            )

            db.add(user)
            try:
                db.commit()
            except IntegrityError:
                db.rollback()
                raise ConflictError(f"Email {email} already exists")
            db.refresh(user)

            span.set_attribute("user.id", user.id)
            logger.info(f"Created user {user.id}: {user.email}")

            return user

    @staticmethod
    def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
        """Authenticate user; every failure looks the same to the caller"""
        with tracer.start_as_current_span("user_service.authenticate") as span:
            user = UserService.get_user_by_email(db, email)
            if not user:
                logger.warning("Login attempt for unknown email")
                return None

            if not verify_password(password, user.hashed_password):
                logger.warning(f"Invalid password for user {user.id}")
                return None

            span.set_attribute("user.id", user.id)
            logger.info(f"User {user.id} authenticated successfully")
            return user

    @staticmethod
    def update_profile(db: Session, user_id: str, profile: ProfileUpdate) -> Optional[User]:
        """Update names and phone number of a user"""
        user = UserService.get_user(db, user_id)
        if not user:
            return None

        update_data = profile.model_dump(exclude_unset=True, exclude_none=True)
        if not update_data:
            raise ValueError("No profile field to update")

        for field, value in update_data.items():
            setattr(user, field, value)

        db.commit()
        db.refresh(user)

        return user

    @staticmethod
    def update_role(db: Session, user_id: str, role: Role) -> Optional[User]:
        """Change the role of a user"""
        with tracer.start_as_current_span("user_service.update_role") as span:
            span.set_attribute("user.id", user_id)
            span.set_attribute("role.new", role.value)

            user = UserService.get_user(db, user_id)
            if not user:
                return None

            user.role = role
            db.commit()
            db.refresh(user)

            logger.info(f"User {user_id} role set to {role.value}")
            return user

    @staticmethod
    def delete_user(db: Session, user_id: str) -> bool:
        """
        Delete a user.

        Refused with ConflictError while orders, addresses or cart rows
        still reference the user; nothing is changed in that case.
        """
        with tracer.start_as_current_span("user_service.delete_user") as span:
            span.set_attribute("user.id", user_id)

            if not UserService.get_user(db, user_id):
                return False

            try:
                db.query(User).filter(User.id == user_id).delete(synchronize_session=False)
                db.commit()
            except IntegrityError as e:
                db.rollback()
                logger.warning(f"Cannot delete user {user_id}: {e.orig}")
                raise ConflictError("User still has dependent data; delete dependent data first")

            db.expunge_all()
            logger.info(f"Deleted user {user_id}")
            return True

    @staticmethod
    def request_password_reset(
        db: Session,
        email: str,
        expire_minutes: int = 15
    ) -> Optional[Tuple[User, str]]:
        """
        Issue a one-time reset token for ``email``.

        Returns (user, token), or None when no account matches. Callers
        answer the same way in both cases.
        """
        with tracer.start_as_current_span("user_service.request_password_reset"):
            user = UserService.get_user_by_email(db, email)
            if not user:
                logger.info("Password reset requested for unknown email")
                return None

            token = secrets.token_hex(32)
            user.reset_password_token = token
            user.reset_password_expires = datetime.utcnow() + timedelta(minutes=expire_minutes)
            db.commit()

            logger.info(f"Password reset token issued for user {user.id}")
            return user, token

    @staticmethod
    def reset_password(db: Session, token: str, new_password: str) -> User:
        """Replace the password of the user holding a valid reset token"""
        with tracer.start_as_current_span("user_service.reset_password"):
            if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
                raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")

            user = db.query(User).filter(User.reset_password_token == token).first()
            if not user or not user.reset_password_expires or user.reset_password_expires < datetime.utcnow():
                raise ValueError("Invalid or expired reset token")

            user.hashed_password = hash_password(new_password)
            user.reset_password_token = None
            user.reset_password_expires = None
            db.commit()
            db.refresh(user)

            logger.info(f"Password reset for user {user.id}")
            return user

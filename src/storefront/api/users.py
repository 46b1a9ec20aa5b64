"""FastAPI routes for accounts, sessions and profiles"""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from storefront.db.database import get_db
from storefront.config import Settings
from storefront.api.dependencies import get_settings, get_mailer
from storefront.services.auth import Principal, create_access_token, get_current_principal
from storefront.services.errors import ConflictError, MailDeliveryError
from storefront.services.mailer import Mailer
from storefront.services.user_service import UserService
from storefront.models.schemas import (
    RegisterRequest, UserResponse, LoginRequest, LoginResponse,
    ForgotPasswordRequest, ResetPasswordRequest, ProfileUpdate, MessageResponse
)
from datetime import timedelta
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["users"])

RESET_REQUESTED_MESSAGE = "If an account exists for this email, a reset link has been sent."


@router.post("/users/register", response_model=UserResponse, status_code=201)
def register_user(user: RegisterRequest, db: Session = Depends(get_db)):
    """Register a new user"""
    try:
        return UserService.create_user(db, user)
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/users/login", response_model=LoginResponse)
def login(
    credentials: LoginRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Login user and return JWT token"""
    user = UserService.authenticate_user(db, credentials.email, credentials.password)

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials"
        )

    access_token = create_access_token(
        user,
        secret=settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes)
    )

    return LoginResponse(access_token=access_token, user=user)


@router.post("/users/mot-de-passe-oublie", response_model=MessageResponse)
def forgot_password(
    payload: ForgotPasswordRequest,
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    mailer: Mailer = Depends(get_mailer)
):
    """Email a password reset link; the answer never reveals whether the account exists"""
    issued = UserService.request_password_reset(db, payload.email, settings.password_reset_expire_minutes)

    if issued:
        user, token = issued
        link = f"{settings.public_base_url}/reinitialiser-mot-de-passe?token={token}"
        body = (
            f"Hello {user.display_name},\n\n"
            f"Use the link below to choose a new password. It expires in "
            f"{settings.password_reset_expire_minutes} minutes.\n\n{link}\n\n"
            "If you did not ask for this, ignore this message."
        )
        if mailer.is_configured:
            try:
                mailer.send(user.email, "Reset your password", body)
            except MailDeliveryError as e:
                logger.error(f"Password reset mail for user {user.id} not sent: {e}")
        else:
            logger.warning("SMTP not configured; password reset mail not sent")

    return MessageResponse(message=RESET_REQUESTED_MESSAGE)


@router.post("/users/reinitialiser-mot-de-passe", response_model=MessageResponse)
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password using an emailed reset token"""
    try:
        UserService.reset_password(db, payload.token, payload.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return MessageResponse(message="Password has been reset")


@router.get("/user/profile", response_model=UserResponse)
def get_profile(
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Get the current user's profile"""
    user = UserService.get_user(db, principal.id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


@router.patch("/user/profile", response_model=UserResponse)
def update_profile(
    profile: ProfileUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db)
):
    """Update the current user's names and phone number"""
    try:
        user = UserService.update_profile(db, principal.id, profile)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user

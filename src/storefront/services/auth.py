"""Authentication utilities: password hashing, session tokens and role checks"""
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from datetime import datetime, timedelta
from typing import Optional
from storefront.models.user import Role, User
import logging

logger = logging.getLogger(__name__)

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


class Principal(BaseModel):
    """Identity carried by a session token"""
    id: str
    role: Role
    name: str
    email: str

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN


def hash_password(password: str) -> str:
    """Hash a password"""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password"""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    user: User,
    secret: str,
    algorithm: str = "HS256",
    expires_delta: Optional[timedelta] = None
) -> str:
    """Create a signed JWT carrying id, role, name and email"""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=30))
    to_encode = {
        "sub": user.id,
        "role": user.role.value,
        "name": user.display_name,
        "email": user.email,
        "exp": expire,
    }
    return jwt.encode(to_encode, secret, algorithm=algorithm)


def decode_access_token(token: str, secret: str, algorithm: str = "HS256") -> Principal:
    """
    Decode and validate a session token.

    Raises:
        JWTError: bad signature, malformed or expired token
        ValidationError: claims missing or role unknown
    """
    claims = jwt.decode(token, secret, algorithms=[algorithm])
    return Principal(
        id=claims.get("sub"),
        role=claims.get("role"),
        name=claims.get("name") or "",
        email=claims.get("email") or "",
    )


def get_current_principal(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Principal:
    """Dependency resolving the caller from the bearer token (401 otherwise)"""
    if credentials is None or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    settings = request.app.state.settings
    try:
        return decode_access_token(credentials.credentials, settings.jwt_secret, settings.jwt_algorithm)
    except (JWTError, ValidationError) as e:
        logger.warning(f"Rejected session token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_role(*roles: Role):
    """Dependency factory admitting only callers whose token role is in ``roles``"""

    def dependency(principal: Principal = Depends(get_current_principal)) -> Principal:
        if principal.role not in roles:
            logger.warning(f"User {principal.id} with role {principal.role.value} denied")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )
        return principal

    return dependency


require_admin = require_role(Role.ADMIN)


def require_owner_or_admin(
    user_id: str,
    principal: Principal = Depends(get_current_principal)
) -> Principal:
    """Dependency for ``/{user_id}`` resources: the owner or an admin"""
    if principal.id != user_id and not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions"
        )
    return principal

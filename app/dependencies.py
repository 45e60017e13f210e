"""JWT authentication and service wiring for request handlers."""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import ApiError
from app.models.user import User
from app.services.ai_service import AIService
from app.services.completion_gateway import CompletionGateway
from app.services.usage_repository import SqlUsageRepository


# ─── Password hashing ───────────────────────────────────────────────────────

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify a password against its bcrypt hash."""
    return pwd_context.verify(plain, hashed)


# ─── JWT tokens ──────────────────────────────────────────────────────────────

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/login")


def create_access_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.JWT_EXPIRE_MINUTES))
    payload = {
        "sub": user_id,
        "email": email,
        "exp": expire,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Optional[uuid.UUID]:
    """Return the user id from a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
        return uuid.UUID(payload["sub"])
    except (JWTError, KeyError, TypeError, ValueError):
        return None


# ─── Auth dependency ─────────────────────────────────────────────────────────

async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Decode JWT token and return the current, active user."""
    user_id = decode_access_token(token)
    if user_id is None:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid or expired token", "INVALID_TOKEN")

    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if not user or not user.is_active:
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid authentication", "INVALID_TOKEN")

    return user


# ─── AI assist ───────────────────────────────────────────────────────────────

def get_completion_gateway(request: Request) -> CompletionGateway:
    """The process-wide gateway created at startup."""
    return request.app.state.completion_gateway


def get_ai_service(
    db: AsyncSession = Depends(get_db),
    gateway: CompletionGateway = Depends(get_completion_gateway),
) -> AIService:
    """AI service bound to the request's database session."""
    return AIService(SqlUsageRepository(db), gateway)

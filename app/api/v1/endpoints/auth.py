"""Registration, login and profile endpoints."""

from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ApiError
from app.core.logging import logger
from app.dependencies import (
    hash_password,
    verify_password,
    create_access_token,
    get_current_user,
)
from app.models.folder import DEFAULT_FOLDER_NAME, Folder
from app.models.user import User
from app.schemas import ApiResponse, UserCreate, UserLogin, UserResponse, TokenResponse

router = APIRouter()


@router.post("/register", response_model=ApiResponse[TokenResponse], status_code=201)
async def register_user(
    data: UserCreate,
    db: AsyncSession = Depends(get_db),
):
    """Register a new account and its default folder. Returns a JWT token."""
    email = data.email.strip().lower()

    existing = await db.execute(select(User).where(User.email == email))
    if existing.scalar_one_or_none():
        raise ApiError(409, "Email already registered", "EMAIL_EXISTS")

    user = User(
        email=email,
        full_name=data.full_name,
        password_hash=hash_password(data.password),
    )
    db.add(user)
    await db.flush()

    db.add(Folder(user_id=user.id, name=DEFAULT_FOLDER_NAME, position=0))
    await db.flush()
    await db.refresh(user)

    token = create_access_token(str(user.id), user.email)
    logger.info(f"New user registered: {user.email}")

    return ApiResponse(
        data=TokenResponse(access_token=token, user=UserResponse.model_validate(user)),
        message="Registration successful",
    )


@router.post("/login", response_model=ApiResponse[TokenResponse])
async def login_user(
    data: UserLogin,
    db: AsyncSession = Depends(get_db),
):
    """Login and receive a JWT token."""
    result = await db.execute(select(User).where(User.email == data.email.strip().lower()))
    user = result.scalar_one_or_none()

    # Same answer for unknown email, wrong password and disabled account
    if not user or not user.is_active or not verify_password(data.password, user.password_hash):
        raise ApiError(401, "Invalid credentials", "INVALID_CREDENTIALS")

    user.last_login = datetime.utcnow()
    await db.flush()

    token = create_access_token(str(user.id), user.email)
    logger.info(f"User logged in: {user.email}")

    return ApiResponse(
        data=TokenResponse(access_token=token, user=UserResponse.model_validate(user)),
        message="Login successful",
    )


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(current_user: User = Depends(get_current_user)):
    """Get current user profile (requires token)."""
    return ApiResponse(
        data=UserResponse.model_validate(current_user),
        message="User retrieved successfully",
    )

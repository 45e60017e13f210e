"""User model."""

import uuid
from datetime import datetime

from sqlalchemy import String, DateTime, Integer, Boolean
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from app.core.config import settings
from app.core.database import Base


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    full_name: Mapped[str] = mapped_column(String(255), nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    avatar_url: Mapped[str] = mapped_column(String(1000), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, server_default="true")
    email_verified: Mapped[bool] = mapped_column(Boolean, default=False, server_default="false")
    subscription_tier: Mapped[str] = mapped_column(String(50), default="free", server_default="free")

    # AI quota: only ever incremented in place, see SqlUsageRepository.increment_tokens
    ai_tokens_used: Mapped[int] = mapped_column(Integer, default=0, server_default="0", nullable=False)
    ai_tokens_limit: Mapped[int] = mapped_column(
        Integer, default=lambda: settings.AI_DEFAULT_TOKENS_LIMIT, nullable=False
    )

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    last_login: Mapped[datetime] = mapped_column(DateTime, nullable=True)

    # Relationships
    folders = relationship("Folder", back_populates="user")
    notes = relationship("Note", back_populates="user")
    ai_usages = relationship("AIUsage", back_populates="user")

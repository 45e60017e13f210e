"""Quota store and usage ledger used by the AI assist service."""

import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import UserNotFound
from app.models.ai_usage import AIUsage
from app.models.user import User


@dataclass(frozen=True)
class UserQuota:
    tokens_used: int
    tokens_limit: int

    @property
    def exhausted(self) -> bool:
        return self.tokens_used >= self.tokens_limit


@dataclass(frozen=True)
class UsageRecord:
    """Accounting for one completed AI invocation."""

    user_id: uuid.UUID
    action: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    cost: Decimal
    note_id: Optional[uuid.UUID] = None
    created_at: datetime = field(default_factory=datetime.utcnow)


@dataclass(frozen=True)
class UsageTotals:
    total_requests: int
    total_cost: Decimal


class BaseUsageRepository(ABC):
    """Abstract quota store + usage ledger."""

    @abstractmethod
    async def get_quota(self, user_id: uuid.UUID) -> Optional[UserQuota]:
        """Return the user's quota, or None if the user does not exist."""
        ...

    @abstractmethod
    async def increment_tokens(self, user_id: uuid.UUID, amount: int) -> None:
        """Atomically add `amount` to the user's used tokens."""
        ...

    @abstractmethod
    async def append_usage_record(self, record: UsageRecord) -> None:
        """Append one record to the usage ledger."""
        ...

    @abstractmethod
    async def get_usage_totals(self, user_id: uuid.UUID) -> UsageTotals:
        """Request count and summed cost over the user's ledger."""
        ...


class SqlUsageRepository(BaseUsageRepository):
    """Usage repository backed by the request's SQLAlchemy session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_quota(self, user_id: uuid.UUID) -> Optional[UserQuota]:
        result = await self.session.execute(
            select(User.ai_tokens_used, User.ai_tokens_limit).where(User.id == user_id)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return UserQuota(tokens_used=row.ai_tokens_used, tokens_limit=row.ai_tokens_limit)

    async def increment_tokens(self, user_id: uuid.UUID, amount: int) -> None:
        # Single UPDATE ... SET col = col + n, safe under concurrent requests
        result = await self.session.execute(
            update(User)
            .where(User.id == user_id)
            .values(ai_tokens_used=User.ai_tokens_used + amount)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise UserNotFound()

    async def append_usage_record(self, record: UsageRecord) -> None:
        # Savepoint: a failed insert must not roll back the quota increment
        async with self.session.begin_nested():
            self.session.add(
                AIUsage(
                    user_id=record.user_id,
                    note_id=record.note_id,
                    action=record.action,
                    prompt_tokens=record.prompt_tokens,
                    completion_tokens=record.completion_tokens,
                    total_tokens=record.total_tokens,
                    model=record.model,
                    cost_usd=record.cost,
                    created_at=record.created_at,
                )
            )

    async def get_usage_totals(self, user_id: uuid.UUID) -> UsageTotals:
        result = await self.session.execute(
            select(
                func.count(AIUsage.id),
                func.coalesce(func.sum(AIUsage.cost_usd), 0),
            ).where(AIUsage.user_id == user_id)
        )
        count, cost = result.one()
        return UsageTotals(total_requests=count or 0, total_cost=Decimal(str(cost or 0)))

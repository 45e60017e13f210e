"""AI assist service: quota-gated, metered proxy to the completion API."""

import uuid
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Union

from app.core.config import settings
from app.core.exceptions import QuotaExceeded, UserNotFound
from app.core.logging import logger
from app.services.completion_gateway import Completion, CompletionGateway
from app.services.pricing import calculate_cost
from app.services.prompt_builder import AIAction, build_messages, resolve_action
from app.services.usage_repository import BaseUsageRepository, UsageRecord


@dataclass(frozen=True)
class AIRequest:
    user_id: uuid.UUID
    action: Union[AIAction, str]
    prompt: Optional[str] = None
    context: Optional[str] = None
    model: Optional[str] = None
    note_id: Optional[uuid.UUID] = None
    target_language: Optional[str] = None


@dataclass(frozen=True)
class AIResponse:
    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int
    model: str
    cost: Decimal


@dataclass(frozen=True)
class UsageStats:
    tokens_used: int
    tokens_limit: int
    total_requests: int
    total_cost: Decimal


class AIService:
    """
    Orchestrates one AI invocation.

    Sequence: quota lookup, admission gate, prompt build, completion call,
    cost, persistence. Nothing is charged or recorded unless the completion
    call succeeds.

    The admission check and the quota increment are not serialized per user:
    concurrent requests from a user just under the limit can both pass the
    gate, overshooting the limit by at most one invocation each.
    """

    def __init__(
        self,
        repository: BaseUsageRepository,
        gateway: CompletionGateway,
        default_model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ):
        self.repository = repository
        self.gateway = gateway
        self.default_model = default_model or settings.AI_DEFAULT_MODEL
        self.temperature = settings.AI_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.AI_MAX_TOKENS

    async def generate(self, request: AIRequest) -> AIResponse:
        """
        Run an AI action for a user.

        Raises:
            UserNotFound: no quota record for the user.
            QuotaExceeded: the user's tokens are used up; no upstream call is made.
            ConfigurationError, RateLimited, UpstreamError, IncompleteResponse:
                from the completion gateway; nothing is persisted.
        """
        quota = await self.repository.get_quota(request.user_id)
        if quota is None:
            raise UserNotFound()

        if quota.exhausted:
            logger.info(
                f"AI request rejected for user {request.user_id}: "
                f"quota exhausted ({quota.tokens_used}/{quota.tokens_limit})"
            )
            raise QuotaExceeded()

        action = resolve_action(request.action)
        messages = build_messages(
            action,
            prompt=request.prompt,
            context=request.context,
            target_language=request.target_language,
        )
        model = request.model or self.default_model

        completion = await self.gateway.complete(
            model,
            messages,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )

        cost = calculate_cost(model, completion.total_tokens)

        await self._persist_usage(request, action, model, completion, cost)

        logger.info(
            f"AI {action.value} for user {request.user_id} via {model}: "
            f"{completion.total_tokens} tokens, ${cost}"
        )

        return AIResponse(
            content=completion.text,
            prompt_tokens=completion.prompt_tokens,
            completion_tokens=completion.completion_tokens,
            total_tokens=completion.total_tokens,
            model=model,
            cost=cost,
        )

    async def _persist_usage(
        self,
        request: AIRequest,
        action: AIAction,
        model: str,
        completion: Completion,
        cost: Decimal,
    ) -> None:
        # Quota first: losing a ledger row is acceptable, under-counting quota is not
        await self.repository.increment_tokens(request.user_id, completion.total_tokens)

        record = UsageRecord(
            user_id=request.user_id,
            note_id=request.note_id,
            action=action.value,
            prompt_tokens=completion.prompt_tokens,
            completion_tokens=completion.completion_tokens,
            total_tokens=completion.total_tokens,
            model=model,
            cost=cost,
        )
        try:
            await self.repository.append_usage_record(record)
        except Exception as e:
            logger.error(
                f"Failed to write AI usage record for user {request.user_id} "
                f"({completion.total_tokens} tokens already charged): {e}"
            )

    async def get_usage_stats(self, user_id: uuid.UUID) -> UsageStats:
        """Live quota counters plus aggregates over the usage ledger."""
        quota = await self.repository.get_quota(user_id)
        if quota is None:
            raise UserNotFound()

        totals = await self.repository.get_usage_totals(user_id)
        return UsageStats(
            tokens_used=quota.tokens_used,
            tokens_limit=quota.tokens_limit,
            total_requests=totals.total_requests,
            total_cost=totals.total_cost,
        )

"""
Unit tests for the AI assist service.

Uses an in-memory usage repository and a mocked completion gateway.
"""

import asyncio
import uuid
from decimal import Decimal
from typing import Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from app.core.exceptions import (
    ConfigurationError,
    IncompleteResponse,
    QuotaExceeded,
    RateLimited,
    UpstreamError,
    UserNotFound,
)
from app.services.ai_service import AIRequest, AIService
from app.services.completion_gateway import Completion, CompletionGateway
from app.services.prompt_builder import AIAction, SYSTEM_PROMPTS
from app.services.usage_repository import (
    BaseUsageRepository,
    UsageRecord,
    UsageTotals,
    UserQuota,
)


class InMemoryUsageRepository(BaseUsageRepository):
    """Quota store and ledger kept in dicts."""

    def __init__(self):
        self.quotas: Dict[uuid.UUID, List[int]] = {}
        self.records: List[UsageRecord] = []
        self.fail_append = False

    def add_user(self, tokens_used: int = 0, tokens_limit: int = 100_000) -> uuid.UUID:
        user_id = uuid.uuid4()
        self.quotas[user_id] = [tokens_used, tokens_limit]
        return user_id

    async def get_quota(self, user_id: uuid.UUID) -> Optional[UserQuota]:
        if user_id not in self.quotas:
            return None
        used, limit = self.quotas[user_id]
        return UserQuota(tokens_used=used, tokens_limit=limit)

    async def increment_tokens(self, user_id: uuid.UUID, amount: int) -> None:
        if user_id not in self.quotas:
            raise UserNotFound()
        self.quotas[user_id][0] += amount

    async def append_usage_record(self, record: UsageRecord) -> None:
        if self.fail_append:
            raise RuntimeError("ledger unavailable")
        self.records.append(record)

    async def get_usage_totals(self, user_id: uuid.UUID) -> UsageTotals:
        mine = [r for r in self.records if r.user_id == user_id]
        return UsageTotals(
            total_requests=len(mine),
            total_cost=sum((r.cost for r in mine), Decimal("0")),
        )


def make_completion(prompt_tokens=100, completion_tokens=50, text="Generated text"):
    return Completion(
        text=text,
        prompt_tokens=prompt_tokens,
        completion_tokens=completion_tokens,
        total_tokens=prompt_tokens + completion_tokens,
        model="gpt-4o-mini-2024-07-18",
    )


@pytest.fixture
def repository():
    return InMemoryUsageRepository()


@pytest.fixture
def gateway():
    mock = AsyncMock(spec=CompletionGateway)
    mock.complete.return_value = make_completion()
    return mock


@pytest.fixture
def service(repository, gateway):
    return AIService(
        repository, gateway, default_model="gpt-4o-mini", temperature=0.7, max_tokens=2000
    )


class TestSuccessfulInvocation:
    """Metering of successful calls."""

    @pytest.mark.asyncio
    async def test_generate_meters_usage(self, service, repository, gateway):
        """100 + 50 tokens on gpt-4o-mini cost 0.000075 and are charged once."""
        user_id = repository.add_user(tokens_used=1000)

        result = await service.generate(
            AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="Write a haiku")
        )

        assert result.content == "Generated text"
        assert (result.prompt_tokens, result.completion_tokens, result.total_tokens) == (100, 50, 150)
        assert result.cost == Decimal("0.000075")
        assert repository.quotas[user_id][0] == 1150

        assert len(repository.records) == 1
        record = repository.records[0]
        assert record.action == "generate"
        assert record.total_tokens == 150
        assert record.model == "gpt-4o-mini"
        assert record.cost == Decimal("0.000075")

    @pytest.mark.asyncio
    async def test_gateway_receives_built_messages(self, service, repository, gateway):
        user_id = repository.add_user()

        await service.generate(
            AIRequest(
                user_id=user_id,
                action=AIAction.TRANSLATE,
                context="Bonjour",
                target_language="Spanish",
            )
        )

        gateway.complete.assert_awaited_once()
        args, kwargs = gateway.complete.call_args
        model, messages = args
        assert model == "gpt-4o-mini"
        assert messages[0]["content"] == SYSTEM_PROMPTS[AIAction.TRANSLATE]
        assert messages[1]["content"] == "Context from my notes:\nBonjour"
        assert messages[2]["content"] == "Translate the following text to Spanish:"
        assert kwargs == {"temperature": 0.7, "max_tokens": 2000}

    @pytest.mark.asyncio
    async def test_model_override_is_priced_and_recorded(self, service, repository, gateway):
        user_id = repository.add_user()
        gateway.complete.return_value = make_completion(prompt_tokens=600, completion_tokens=400)

        result = await service.generate(
            AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x", model="gpt-4o")
        )

        assert gateway.complete.call_args.args[0] == "gpt-4o"
        assert result.model == "gpt-4o"
        assert result.cost == Decimal("0.005000")
        assert repository.records[0].model == "gpt-4o"

    @pytest.mark.asyncio
    async def test_note_id_is_recorded(self, service, repository):
        user_id = repository.add_user()
        note_id = uuid.uuid4()

        await service.generate(
            AIRequest(user_id=user_id, action=AIAction.SUMMARIZE, context="t", note_id=note_id)
        )

        assert repository.records[0].note_id == note_id
        assert repository.records[0].action == "summarize"

    @pytest.mark.asyncio
    async def test_unknown_action_runs_as_generate(self, service, repository, gateway):
        user_id = repository.add_user()

        await service.generate(AIRequest(user_id=user_id, action="poetry", prompt="roses"))

        messages = gateway.complete.call_args.args[1]
        assert messages[0]["content"] == SYSTEM_PROMPTS[AIAction.GENERATE]
        assert repository.records[0].action == "generate"

    @pytest.mark.asyncio
    async def test_usage_only_grows(self, service, repository, gateway):
        user_id = repository.add_user()
        seen = [repository.quotas[user_id][0]]

        for tokens in (10, 0, 25):
            gateway.complete.return_value = make_completion(prompt_tokens=tokens, completion_tokens=0)
            await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x"))
            seen.append(repository.quotas[user_id][0])

        assert seen == sorted(seen)
        assert seen[-1] == 35


class TestAdmission:
    """Quota gate."""

    @pytest.mark.asyncio
    async def test_exhausted_quota_rejected_without_upstream_call(self, service, repository, gateway):
        user_id = repository.add_user(tokens_used=100_000, tokens_limit=100_000)

        with pytest.raises(QuotaExceeded):
            await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x"))

        gateway.complete.assert_not_awaited()
        assert repository.quotas[user_id][0] == 100_000
        assert repository.records == []

    @pytest.mark.asyncio
    async def test_over_limit_rejected(self, service, repository, gateway):
        user_id = repository.add_user(tokens_used=120_000, tokens_limit=100_000)

        with pytest.raises(QuotaExceeded):
            await service.generate(AIRequest(user_id=user_id, action=AIAction.IMPROVE, context="x"))
        gateway.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_one_token_left_is_admitted_and_may_overshoot(self, service, repository, gateway):
        """Admission only checks the counter before the call."""
        user_id = repository.add_user(tokens_used=99_999, tokens_limit=100_000)

        await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x"))

        assert repository.quotas[user_id][0] == 100_149

        with pytest.raises(QuotaExceeded):
            await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x"))

    @pytest.mark.asyncio
    async def test_unknown_user(self, service, gateway):
        with pytest.raises(UserNotFound):
            await service.generate(
                AIRequest(user_id=uuid.uuid4(), action=AIAction.GENERATE, prompt="x")
            )
        gateway.complete.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_requests_both_counted(self, service, repository):
        user_id = repository.add_user(tokens_used=0)

        await asyncio.gather(
            service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="a")),
            service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="b")),
        )

        assert repository.quotas[user_id][0] == 300
        assert len(repository.records) == 2


class TestFailuresLeaveNoTrace:
    """Failed upstream calls are neither charged nor recorded."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            RateLimited(),
            UpstreamError("boom"),
            IncompleteResponse(),
            ConfigurationError(),
        ],
    )
    async def test_error_propagates_without_persistence(self, service, repository, gateway, error):
        user_id = repository.add_user(tokens_used=500)
        gateway.complete.side_effect = error

        with pytest.raises(type(error)):
            await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x"))

        assert repository.quotas[user_id][0] == 500
        assert repository.records == []


class TestLedgerFailure:
    """A failed ledger write does not undo the charge."""

    @pytest.mark.asyncio
    async def test_append_failure_is_tolerated(self, service, repository):
        user_id = repository.add_user(tokens_used=0)
        repository.fail_append = True

        result = await service.generate(
            AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="x")
        )

        assert result.total_tokens == 150
        assert repository.quotas[user_id][0] == 150
        assert repository.records == []


class TestUsageStats:
    """Usage summary."""

    @pytest.mark.asyncio
    async def test_stats_after_invocations(self, service, repository):
        user_id = repository.add_user(tokens_used=0, tokens_limit=5000)

        await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="a"))
        await service.generate(AIRequest(user_id=user_id, action=AIAction.ANSWER, prompt="b"))

        stats = await service.get_usage_stats(user_id)
        assert stats.tokens_used == 300
        assert stats.tokens_limit == 5000
        assert stats.total_requests == 2
        assert stats.total_cost == Decimal("0.000150")

    @pytest.mark.asyncio
    async def test_stats_for_new_user(self, service, repository):
        user_id = repository.add_user()

        stats = await service.get_usage_stats(user_id)
        assert stats.total_requests == 0
        assert stats.total_cost == Decimal("0")

    @pytest.mark.asyncio
    async def test_stats_unknown_user(self, service):
        with pytest.raises(UserNotFound):
            await service.get_usage_stats(uuid.uuid4())


class TestSmallQuota:
    """A 1000-token allowance used up by one call, then rejected."""

    @pytest.mark.asyncio
    async def test_first_call_charged_then_rejected(self, service, repository, gateway):
        user_id = repository.add_user(tokens_used=0, tokens_limit=1000)
        gateway.complete.return_value = make_completion(prompt_tokens=30, completion_tokens=20)

        await service.generate(AIRequest(user_id=user_id, action=AIAction.GENERATE, prompt="hello"))

        assert repository.quotas[user_id][0] == 50
        assert [r.total_tokens for r in repository.records] == [50]

        repository.quotas[user_id][0] = 1000
        for action in AIAction:
            with pytest.raises(QuotaExceeded):
                await service.generate(AIRequest(user_id=user_id, action=action, prompt="x"))
        assert repository.quotas[user_id][0] == 1000
        assert gateway.complete.await_count == 1

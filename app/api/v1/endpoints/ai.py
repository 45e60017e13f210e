"""AI assist endpoints: one per action, plus usage stats."""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.notes import get_user_note
from app.core.database import get_db
from app.dependencies import get_ai_service, get_current_user
from app.models.user import User
from app.schemas import (
    AIAnswerRequest,
    AIContentResponse,
    AIGenerateRequest,
    AITextRequest,
    AITranslateRequest,
    AIUsageStatsResponse,
    ApiResponse,
)
from app.services.ai_service import AIRequest, AIResponse, AIService
from app.services.prompt_builder import AIAction

router = APIRouter()


async def _check_note(db: AsyncSession, user: User, note_id: Optional[UUID]) -> None:
    """A referenced note must be a live note owned by the caller."""
    if note_id is not None:
        await get_user_note(db, user.id, note_id)


def _content_response(result: AIResponse, message: str) -> ApiResponse[AIContentResponse]:
    return ApiResponse(
        data=AIContentResponse(
            content=result.content,
            prompt_tokens=result.prompt_tokens,
            completion_tokens=result.completion_tokens,
            total_tokens=result.total_tokens,
        ),
        message=message,
    )


@router.post("/generate", response_model=ApiResponse[AIContentResponse])
async def generate(
    body: AIGenerateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    """Generate content from a free-form prompt, optionally grounded in note context."""
    await _check_note(db, current_user, body.note_id)
    result = await ai_service.generate(
        AIRequest(
            user_id=current_user.id,
            action=AIAction.GENERATE,
            prompt=body.prompt,
            context=body.context,
            model=body.model,
            note_id=body.note_id,
        )
    )
    return _content_response(result, "Content generated successfully")


@router.post("/improve", response_model=ApiResponse[AIContentResponse])
async def improve(
    body: AITextRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    """Rewrite the supplied text to be clearer and more concise."""
    await _check_note(db, current_user, body.note_id)
    result = await ai_service.generate(
        AIRequest(
            user_id=current_user.id,
            action=AIAction.IMPROVE,
            context=body.text,
            note_id=body.note_id,
        )
    )
    return _content_response(result, "Text improved successfully")


@router.post("/summarize", response_model=ApiResponse[AIContentResponse])
async def summarize(
    body: AITextRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    """Summarize the supplied text as a few bullet points."""
    await _check_note(db, current_user, body.note_id)
    result = await ai_service.generate(
        AIRequest(
            user_id=current_user.id,
            action=AIAction.SUMMARIZE,
            context=body.text,
            note_id=body.note_id,
        )
    )
    return _content_response(result, "Text summarized successfully")


@router.post("/translate", response_model=ApiResponse[AIContentResponse])
async def translate(
    body: AITranslateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    """Translate the supplied text into `target_language`."""
    await _check_note(db, current_user, body.note_id)
    result = await ai_service.generate(
        AIRequest(
            user_id=current_user.id,
            action=AIAction.TRANSLATE,
            context=body.text,
            target_language=body.target_language,
            note_id=body.note_id,
        )
    )
    return _content_response(result, "Text translated successfully")


@router.post("/answer", response_model=ApiResponse[AIContentResponse])
async def answer(
    body: AIAnswerRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    ai_service: AIService = Depends(get_ai_service),
):
    """Answer a question, optionally using note content as context."""
    await _check_note(db, current_user, body.note_id)
    result = await ai_service.generate(
        AIRequest(
            user_id=current_user.id,
            action=AIAction.ANSWER,
            prompt=body.question,
            context=body.context,
            note_id=body.note_id,
        )
    )
    return _content_response(result, "Question answered successfully")


@router.get("/usage", response_model=ApiResponse[AIUsageStatsResponse])
async def usage_stats(
    current_user: User = Depends(get_current_user),
    ai_service: AIService = Depends(get_ai_service),
):
    """Quota counters and lifetime request/cost totals for the current user."""
    stats = await ai_service.get_usage_stats(current_user.id)
    return ApiResponse(
        data=AIUsageStatsResponse(
            tokens_used=stats.tokens_used,
            tokens_limit=stats.tokens_limit,
            total_requests=stats.total_requests,
            total_cost=float(stats.total_cost),
        ),
        message="AI usage stats retrieved",
    )

"""Pydantic schemas for request/response validation."""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

T = TypeVar("T")


# ─── Envelope ────────────────────────────────────────────────────────────────

class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope. Failures use `ErrorResponse`."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    message: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


# ─── Auth ────────────────────────────────────────────────────────────────────

class UserCreate(BaseModel):
    email: str = Field(..., min_length=3)
    password: str = Field(..., min_length=8)
    full_name: Optional[str] = Field(
        None, validation_alias=AliasChoices("full_name", "fullName")
    )


class UserLogin(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool = True
    email_verified: bool = False
    subscription_tier: str = "free"
    ai_tokens_used: int = 0
    ai_tokens_limit: int = 0
    created_at: datetime
    last_login: Optional[datetime] = None

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


# ─── Folder ──────────────────────────────────────────────────────────────────

class FolderCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    color: Optional[str] = None
    icon: Optional[str] = None


class FolderUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    color: Optional[str] = None
    icon: Optional[str] = None
    position: Optional[int] = None


class FolderResponse(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None
    icon: Optional[str] = None
    position: int = 0
    note_count: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ─── Note ────────────────────────────────────────────────────────────────────

class NoteCreate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    folder_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("folder_id", "folderId")
    )
    tags: List[str] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    title: Optional[str] = None
    content: Optional[str] = None
    folder_id: Optional[UUID] = Field(
        None, validation_alias=AliasChoices("folder_id", "folderId")
    )
    tags: Optional[List[str]] = None


class NoteSummary(BaseModel):
    id: UUID
    folder_id: Optional[UUID] = None
    title: str
    content_plain: Optional[str] = None
    word_count: int = 0
    is_pinned: bool = False
    is_favorite: bool = False
    tags: Optional[List[str]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NoteResponse(NoteSummary):
    user_id: UUID
    content: Optional[str] = None
    version: int = 1


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class NoteListResponse(BaseModel):
    items: List[NoteSummary]
    pagination: Pagination


class FolderDetailResponse(FolderResponse):
    notes: List[NoteSummary] = Field(default_factory=list)


class ImportResult(BaseModel):
    imported: int
    skipped: int


# ─── AI ──────────────────────────────────────────────────────────────────────

class AIGenerateRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    context: Optional[str] = None
    model: Optional[str] = None
    note_id: Optional[UUID] = Field(None, validation_alias=AliasChoices("note_id", "noteId"))


class AITextRequest(BaseModel):
    """Body for actions that transform supplied text (improve, summarize)."""

    text: str = Field(..., min_length=1)
    note_id: Optional[UUID] = Field(None, validation_alias=AliasChoices("note_id", "noteId"))


class AITranslateRequest(AITextRequest):
    target_language: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("target_language", "targetLanguage")
    )


class AIAnswerRequest(BaseModel):
    question: str = Field(..., min_length=1)
    context: Optional[str] = None
    note_id: Optional[UUID] = Field(None, validation_alias=AliasChoices("note_id", "noteId"))


class AIContentResponse(BaseModel):
    content: str
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class AIUsageStatsResponse(BaseModel):
    tokens_used: int
    tokens_limit: int
    total_requests: int
    total_cost: float

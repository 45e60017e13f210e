"""Note management endpoints (CRUD, pin/favorite, import and export)."""

import math
from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import Response
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.v1.endpoints.folders import get_user_folder
from app.core.database import get_db
from app.core.exceptions import ApiError
from app.core.logging import logger
from app.dependencies import get_current_user
from app.models.folder import DEFAULT_FOLDER_NAME, Folder
from app.models.note import DEFAULT_NOTE_TITLE, Note, NoteVersion
from app.models.user import User
from app.schemas import (
    ApiResponse,
    ImportResult,
    NoteCreate,
    NoteListResponse,
    NoteResponse,
    NoteSummary,
    NoteUpdate,
    Pagination,
)
from app.services.content_service import content_service

router = APIRouter()

SORT_COLUMNS = {
    "updated_at": Note.updated_at,
    "created_at": Note.created_at,
    "title": Note.title,
}

EXPORT_FORMATS = {
    "txt": "text/plain",
    "md": "text/markdown",
}


async def get_user_note(db: AsyncSession, user_id: UUID, note_id: UUID) -> Note:
    """Load a live note owned by the user or raise 404."""
    result = await db.execute(
        select(Note).where(
            Note.id == note_id,
            Note.user_id == user_id,
            Note.deleted_at.is_(None),
        )
    )
    note = result.scalar_one_or_none()
    if not note:
        raise ApiError(404, "Note not found", "NOTE_NOT_FOUND")
    return note


def escape_like(term: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def _download(content: str, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=f"{media_type}; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/", response_model=ApiResponse[NoteListResponse])
async def list_notes(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100, description="Max notes per page"),
    folder_id: Optional[UUID] = None,
    pinned: Optional[bool] = None,
    favorite: Optional[bool] = None,
    search: Optional[str] = Query(None, description="Matches title or plain-text content"),
    sort_by: Literal["updated_at", "created_at", "title"] = "updated_at",
    sort_order: Literal["asc", "desc"] = "desc",
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's notes with filters, search and pagination."""
    conditions = [Note.user_id == current_user.id, Note.deleted_at.is_(None)]
    if folder_id:
        conditions.append(Note.folder_id == folder_id)
    if pinned:
        conditions.append(Note.is_pinned.is_(True))
    if favorite:
        conditions.append(Note.is_favorite.is_(True))
    if search:
        pattern = f"%{escape_like(search)}%"
        conditions.append(
            or_(
                Note.title.ilike(pattern, escape="\\"),
                Note.content_plain.ilike(pattern, escape="\\"),
            )
        )

    sort_column = SORT_COLUMNS[sort_by]
    order = sort_column.asc() if sort_order == "asc" else sort_column.desc()

    total_result = await db.execute(select(func.count()).select_from(Note).where(*conditions))
    total = total_result.scalar() or 0

    result = await db.execute(
        select(Note)
        .where(*conditions)
        .order_by(order)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [NoteSummary.model_validate(n) for n in result.scalars().all()]

    return ApiResponse(
        data=NoteListResponse(
            items=items,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=math.ceil(total / limit),
                has_next=page * limit < total,
                has_prev=page > 1,
            ),
        ),
        message="Notes fetched successfully",
    )


@router.post("/", response_model=ApiResponse[NoteResponse], status_code=201)
async def create_note(
    data: NoteCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a note; plain text and word count are derived from the HTML."""
    if data.folder_id:
        await get_user_folder(db, current_user.id, data.folder_id)

    content_plain = content_service.strip_html(data.content)
    note = Note(
        user_id=current_user.id,
        folder_id=data.folder_id,
        title=data.title or DEFAULT_NOTE_TITLE,
        content=data.content,
        content_plain=content_plain,
        word_count=content_service.count_words(content_plain),
        tags=data.tags,
        version=1,
    )
    db.add(note)
    await db.flush()
    await db.refresh(note)

    logger.info(f"Note created by {current_user.email}: {note.title}")
    return ApiResponse(data=NoteResponse.model_validate(note), message="Note created successfully")


@router.get("/export/backup")
async def export_backup(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download all live notes as a JSON backup."""
    result = await db.execute(
        select(Note)
        .where(Note.user_id == current_user.id, Note.deleted_at.is_(None))
        .order_by(Note.created_at)
    )
    notes = result.scalars().all()

    logger.info(f"Backup exported by {current_user.email}: {len(notes)} note(s)")
    return _download(
        content_service.to_backup(notes),
        content_service.backup_file_name(),
        "application/json",
    )


@router.post("/import", response_model=ApiResponse[ImportResult], status_code=201)
async def import_notes(
    entries: List[dict] = Body(..., description="Notes from a JSON backup"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Import notes from a backup into the user's default folder."""
    parsed = content_service.parse_backup(entries)

    default = await db.execute(
        select(Folder.id).where(
            Folder.user_id == current_user.id,
            Folder.name == DEFAULT_FOLDER_NAME,
            Folder.deleted_at.is_(None),
        ).limit(1)
    )
    folder_id = default.scalar_one_or_none()

    for item in parsed:
        content_plain = content_service.strip_html(item["content"])
        db.add(
            Note(
                user_id=current_user.id,
                folder_id=folder_id,
                title=item["title"] or DEFAULT_NOTE_TITLE,
                content=item["content"],
                content_plain=content_plain,
                word_count=content_service.count_words(content_plain),
                tags=item["tags"],
                is_pinned=item["is_pinned"],
                is_favorite=item["is_favorite"],
                version=1,
            )
        )
    await db.flush()

    logger.info(f"Notes imported by {current_user.email}: {len(parsed)} of {len(entries)}")
    return ApiResponse(
        data=ImportResult(imported=len(parsed), skipped=len(entries) - len(parsed)),
        message=f"Successfully imported {len(parsed)} note(s)",
    )


@router.get("/{note_id}", response_model=ApiResponse[NoteResponse])
async def get_note(
    note_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a single note by ID."""
    note = await get_user_note(db, current_user.id, note_id)
    return ApiResponse(data=NoteResponse.model_validate(note), message="Note retrieved successfully")


@router.get("/{note_id}/export")
async def export_note(
    note_id: UUID,
    fmt: Literal["txt", "md"] = Query("md", alias="format", description="txt or md"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Download a note as plain text or markdown with front matter."""
    note = await get_user_note(db, current_user.id, note_id)

    if fmt == "md":
        content = content_service.to_markdown(note)
    else:
        content = content_service.to_text(note)

    filename = f"{content_service.sanitize_file_name(note.title)}.{fmt}"
    return _download(content, filename, EXPORT_FORMATS[fmt])


@router.put("/{note_id}", response_model=ApiResponse[NoteResponse])
async def update_note(
    note_id: UUID,
    data: NoteUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Update a note, keeping the previous state as a version snapshot."""
    note = await get_user_note(db, current_user.id, note_id)
    changes = data.model_dump(exclude_unset=True)

    if changes.get("folder_id"):
        await get_user_folder(db, current_user.id, changes["folder_id"])

    db.add(
        NoteVersion(
            note_id=note.id,
            user_id=current_user.id,
            title=note.title,
            content=note.content,
            version=note.version,
        )
    )

    if "content" in changes:
        note.content_plain = content_service.strip_html(changes["content"])
        note.word_count = content_service.count_words(note.content_plain)
    if "title" in changes and not changes["title"]:
        changes["title"] = DEFAULT_NOTE_TITLE

    for field, value in changes.items():
        setattr(note, field, value)
    note.version = (note.version or 1) + 1

    await db.flush()
    await db.refresh(note)

    return ApiResponse(data=NoteResponse.model_validate(note), message="Note updated successfully")


@router.delete("/{note_id}", response_model=ApiResponse[dict])
async def delete_note(
    note_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a note."""
    note = await get_user_note(db, current_user.id, note_id)
    note.deleted_at = datetime.utcnow()
    await db.flush()

    logger.info(f"Note deleted by {current_user.email}: {note.title}")
    return ApiResponse(data={"id": str(note.id)}, message="Note deleted successfully")


@router.patch("/{note_id}/pin", response_model=ApiResponse[NoteResponse])
async def toggle_pin(
    note_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle the note's pinned flag."""
    note = await get_user_note(db, current_user.id, note_id)
    note.is_pinned = not note.is_pinned
    await db.flush()
    await db.refresh(note)

    return ApiResponse(data=NoteResponse.model_validate(note), message="Note pin status updated")


@router.patch("/{note_id}/favorite", response_model=ApiResponse[NoteResponse])
async def toggle_favorite(
    note_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Toggle the note's favorite flag."""
    note = await get_user_note(db, current_user.id, note_id)
    note.is_favorite = not note.is_favorite
    await db.flush()
    await db.refresh(note)

    return ApiResponse(data=NoteResponse.model_validate(note), message="Note favorite status updated")

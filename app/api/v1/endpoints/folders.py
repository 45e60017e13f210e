"""Folder management endpoints."""

from datetime import datetime
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy import and_, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ApiError
from app.core.logging import logger
from app.dependencies import get_current_user
from app.models.folder import DEFAULT_FOLDER_NAME, Folder
from app.models.note import Note
from app.models.user import User
from app.schemas import (
    ApiResponse,
    FolderCreate,
    FolderDetailResponse,
    FolderResponse,
    FolderUpdate,
    NoteSummary,
)

router = APIRouter()


async def get_user_folder(db: AsyncSession, user_id: UUID, folder_id: UUID) -> Folder:
    """Load a live folder owned by the user or raise 404."""
    result = await db.execute(
        select(Folder).where(
            Folder.id == folder_id,
            Folder.user_id == user_id,
            Folder.deleted_at.is_(None),
        )
    )
    folder = result.scalar_one_or_none()
    if not folder:
        raise ApiError(404, "Folder not found", "FOLDER_NOT_FOUND")
    return folder


@router.get("/", response_model=ApiResponse[List[FolderResponse]])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """List the user's folders by position, with live note counts."""
    query = (
        select(Folder, func.count(Note.id))
        .outerjoin(Note, and_(Note.folder_id == Folder.id, Note.deleted_at.is_(None)))
        .where(Folder.user_id == current_user.id, Folder.deleted_at.is_(None))
        .group_by(Folder.id)
        .order_by(Folder.position, Folder.created_at)
    )
    result = await db.execute(query)

    folders = []
    for folder, note_count in result.all():
        item = FolderResponse.model_validate(folder)
        item.note_count = note_count
        folders.append(item)

    return ApiResponse(data=folders, message="Folders fetched successfully")


@router.post("/", response_model=ApiResponse[FolderResponse], status_code=201)
async def create_folder(
    data: FolderCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Create a folder at the end of the user's list."""
    max_position = await db.execute(
        select(func.max(Folder.position)).where(
            Folder.user_id == current_user.id, Folder.deleted_at.is_(None)
        )
    )
    position = (max_position.scalar() or 0) + 1

    folder = Folder(user_id=current_user.id, position=position, **data.model_dump())
    db.add(folder)
    await db.flush()
    await db.refresh(folder)

    logger.info(f"Folder created by {current_user.email}: {folder.name}")
    return ApiResponse(
        data=FolderResponse.model_validate(folder),
        message="Folder created successfully",
    )


@router.get("/{folder_id}", response_model=ApiResponse[FolderDetailResponse])
async def get_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Get a folder with its live notes, most recently updated first."""
    folder = await get_user_folder(db, current_user.id, folder_id)

    result = await db.execute(
        select(Note)
        .where(Note.folder_id == folder.id, Note.deleted_at.is_(None))
        .order_by(Note.updated_at.desc())
    )
    notes = [NoteSummary.model_validate(n) for n in result.scalars().all()]

    detail = FolderDetailResponse.model_validate(folder)
    detail.notes = notes
    detail.note_count = len(notes)
    return ApiResponse(data=detail, message="Folder retrieved successfully")


@router.put("/{folder_id}", response_model=ApiResponse[FolderResponse])
async def update_folder(
    folder_id: UUID,
    data: FolderUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Rename, recolor or reorder a folder."""
    folder = await get_user_folder(db, current_user.id, folder_id)

    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(folder, field, value)
    await db.flush()
    await db.refresh(folder)

    return ApiResponse(
        data=FolderResponse.model_validate(folder),
        message="Folder updated successfully",
    )


@router.delete("/{folder_id}", response_model=ApiResponse[dict])
async def delete_folder(
    folder_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a folder and move its notes to the default folder."""
    folder = await get_user_folder(db, current_user.id, folder_id)
    folder.deleted_at = datetime.utcnow()
    await db.flush()

    default = await db.execute(
        select(Folder).where(
            Folder.user_id == current_user.id,
            Folder.name == DEFAULT_FOLDER_NAME,
            Folder.deleted_at.is_(None),
        ).limit(1)
    )
    default_folder = default.scalar_one_or_none()

    # Without a default folder the notes become unfiled
    await db.execute(
        update(Note)
        .where(Note.folder_id == folder.id)
        .values(folder_id=default_folder.id if default_folder else None)
        .execution_options(synchronize_session=False)
    )

    logger.info(f"Folder deleted by {current_user.email}: {folder.name}")
    return ApiResponse(data={"id": str(folder.id)}, message="Folder deleted successfully")

"""SQLAlchemy models package."""

from app.models.user import User
from app.models.folder import Folder
from app.models.note import Note, NoteVersion
from app.models.ai_usage import AIUsage

__all__ = ["User", "Folder", "Note", "NoteVersion", "AIUsage"]

"""Note content helpers: HTML stripping, word counts, export and import."""

import html
import json
import re
from datetime import datetime
from typing import Iterable, List, Optional

from app.models.note import Note

TAG_RE = re.compile(r"<[^>]*>")
BLOCK_TAG_RE = re.compile(r"</(p|div|h[1-6]|li|blockquote|pre)>|<br\s*/?>", re.IGNORECASE)
MAX_FILENAME_LENGTH = 50


class ContentService:
    """Derives plain text from note HTML and renders notes for download."""

    def strip_html(self, content: Optional[str]) -> str:
        """Remove tags and collapse whitespace, as used for search and word counts."""
        if not content:
            return ""
        text = TAG_RE.sub("", content)
        text = html.unescape(text)
        return re.sub(r"\s+", " ", text).strip()

    def count_words(self, text: Optional[str]) -> int:
        return len(text.split()) if text else 0

    def sanitize_file_name(self, name: str) -> str:
        """Lowercase, dash-separated file stem, at most 50 characters."""
        stem = re.sub(r"[^a-z0-9]+", "-", (name or "").lower()).strip("-")
        return stem[:MAX_FILENAME_LENGTH] or "note"

    def to_text(self, note: Note) -> str:
        """Plain text export, keeping paragraph breaks from block tags."""
        if not note.content:
            return ""
        text = BLOCK_TAG_RE.sub("\n", note.content)
        text = html.unescape(TAG_RE.sub("", text))
        lines = [line.strip() for line in text.split("\n")]
        text = "\n".join(lines)
        return re.sub(r"\n{3,}", "\n\n", text).strip()

    def to_markdown(self, note: Note) -> str:
        """Text export prefixed with a YAML-style front matter block."""
        tags = ", ".join(note.tags) if note.tags else "none"
        frontmatter = (
            "---\n"
            f"title: {note.title}\n"
            f"created: {_isoformat(note.created_at)}\n"
            f"updated: {_isoformat(note.updated_at)}\n"
            f"tags: {tags}\n"
            "---\n\n"
        )
        return frontmatter + self.to_text(note)

    def to_backup(self, notes: Iterable[Note]) -> str:
        """Serialize notes as a JSON array that `parse_backup` accepts back."""
        payload = [
            {
                "id": str(note.id),
                "title": note.title,
                "content": note.content or "",
                "folder_id": str(note.folder_id) if note.folder_id else None,
                "is_pinned": bool(note.is_pinned),
                "is_favorite": bool(note.is_favorite),
                "tags": list(note.tags or []),
                "word_count": note.word_count or 0,
                "created_at": _isoformat(note.created_at),
                "updated_at": _isoformat(note.updated_at),
            }
            for note in notes
        ]
        return json.dumps(payload, indent=2, ensure_ascii=False)

    def backup_file_name(self, today: Optional[datetime] = None) -> str:
        today = today or datetime.utcnow()
        return f"notium-backup-{today.strftime('%Y-%m-%d')}.json"

    def parse_backup(self, entries: List[dict]) -> List[dict]:
        """
        Keep importable entries from a backup array.

        An entry needs a string title or string content; everything else is
        optional. Entries with non-string title or content are skipped.
        Returns normalized dicts with title, content, tags, is_pinned and
        is_favorite keys.
        """
        notes = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            title = entry.get("title") or ""
            content = entry.get("content") or ""
            if not isinstance(title, str) or not isinstance(content, str):
                continue
            title = title.strip()
            if not title and not content:
                continue
            tags = entry.get("tags") or []
            notes.append(
                {
                    "title": title,
                    "content": content,
                    "tags": [str(t) for t in tags] if isinstance(tags, list) else [],
                    "is_pinned": bool(entry.get("is_pinned", entry.get("isPinned", False))),
                    "is_favorite": bool(entry.get("is_favorite", entry.get("isFavorite", False))),
                }
            )
        return notes


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


# Singleton instance
content_service = ContentService()

"""Seed the database with a demo user and its default folder.

Usage:
    source .venv/bin/activate
    python -m app.scripts.seed_demo_user
"""

import asyncio

from sqlalchemy import select

from app.core.database import async_session
from app.dependencies import hash_password
from app.models.folder import DEFAULT_FOLDER_NAME, Folder
from app.models.note import Note
from app.models.user import User
from app.services.content_service import content_service

DEMO_EMAIL = "demo@notium.app"
DEMO_PASSWORD = "demo12345"
WELCOME_NOTE = (
    "<h1>Welcome to Notium</h1>"
    "<p>Select some text and use the AI panel to improve, summarize or translate it.</p>"
)


async def seed():
    async with async_session() as session:
        result = await session.execute(select(User).where(User.email == DEMO_EMAIL))
        existing = result.scalar_one_or_none()

        if existing:
            print(f"Demo user already exists: {existing.email}")
            return

        user = User(
            email=DEMO_EMAIL,
            full_name="Demo User",
            password_hash=hash_password(DEMO_PASSWORD),
        )
        session.add(user)
        await session.flush()

        folder = Folder(user_id=user.id, name=DEFAULT_FOLDER_NAME, position=0)
        session.add(folder)
        await session.flush()

        plain = content_service.strip_html(WELCOME_NOTE)
        session.add(
            Note(
                user_id=user.id,
                folder_id=folder.id,
                title="Welcome",
                content=WELCOME_NOTE,
                content_plain=plain,
                word_count=content_service.count_words(plain),
                tags=["welcome"],
            )
        )
        await session.commit()

        print("Demo user created!")
        print(f"  Email: {user.email}")
        print(f"  Password: {DEMO_PASSWORD}")
        print(f"  AI token limit: {user.ai_tokens_limit}")


if __name__ == "__main__":
    asyncio.run(seed())

"""
Database initialization script.

Run this script to create all required tables in the database, optionally
loading demo data:

    python -m notes_database.init_db [--seed]
"""
import asyncio
import logging
import sys

from .config import Settings
from .db import Database
from .logging_config import configure_logging
from .operations import NotesDataAccess
from .schemas import NoteCreate, UserCreate

logger = logging.getLogger(__name__)

DEMO_USERS = [
    {"username": "johndoe", "password": "password123"},
    {"username": "janedoe", "password": "password456"},
]

# (owner index in DEMO_USERS, title, content, is_important)
DEMO_NOTES = [
    (0, "Getting Started", "SQLAlchemy maps Python classes onto SQL tables.", True),
    (0, "SQLite Setup", "SQLite is a lightweight database that works great for development.", False),
    (1, "My First Note", "This is a test note created by Jane Doe.", False),
]


# PUBLIC_INTERFACE
async def init_db(database: Database):
    """Initializes the database by creating all tables if they do not exist."""
    await database.create_tables()


# PUBLIC_INTERFACE
async def seed_database(dal: NotesDataAccess, hash_password=None) -> bool:
    """
    Inserts the demo users and notes when the users table is empty.
    `hash_password`, when given, is applied to the demo passwords.

    Returns True when data was inserted, False when the store already had users.
    """
    if await dal.get_all_users():
        logger.info("Seed skipped, users already present.", extra={"component": "seed"})
        return False

    users = []
    for data in DEMO_USERS:
        password = hash_password(data["password"]) if hash_password else data["password"]
        users.append(await dal.create_user(UserCreate(username=data["username"], password=password)))
    for owner, title, content, is_important in DEMO_NOTES:
        await dal.create_note(
            NoteCreate(
                title=title,
                content=content,
                is_important=is_important,
                user_id=users[owner].id,
            )
        )
    logger.info(
        "Database seeded.",
        extra={"component": "seed", "users": len(DEMO_USERS), "notes": len(DEMO_NOTES)},
    )
    return True


async def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    database = Database(settings.database_url, echo=settings.sql_echo)
    try:
        await init_db(database)
        if "--seed" in argv:
            await seed_database(NotesDataAccess(database))
    finally:
        await database.close()


if __name__ == "__main__":
    asyncio.run(main())
    print("Database tables created successfully.")

"""
CRUD operations for users and notes.

Every method is one unit of work against the `Database` handle and returns
pydantic snapshots. Lookups that match nothing return None (or an empty
list); only constraint violations and storage failures raise.
"""
import logging
from datetime import datetime, timezone
from typing import Callable, List, Optional

from sqlalchemy import delete, select

from .db import Database
from .errors import ConstraintViolation, FOREIGN_KEY_COLUMNS
from .models import Note, User, fits_integer
from .schemas import NoteCreate, NoteOut, NoteUpdate, UserCreate, UserOut, UserUpdate

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Current UTC time at the storage resolution (whole seconds)."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def _check_owner(user_id: int) -> None:
    # An id the column cannot hold cannot reference a user.
    if not fits_integer(user_id):
        raise ConstraintViolation(
            "foreign_key",
            resource="notes",
            field=FOREIGN_KEY_COLUMNS["notes"],
            message=f"user {user_id} does not exist",
        )


# PUBLIC_INTERFACE
class NotesDataAccess:
    """Data-access layer for the `users` and `notes` tables."""

    def __init__(self, database: Database, clock: Optional[Callable[[], datetime]] = None):
        self.database = database
        self.clock = clock or utc_now

    #####################
    # USERS
    #####################

    async def create_user(self, user: UserCreate) -> UserOut:
        """Inserts a user. Raises ConstraintViolation(kind="unique") on a taken username."""
        async with self.database.session("users") as session:
            user_obj = User(username=user.username, password=user.password)
            session.add(user_obj)
            await session.flush()
            created = UserOut.model_validate(user_obj)
        logger.info("User created.", extra={"user_id": created.id})
        return created

    async def get_user_by_id(self, user_id: int) -> Optional[UserOut]:
        if not fits_integer(user_id):
            return None
        async with self.database.session("users") as session:
            user_obj = await session.get(User, user_id)
            return UserOut.model_validate(user_obj) if user_obj else None

    async def get_user_by_username(self, username: str) -> Optional[UserOut]:
        async with self.database.session("users") as session:
            user_obj = await session.scalar(select(User).where(User.username == username))
            return UserOut.model_validate(user_obj) if user_obj else None

    async def get_all_users(self) -> List[UserOut]:
        async with self.database.session("users") as session:
            result = await session.scalars(select(User).order_by(User.id))
            return [UserOut.model_validate(u) for u in result]

    async def update_user(self, user_id: int, patch: UserUpdate) -> Optional[UserOut]:
        """Overwrites only the fields present in `patch`; None when the user does not exist."""
        if not fits_integer(user_id):
            return None
        async with self.database.session("users") as session:
            user_obj = await session.get(User, user_id)
            if user_obj is None:
                return None
            for field, value in patch.model_dump(exclude_none=True).items():
                setattr(user_obj, field, value)
            await session.flush()
            return UserOut.model_validate(user_obj)

    async def delete_user(self, user_id: int) -> Optional[UserOut]:
        """Deletes a user; the store's ON DELETE CASCADE removes the user's notes."""
        if not fits_integer(user_id):
            return None
        async with self.database.session("users") as session:
            user_obj = await session.get(User, user_id)
            if user_obj is None:
                return None
            deleted = UserOut.model_validate(user_obj)
            # Core delete so the cascade is left to the database.
            await session.execute(delete(User).where(User.id == user_id))
        logger.info("User deleted.", extra={"user_id": user_id})
        return deleted

    #####################
    # NOTES
    #####################

    async def create_note(self, note: NoteCreate) -> NoteOut:
        """
        Inserts a note stamped with the current time.

        Raises ConstraintViolation(kind="foreign_key", field="user_id") when
        the owner does not exist.
        """
        _check_owner(note.user_id)
        async with self.database.session("notes") as session:
            note_obj = Note(
                title=note.title,
                content=note.content,
                is_important=note.is_important,
                user_id=note.user_id,
                created_at=self.clock(),
            )
            session.add(note_obj)
            await session.flush()
            created = NoteOut.model_validate(note_obj)
        logger.info("Note created.", extra={"note_id": created.id, "user_id": created.user_id})
        return created

    async def get_note_by_id(self, note_id: int) -> Optional[NoteOut]:
        if not fits_integer(note_id):
            return None
        async with self.database.session("notes") as session:
            note_obj = await session.get(Note, note_id)
            return NoteOut.model_validate(note_obj) if note_obj else None

    async def get_all_notes(self) -> List[NoteOut]:
        async with self.database.session("notes") as session:
            result = await session.scalars(select(Note).order_by(Note.id))
            return [NoteOut.model_validate(n) for n in result]

    async def get_notes_by_user_id(self, user_id: int) -> List[NoteOut]:
        if not fits_integer(user_id):
            return []
        async with self.database.session("notes") as session:
            result = await session.scalars(
                select(Note).where(Note.user_id == user_id).order_by(Note.id)
            )
            return [NoteOut.model_validate(n) for n in result]

    async def update_note(self, note_id: int, patch: NoteUpdate) -> Optional[NoteOut]:
        """Overwrites only the fields present in `patch`; created_at is never touched."""
        if not fits_integer(note_id):
            return None
        if patch.user_id is not None:
            _check_owner(patch.user_id)
        async with self.database.session("notes") as session:
            note_obj = await session.get(Note, note_id)
            if note_obj is None:
                return None
            for field, value in patch.model_dump(exclude_none=True).items():
                setattr(note_obj, field, value)
            await session.flush()
            return NoteOut.model_validate(note_obj)

    async def delete_note(self, note_id: int) -> Optional[NoteOut]:
        if not fits_integer(note_id):
            return None
        async with self.database.session("notes") as session:
            note_obj = await session.get(Note, note_id)
            if note_obj is None:
                return None
            deleted = NoteOut.model_validate(note_obj)
            await session.delete(note_obj)
        logger.info("Note deleted.", extra={"note_id": note_id})
        return deleted

    async def delete_user_notes(self, user_id: int) -> List[NoteOut]:
        """Deletes every note owned by `user_id` and returns the removed rows."""
        if not fits_integer(user_id):
            return []
        async with self.database.session("notes") as session:
            result = await session.scalars(
                select(Note).where(Note.user_id == user_id).order_by(Note.id)
            )
            deleted = [NoteOut.model_validate(n) for n in result]
            await session.execute(delete(Note).where(Note.user_id == user_id))
        logger.info("User notes deleted.", extra={"user_id": user_id, "count": len(deleted)})
        return deleted

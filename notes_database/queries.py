"""
Read-side helpers composed from the note and user tables: search,
pagination, the notes/users join and per-user statistics.

Lists of notes are ordered newest first (created_at descending, then id
descending so rows stamped in the same second keep a stable order).
"""
import logging
import math
from typing import List, Optional

from sqlalchemy import and_, func, select

from .db import Database
from .models import Note, User, fits_integer
from .schemas import (
    NoteBrief,
    NoteOut,
    NoteStats,
    NoteWithUser,
    PaginatedNotes,
    Pagination,
    UserOut,
    UserPublic,
    UserWithNotes,
)

logger = logging.getLogger(__name__)

NEWEST_FIRST = (Note.created_at.desc(), Note.id.desc())


# PUBLIC_INTERFACE
class NoteQueries:
    """
    Query helpers over the notes store.

    `case_sensitive` selects how `search_notes` matches titles: instr()
    (exact case) or ILIKE (ASCII case-insensitive on SQLite).
    """

    def __init__(self, database: Database, case_sensitive: bool = True):
        self.database = database
        self.case_sensitive = case_sensitive

    def _title_filter(self, title_query: str):
        if self.case_sensitive:
            return func.instr(Note.title, title_query) > 0
        return Note.title.icontains(title_query, autoescape=True)

    async def search_notes(self, title_query: str = "", important_only: bool = False) -> List[NoteOut]:
        """Notes whose title contains `title_query` and, if asked, are important."""
        conditions = []
        if title_query:
            conditions.append(self._title_filter(title_query))
        if important_only:
            conditions.append(Note.is_important == True)  # noqa: E712

        stmt = select(Note)
        if conditions:
            stmt = stmt.where(and_(*conditions))
        stmt = stmt.order_by(*NEWEST_FIRST)

        async with self.database.session("notes") as session:
            result = await session.scalars(stmt)
            notes = [NoteOut.model_validate(n) for n in result]
        logger.debug(
            "Notes searched.",
            extra={"title_query": title_query, "important_only": important_only, "count": len(notes)},
        )
        return notes

    async def get_paginated_notes(self, page: int = 1, limit: int = 10) -> PaginatedNotes:
        """
        One page of notes plus metadata. `page` is 1-indexed; a page past the
        end returns no data but still reports the unfiltered total.
        """
        if page < 1:
            raise ValueError("page must be >= 1")
        if limit < 1:
            raise ValueError("limit must be >= 1")
        offset = (page - 1) * limit

        async with self.database.session("notes") as session:
            total = await session.scalar(select(func.count()).select_from(Note))
            data = []
            # Past the end there is nothing to fetch; offset may not even fit an INTEGER.
            if offset < total:
                result = await session.scalars(
                    select(Note).order_by(*NEWEST_FIRST).limit(min(limit, total)).offset(offset)
                )
                data = [NoteOut.model_validate(n) for n in result]

        return PaginatedNotes(
            data=data,
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                pages=math.ceil(total / limit),
            ),
        )

    async def get_notes_with_users(self) -> List[NoteWithUser]:
        """Inner join of notes and their authors; the author's password is never included."""
        stmt = (
            select(Note, User)
            .join(User, Note.user_id == User.id)
            .order_by(*NEWEST_FIRST)
        )
        async with self.database.session("notes") as session:
            result = await session.execute(stmt)
            return [
                NoteWithUser(
                    note=NoteBrief.model_validate(note_obj),
                    user=UserPublic.model_validate(user_obj),
                )
                for note_obj, user_obj in result
            ]

    async def get_user_with_notes(self, user_id: int) -> Optional[UserWithNotes]:
        if not fits_integer(user_id):
            return None
        async with self.database.session("users") as session:
            user_obj = await session.get(User, user_id)
            if user_obj is None:
                return None
            user = UserOut.model_validate(user_obj)
            result = await session.scalars(
                select(Note).where(Note.user_id == user_id).order_by(Note.id)
            )
            notes = [NoteOut.model_validate(n) for n in result]

        return UserWithNotes(
            user=user,
            notes=notes,
            stats=NoteStats(
                total_notes=len(notes),
                important_notes=sum(1 for n in notes if n.is_important),
            ),
        )

"""
Row shapes returned and accepted by the notes store.

Select-shapes (`UserOut`, `NoteOut`) are value snapshots of stored rows.
Insert-shapes (`UserCreate`, `NoteCreate`) omit server-assigned fields.
Patch shapes (`UserUpdate`, `NoteUpdate`) make every field optional; a
missing or None field leaves the column untouched.

JSON keys are camelCase (`isImportant`, `userId`, `createdAt`); Python
code uses the snake_case attribute names.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ---- users ----

class UserBase(CamelModel):
    username: str = Field(..., min_length=1, description="Unique username")


class UserCreate(UserBase):
    password: str = Field(..., min_length=1)


class UserUpdate(CamelModel):
    username: Optional[str] = Field(None, min_length=1)
    password: Optional[str] = Field(None, min_length=1)


class UserPublic(UserBase):
    id: int


class UserOut(UserPublic):
    password: str


# ---- notes ----

class NoteBase(CamelModel):
    title: str = Field(..., min_length=1)
    content: str
    is_important: bool = False


class NoteCreate(NoteBase):
    user_id: int


class NoteUpdate(CamelModel):
    title: Optional[str] = Field(None, min_length=1)
    content: Optional[str] = None
    is_important: Optional[bool] = None
    user_id: Optional[int] = None


class NoteBrief(NoteBase):
    """A note without its owner reference, as embedded in joined results."""
    id: int
    created_at: datetime


class NoteOut(NoteBrief):
    user_id: int


# ---- query results ----

class NoteWithUser(CamelModel):
    note: NoteBrief
    user: UserPublic


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    pages: int


class PaginatedNotes(CamelModel):
    data: List[NoteOut]
    pagination: Pagination


class NoteStats(CamelModel):
    total_notes: int
    important_notes: int


class UserWithNotes(CamelModel):
    user: UserOut
    notes: List[NoteOut]
    stats: NoteStats

from .config import Settings
from .db import Database
from .errors import ConstraintViolation, NotesDatabaseError, StorageError
from .operations import NotesDataAccess
from .queries import NoteQueries

__all__ = [
    "Settings",
    "Database",
    "ConstraintViolation",
    "NotesDatabaseError",
    "StorageError",
    "NotesDataAccess",
    "NoteQueries",
]

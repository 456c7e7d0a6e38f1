"""
Typed failures raised by the notes store.

"Not found" is never an error here: lookups return None or an empty list.
"""
import re
from typing import Optional

from sqlalchemy.exc import IntegrityError

# SQLite: "UNIQUE constraint failed: users.username"
_SQLITE_COLUMN_RE = re.compile(r"constraint failed: (\w+)\.(\w+)", re.IGNORECASE)
# PostgreSQL: "Key (username)=(alice) already exists."
_KEY_COLUMN_RE = re.compile(r"Key \((\w+)\)=")

# The only foreign key per table; SQLite does not name it in the error.
FOREIGN_KEY_COLUMNS = {"notes": "user_id"}


class NotesDatabaseError(Exception):
    """Base class for every failure raised by the notes store."""


# PUBLIC_INTERFACE
class ConstraintViolation(NotesDatabaseError):
    """
    The store rejected a write because of a unique, foreign-key or not-null rule.

    `kind` is one of "unique", "foreign_key", "not_null" or "constraint";
    `resource` is the table and `field` the column, when known.
    """

    def __init__(self, kind: str, resource: str, field: Optional[str] = None, message: str = ""):
        self.kind = kind
        self.resource = resource
        self.field = field
        self.message = message or f"{kind} constraint violated on {resource}"
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"ConstraintViolation(kind={self.kind!r}, resource={self.resource!r}, field={self.field!r})"


# PUBLIC_INTERFACE
class StorageError(NotesDatabaseError):
    """Any other storage failure; the original exception is chained as __cause__."""


def translate_integrity_error(exc: IntegrityError, resource: str) -> ConstraintViolation:
    """Maps a driver IntegrityError onto a ConstraintViolation with its field tag."""
    message = str(exc.orig) if exc.orig is not None else str(exc)
    lowered = message.lower()

    if "foreign key" in lowered:
        return ConstraintViolation(
            "foreign_key",
            resource=resource,
            field=FOREIGN_KEY_COLUMNS.get(resource),
            message=message,
        )

    if "unique" in lowered or "duplicate" in lowered:
        kind = "unique"
    elif "not null" in lowered:
        kind = "not_null"
    else:
        kind = "constraint"

    field = None
    match = _SQLITE_COLUMN_RE.search(message)
    if match:
        resource, field = match.group(1), match.group(2)
    else:
        match = _KEY_COLUMN_RE.search(message)
        if match:
            field = match.group(1)
    return ConstraintViolation(kind, resource=resource, field=field, message=message)

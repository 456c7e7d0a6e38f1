from datetime import datetime, timezone

from sqlalchemy import Column, ForeignKey, Integer, Text, text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.types import TypeDecorator

Base = declarative_base()

# Signed 64-bit range of an SQLite INTEGER.
MAX_INTEGER = 2**63 - 1


def fits_integer(value) -> bool:
    return -MAX_INTEGER - 1 <= value <= MAX_INTEGER


class IntegerBoolean(TypeDecorator):
    """Boolean stored as a 0/1 INTEGER column."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return 1 if value else 0

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return bool(value)


class EpochSeconds(TypeDecorator):
    """Timestamp stored as INTEGER seconds since the epoch, read back as an aware UTC datetime."""

    impl = Integer
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return int(value.timestamp())

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        return datetime.fromtimestamp(value, tz=timezone.utc)


# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for a user owning notes.
    """
    __tablename__ = "users"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    username = Column(Text, unique=True, nullable=False)
    password = Column(Text, nullable=False)

    # Rows are removed by the database's ON DELETE CASCADE.
    notes = relationship("Note", back_populates="owner", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<User id={self.id} username={self.username!r}>"


# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for a note.
    """
    __tablename__ = "notes"
    __table_args__ = {"sqlite_autoincrement": True}

    id = Column(Integer, primary_key=True)
    title = Column(Text, nullable=False)
    content = Column(Text, nullable=False)
    is_important = Column(IntegerBoolean, nullable=False, default=False, server_default=text("0"))
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(EpochSeconds, nullable=False)

    owner = relationship("User", back_populates="notes")

    def __repr__(self) -> str:
        return f"<Note id={self.id} user_id={self.user_id}>"

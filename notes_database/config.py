import os
from dataclasses import dataclass

from dotenv import load_dotenv

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


# PUBLIC_INTERFACE
def get_database_url():
    """
    Retrieves the database URL from the environment variable DATABASE_URL.
    """
    load_dotenv()
    db_url = os.getenv("DATABASE_URL")
    if not db_url:
        raise ValueError("DATABASE_URL environment variable not set.")
    return db_url


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Settings:
    """
    Runtime settings for the notes store and API.
    """

    database_url: str
    log_level: str = "INFO"
    sql_echo: bool = False
    search_case_sensitive: bool = True
    seed_on_startup: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Builds settings from the process environment (and a .env file, if present)."""
        database_url = get_database_url()
        return cls(
            database_url=database_url,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            sql_echo=_env_flag("SQL_ECHO", False),
            search_case_sensitive=_env_flag("NOTES_SEARCH_CASE_SENSITIVE", True),
            seed_on_startup=_env_flag("SEED_ON_STARTUP", False),
        )

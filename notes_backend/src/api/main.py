import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from passlib.context import CryptContext
from pydantic.alias_generators import to_camel

from notes_database.config import Settings
from notes_database.db import Database
from notes_database.errors import ConstraintViolation, StorageError
from notes_database.init_db import init_db, seed_database
from notes_database.logging_config import configure_logging
from notes_database.operations import NotesDataAccess
from notes_database.queries import NoteQueries
from notes_database.schemas import (
    CamelModel,
    NoteCreate,
    NoteOut,
    NoteStats,
    NoteUpdate,
    NoteWithUser,
    PaginatedNotes,
    UserCreate,
    UserOut,
    UserPublic,
    UserUpdate,
)

logger = logging.getLogger(__name__)

# Passwords never reach the store in plain text.
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


# Response shapes that hide the stored password

class UserProfile(CamelModel):
    user: UserPublic
    notes: List[NoteOut]
    stats: NoteStats


class DeletedNotes(CamelModel):
    deleted: int


def get_password_hash(password):
    return pwd_context.hash(password)


def to_public(user: UserOut) -> UserPublic:
    return UserPublic(id=user.id, username=user.username)


# DATABASE Dependencies
def get_dal(request: Request) -> NotesDataAccess:
    return request.app.state.dal


def get_queries(request: Request) -> NoteQueries:
    return request.app.state.queries


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Builds the API application.

    The database handle is opened in the lifespan (tables created, demo data
    seeded when configured) and disposed on shutdown. Settings are read from
    the environment at startup when none are given.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or Settings.from_env()
        configure_logging(app_settings.log_level)

        database = Database(app_settings.database_url, echo=app_settings.sql_echo)
        await init_db(database)
        dal = NotesDataAccess(database)
        if app_settings.seed_on_startup:
            await seed_database(dal, hash_password=get_password_hash)

        app.state.database = database
        app.state.dal = dal
        app.state.queries = NoteQueries(database, case_sensitive=app_settings.search_case_sensitive)
        logger.info("Notes API started.", extra={"component": "api"})
        yield
        await database.close()
        logger.info("Notes API stopped.", extra={"component": "api"})

    app = FastAPI(
        title="Notes Backend API",
        description="Backend API for users and their notes.",
        version="1.0.0",
        lifespan=lifespan,
        openapi_tags=[
            {"name": "Users", "description": "Create, update, view and delete users"},
            {"name": "Notes", "description": "Create, update, view, delete, search and page notes"},
        ],
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # adjust for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)
    register_routes(app)
    return app


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(HTTPException)
    async def custom_http_exception_handler(request, exc):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
        )

    @app.exception_handler(ConstraintViolation)
    async def constraint_violation_handler(request, exc: ConstraintViolation):
        field = to_camel(exc.field) if exc.field else None
        if exc.kind == "unique":
            status_code = status.HTTP_409_CONFLICT
            detail = f"{field or 'value'} already exists."
        elif exc.kind == "foreign_key":
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
            detail = f"{field or 'reference'} does not reference an existing row."
        else:
            status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
            detail = "Constraint violated."
        return JSONResponse(
            status_code=status_code,
            content={"detail": detail, "field": field, "resource": exc.resource},
        )

    @app.exception_handler(StorageError)
    async def storage_error_handler(request, exc: StorageError):
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Storage failure."},
        )


def register_routes(app: FastAPI) -> None:
    # Root Health Check
    @app.get("/", summary="Health Check", tags=["General"])
    def health_check():
        """Simple health check endpoint."""
        return {"message": "Healthy"}

    #####################
    # USER ENDPOINTS
    #####################

    # PUBLIC_INTERFACE
    @app.get("/api/users", response_model=List[UserPublic], summary="List users", tags=["Users"])
    async def list_users(dal: NotesDataAccess = Depends(get_dal)):
        return [to_public(u) for u in await dal.get_all_users()]

    # PUBLIC_INTERFACE
    @app.post("/api/users", response_model=UserPublic, status_code=201, summary="Create a user", tags=["Users"])
    async def create_user(user: UserCreate, dal: NotesDataAccess = Depends(get_dal)):
        """
        Create a new user. The password is hashed before it is stored.
        Returns 409 when the username is taken.
        """
        created = await dal.create_user(
            UserCreate(username=user.username, password=get_password_hash(user.password))
        )
        return to_public(created)

    # PUBLIC_INTERFACE
    @app.get("/api/users/{user_id}", response_model=UserPublic, summary="Get a user", tags=["Users"])
    async def get_user(user_id: int, dal: NotesDataAccess = Depends(get_dal)):
        user = await dal.get_user_by_id(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found.")
        return to_public(user)

    # PUBLIC_INTERFACE
    @app.patch("/api/users/{user_id}", response_model=UserPublic, summary="Update a user", tags=["Users"])
    async def update_user(user_id: int, user_update: UserUpdate, dal: NotesDataAccess = Depends(get_dal)):
        """
        Partially update a user; only supplied fields change.
        """
        if user_update.password is not None:
            user_update = user_update.model_copy(
                update={"password": get_password_hash(user_update.password)}
            )
        user = await dal.update_user(user_id, user_update)
        if not user:
            raise HTTPException(status_code=404, detail="User not found.")
        return to_public(user)

    # PUBLIC_INTERFACE
    @app.delete("/api/users/{user_id}", status_code=204, summary="Delete a user and their notes", tags=["Users"])
    async def delete_user(user_id: int, dal: NotesDataAccess = Depends(get_dal)):
        if not await dal.delete_user(user_id):
            raise HTTPException(status_code=404, detail="User not found.")
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    # PUBLIC_INTERFACE
    @app.get("/api/users/{user_id}/notes", response_model=UserProfile, summary="User with notes and stats", tags=["Users"])
    async def get_user_notes(user_id: int, queries: NoteQueries = Depends(get_queries)):
        profile = await queries.get_user_with_notes(user_id)
        if not profile:
            raise HTTPException(status_code=404, detail="User not found.")
        return UserProfile(user=to_public(profile.user), notes=profile.notes, stats=profile.stats)

    # PUBLIC_INTERFACE
    @app.delete("/api/users/{user_id}/notes", response_model=DeletedNotes, summary="Delete all notes of a user", tags=["Users"])
    async def delete_user_notes(user_id: int, dal: NotesDataAccess = Depends(get_dal)):
        deleted = await dal.delete_user_notes(user_id)
        return DeletedNotes(deleted=len(deleted))

    #####################
    # NOTES ENDPOINTS
    #####################

    # PUBLIC_INTERFACE
    @app.get("/api/notes", response_model=List[NoteOut], summary="List and search notes", tags=["Notes"])
    async def list_notes(
        q: Optional[str] = Query(None, description="Substring to look for in note titles"),
        important: bool = Query(False, description="Only return important notes"),
        queries: NoteQueries = Depends(get_queries),
    ):
        """
        Notes newest first, optionally filtered by title and importance.
        """
        return await queries.search_notes(q or "", important)

    # PUBLIC_INTERFACE
    @app.get("/api/notes/page", response_model=PaginatedNotes, summary="Page through notes", tags=["Notes"])
    async def page_notes(
        page: int = Query(1, ge=1),
        limit: int = Query(10, ge=1, le=100),
        queries: NoteQueries = Depends(get_queries),
    ):
        return await queries.get_paginated_notes(page, limit)

    # PUBLIC_INTERFACE
    @app.get("/api/notes/with-users", response_model=List[NoteWithUser], summary="Notes with their authors", tags=["Notes"])
    async def notes_with_users(queries: NoteQueries = Depends(get_queries)):
        return await queries.get_notes_with_users()

    # PUBLIC_INTERFACE
    @app.post("/api/notes", response_model=NoteOut, status_code=201, summary="Create a note", tags=["Notes"])
    async def create_note(note: NoteCreate, dal: NotesDataAccess = Depends(get_dal)):
        """
        Create a new note. The creation time is assigned by the server.
        Returns 422 when userId does not match an existing user.
        """
        return await dal.create_note(note)

    # PUBLIC_INTERFACE
    @app.get("/api/notes/{note_id}", response_model=NoteOut, summary="Get a single note", tags=["Notes"])
    async def get_note(note_id: int, dal: NotesDataAccess = Depends(get_dal)):
        note = await dal.get_note_by_id(note_id)
        if not note:
            raise HTTPException(status_code=404, detail="Note not found.")
        return note

    # PUBLIC_INTERFACE
    @app.patch("/api/notes/{note_id}", response_model=NoteOut, summary="Update a note", tags=["Notes"])
    async def update_note(note_id: int, note_update: NoteUpdate, dal: NotesDataAccess = Depends(get_dal)):
        note = await dal.update_note(note_id, note_update)
        if not note:
            raise HTTPException(status_code=404, detail="Note not found.")
        return note

    # PUBLIC_INTERFACE
    @app.delete("/api/notes/{note_id}", status_code=204, summary="Delete a note", tags=["Notes"])
    async def delete_note(note_id: int, dal: NotesDataAccess = Depends(get_dal)):
        if not await dal.delete_note(note_id):
            raise HTTPException(status_code=404, detail="Note not found.")
        return Response(status_code=status.HTTP_204_NO_CONTENT)


app = create_app()

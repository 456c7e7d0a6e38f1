import math

import pytest

from notes_database.queries import NoteQueries
from notes_database.schemas import NoteCreate, UserCreate


async def make_notes(dal, count, **fields):
    user = await dal.create_user(UserCreate(username="writer", password="pw"))
    return [
        await dal.create_note(NoteCreate(title=f"note {i}", content="c", user_id=user.id, **fields))
        for i in range(count)
    ]


def is_newest_first(notes):
    stamps = [n.created_at for n in notes]
    return stamps == sorted(stamps, reverse=True)


# -------- SEARCH --------
async def test_search_without_filters_returns_everything(seeded, queries):
    found = await queries.search_notes("", False)
    assert {n.id for n in found} == {n.id for n in seeded["notes"]}
    assert is_newest_first(found)
    # Newest note first.
    assert found[0].id == seeded["notes"][-1].id


async def test_search_by_title(seeded, queries):
    found = await queries.search_notes("S")
    assert [n.title for n in found] == ["SQLite Setup", "Getting Started"]


async def test_search_combines_filters(seeded, queries):
    found = await queries.search_notes("Started", True)
    assert [n.title for n in found] == ["Getting Started"]

    assert await queries.search_notes("SQLite", True) == []


async def test_search_important_only(seeded, queries):
    found = await queries.search_notes(important_only=True)
    assert all(n.is_important for n in found)
    assert len(found) == 1


async def test_search_case_sensitive(seeded, queries):
    assert await queries.search_notes("sqlite") == []
    assert len(await queries.search_notes("SQLite")) == 1


async def test_search_case_insensitive(seeded, database):
    insensitive = NoteQueries(database, case_sensitive=False)
    found = await insensitive.search_notes("sqlite")
    assert [n.title for n in found] == ["SQLite Setup"]


async def test_search_treats_wildcards_literally(dal, database):
    user = await dal.create_user(UserCreate(username="writer", password="pw"))
    await dal.create_note(NoteCreate(title="100% done", content="c", user_id=user.id))
    await dal.create_note(NoteCreate(title="plain", content="c", user_id=user.id))

    for case_sensitive in (True, False):
        q = NoteQueries(database, case_sensitive=case_sensitive)
        assert [n.title for n in await q.search_notes("%")] == ["100% done"]
        assert await q.search_notes("_") == []


# -------- PAGINATION --------
@pytest.mark.parametrize("limit", [1, 2, 3, 4, 7, 10])
async def test_pages_cover_all_notes(dal, queries, limit):
    notes = await make_notes(dal, 7)
    first = await queries.get_paginated_notes(1, limit)
    pages = first.pagination.pages
    assert pages == math.ceil(7 / limit)

    collected = []
    for page in range(1, pages + 1):
        result = await queries.get_paginated_notes(page, limit)
        assert result.pagination.total == 7
        assert len(result.data) <= limit
        collected.extend(result.data)

    assert len(collected) == len(notes)
    assert {n.id for n in collected} == {n.id for n in notes}
    assert is_newest_first(collected)


async def test_page_past_the_end(dal, queries):
    await make_notes(dal, 3)
    result = await queries.get_paginated_notes(5, 2)
    assert result.data == []
    assert result.pagination.page == 5
    assert result.pagination.limit == 2
    assert result.pagination.total == 3
    assert result.pagination.pages == 2


async def test_pagination_empty_store(queries):
    result = await queries.get_paginated_notes()
    assert result.data == []
    assert result.pagination.total == 0
    assert result.pagination.pages == 0


@pytest.mark.parametrize("page,limit", [(0, 10), (1, 0), (-1, 5)])
async def test_pagination_rejects_bad_arguments(queries, page, limit):
    with pytest.raises(ValueError):
        await queries.get_paginated_notes(page, limit)


async def test_pagination_serializes_with_camel_case(dal, queries):
    await make_notes(dal, 1, is_important=True)
    payload = (await queries.get_paginated_notes(1, 5)).model_dump(by_alias=True)
    assert set(payload["pagination"]) == {"page", "limit", "total", "pages"}
    assert {"isImportant", "userId", "createdAt"} <= set(payload["data"][0])


# -------- JOIN --------
async def test_notes_with_users(seeded, queries):
    rows = await queries.get_notes_with_users()
    assert len(rows) == 3
    assert [r.note.title for r in rows] == ["My First Note", "SQLite Setup", "Getting Started"]
    assert rows[0].user.username == "janedoe"
    assert rows[1].user.id == seeded["john"].id

    dumped = rows[0].model_dump(by_alias=True)
    assert set(dumped["user"]) == {"id", "username"}
    assert "userId" not in dumped["note"]


# -------- USER WITH NOTES --------
async def test_user_with_notes_stats(seeded, queries):
    result = await queries.get_user_with_notes(seeded["john"].id)
    assert result.user == seeded["john"]
    assert [n.id for n in result.notes] == [n.id for n in seeded["notes"][:2]]
    assert result.stats.total_notes == 2
    assert result.stats.important_notes == 1
    assert result.stats.model_dump(by_alias=True) == {"totalNotes": 2, "importantNotes": 1}


async def test_user_without_notes(dal, queries):
    user = await dal.create_user(UserCreate(username="quiet", password="pw"))
    result = await queries.get_user_with_notes(user.id)
    assert result.notes == []
    assert result.stats.total_notes == 0
    assert result.stats.important_notes == 0


async def test_unknown_user_with_notes(queries):
    assert await queries.get_user_with_notes(404) is None


async def test_huge_page_is_empty(dal, queries):
    await make_notes(dal, 3)
    result = await queries.get_paginated_notes(2**62, 10)
    assert result.data == []
    assert result.pagination.total == 3
    assert result.pagination.pages == 1

    whole = await queries.get_paginated_notes(1, 2**64)
    assert len(whole.data) == 3
    assert whole.pagination.pages == 1


async def test_user_with_notes_huge_id(queries):
    assert await queries.get_user_with_notes(2**64) is None

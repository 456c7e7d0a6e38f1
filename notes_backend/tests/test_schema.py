from notes_database.init_db import DEMO_NOTES, DEMO_USERS, init_db, seed_database
from notes_database.queries import NoteQueries


async def table_info(database, table):
    async with database.engine.connect() as conn:
        result = await conn.exec_driver_sql(f"PRAGMA table_info({table})")
        return {row[1]: row for row in result}


async def test_users_table_shape(database):
    columns = await table_info(database, "users")
    assert list(columns) == ["id", "username", "password"]
    # (cid, name, type, notnull, dflt_value, pk)
    assert columns["id"][2] == "INTEGER" and columns["id"][5] == 1
    assert columns["username"][2:4] == ("TEXT", 1)
    assert columns["password"][2:4] == ("TEXT", 1)

    async with database.engine.connect() as conn:
        ddl = (await conn.exec_driver_sql(
            "SELECT sql FROM sqlite_master WHERE name = 'users'"
        )).scalar_one()
    assert "AUTOINCREMENT" in ddl
    assert "UNIQUE" in ddl


async def test_notes_table_shape(database):
    columns = await table_info(database, "notes")
    assert list(columns) == ["id", "title", "content", "is_important", "user_id", "created_at"]
    assert columns["title"][2:4] == ("TEXT", 1)
    assert columns["content"][2:4] == ("TEXT", 1)
    assert columns["is_important"][2:5] == ("INTEGER", 1, "0")
    assert columns["user_id"][2:4] == ("INTEGER", 1)
    assert columns["created_at"][2:4] == ("INTEGER", 1)

    async with database.engine.connect() as conn:
        fks = (await conn.exec_driver_sql("PRAGMA foreign_key_list(notes)")).all()
    assert len(fks) == 1
    # (id, seq, table, from, to, on_update, on_delete, match)
    assert fks[0][2:5] == ("users", "user_id", "id")
    assert fks[0][6] == "CASCADE"


async def test_storage_encoding(seeded, database):
    async with database.engine.connect() as conn:
        rows = (await conn.exec_driver_sql(
            "SELECT is_important, created_at FROM notes ORDER BY id"
        )).all()
    assert [r[0] for r in rows] == [1, 0, 0]
    assert all(isinstance(r[1], int) for r in rows)
    assert rows[0][1] == int(seeded["notes"][0].created_at.timestamp())


async def test_foreign_keys_enforced(database):
    async with database.engine.connect() as conn:
        assert (await conn.exec_driver_sql("PRAGMA foreign_keys")).scalar_one() == 1


async def test_init_db_is_idempotent(seeded, database, dal):
    await init_db(database)
    await init_db(database)
    assert len(await dal.get_all_notes()) == 3


async def test_seed_database(dal, database):
    assert await seed_database(dal) is True
    users = await dal.get_all_users()
    assert [u.username for u in users] == [u["username"] for u in DEMO_USERS]
    assert len(await dal.get_all_notes()) == len(DEMO_NOTES)

    stats = (await NoteQueries(database).get_user_with_notes(users[0].id)).stats
    assert (stats.total_notes, stats.important_notes) == (2, 1)

    # Second run leaves the data alone.
    assert await seed_database(dal) is False
    assert len(await dal.get_all_notes()) == len(DEMO_NOTES)


async def test_seed_database_hashes_passwords(dal):
    await seed_database(dal, hash_password=lambda pw: "hashed:" + pw)
    john = await dal.get_user_by_username("johndoe")
    assert john.password == "hashed:password123"

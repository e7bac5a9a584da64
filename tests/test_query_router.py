from __future__ import annotations

import pytest

from conftest import USERS

PATH = "/api/query"


def test_query_like_filter_end_to_end(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT * FROM users WHERE name LIKE 'A%'",
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body == {
        "success": True,
        "columns": ["id", "name", "email"],
        "rows": [[1, "Alice Johnson", "alice@example.com"]],
        "totalRows": 1,
        "page": 1,
        "pageSize": 50,
        "totalPages": 1,
        "hasMore": False,
    }


def test_query_pagination_walk(client, users_db):
    q = {
        "filename": users_db,
        "query": "SELECT id FROM users ORDER BY id",
        "pageSize": 5,
    }

    first = client.post(PATH, json={**q, "page": 1}).json()
    second = client.post(PATH, json={**q, "page": 2}).json()

    assert (first["totalPages"], first["hasMore"]) == (2, True)
    assert second["hasMore"] is False
    assert first["rows"] + second["rows"] == [[u[0]] for u in USERS]


def test_query_clamps_page_and_page_size(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT * FROM users",
            "page": -5,
            "pageSize": 5000,
        },
    )
    body = r.json()
    assert body["page"] == 1
    assert body["pageSize"] == 1000

    r = client.post(
        PATH,
        json={"filename": users_db, "query": "SELECT * FROM users", "pageSize": 0},
    )
    assert r.json()["pageSize"] == 1


def test_query_accepts_string_numbers(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT * FROM users",
            "page": "2",
            "pageSize": "3",
        },
    )
    body = r.json()
    assert (body["page"], body["pageSize"], body["totalPages"]) == (2, 3, 4)


def test_query_empty_result(client, users_db):
    r = client.post(
        PATH, json={"filename": users_db, "query": "SELECT * FROM users WHERE 0"}
    )
    assert r.status_code == 200
    body = r.json()
    assert body["columns"] == [] and body["rows"] == []
    assert body["totalRows"] == 0 and body["totalPages"] == 0
    assert body["hasMore"] is False


def test_query_huge_page_is_an_empty_page(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT * FROM users",
            "page": 10**20,
            "pageSize": 50,
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["rows"] == []
    assert body["totalRows"] == 10
    assert body["hasMore"] is False


def test_query_self_join_keeps_column_names(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT a.id, b.id FROM users a JOIN users b ON a.id = b.id",
        },
    )
    assert r.status_code == 200, r.text
    assert r.json()["columns"] == ["id", "id"]


@pytest.mark.parametrize(
    "sql, fragment",
    [
        ("DROP TABLE users", "operations are not allowed"),
        ("DELETE FROM users", "operations are not allowed"),
        ("SELECT * FROM users; DROP TABLE users;", "Semicolons are not allowed"),
        ("PRAGMA table_info(users)", "operations are not allowed"),
        ("SELECT * FROM users LIMIT 5", "clauses are not allowed"),
    ],
)
def test_query_rejects_disallowed_sql(client, users_db, sql, fragment):
    r = client.post(PATH, json={"filename": users_db, "query": sql})
    assert r.status_code == 400
    assert fragment in r.json()["error"]


def test_query_rejection_leaves_data_intact(client, users_db):
    client.post(PATH, json={"filename": users_db, "query": "DELETE FROM users"})
    r = client.post(PATH, json={"filename": users_db, "query": "SELECT * FROM users"})
    assert r.json()["totalRows"] == 10


@pytest.mark.parametrize(
    "payload",
    [{}, {"filename": "x.db"}, {"query": "SELECT 1"}, {"filename": "", "query": ""}],
)
def test_query_missing_params(client, payload):
    r = client.post(PATH, json=payload)
    assert r.status_code == 400
    assert r.json()["error"] == "Missing required parameters: filename and query"


def test_query_execution_error_is_500_with_hint(client, users_db):
    r = client.post(
        PATH, json={"filename": users_db, "query": "SELECT nope FROM users"}
    )
    assert r.status_code == 500
    body = r.json()
    assert body["error"].startswith("Column not found")
    assert body["code"] == "QUERY_FAILED"


def test_query_trailing_comment_still_paginates(client, users_db):
    r = client.post(
        PATH,
        json={
            "filename": users_db,
            "query": "SELECT id FROM users ORDER BY id -- all users",
            "page": 2,
            "pageSize": 4,
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["totalRows"] == 10
    assert body["rows"] == [[5], [6], [7], [8]]


# ---------------------------------------------------------------------------
# Tool mode
# ---------------------------------------------------------------------------


def test_tool_query_runs_own_limit_as_written(client, users_db):
    r = client.post(
        "/api/tool/query",
        json={
            "filename": users_db,
            "query": "SELECT id FROM users ORDER BY id LIMIT 3 OFFSET 1",
            "explanation": "second to fourth user",
        },
    )
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["rows"] == [[2], [3], [4]]
    assert body["totalRows"] == 3
    assert body["hasMore"] is False


def test_tool_query_without_limit_returns_first_page(client, users_db):
    r = client.post(
        "/api/tool/query",
        json={"filename": users_db, "query": "SELECT * FROM users", "pageSize": 4},
    )
    body = r.json()
    assert body["page"] == 1
    assert len(body["rows"]) == 4
    assert body["totalRows"] == 10
    assert body["hasMore"] is True


def test_tool_query_caps_page_size(client, users_db):
    r = client.post(
        "/api/tool/query",
        json={"filename": users_db, "query": "SELECT * FROM users", "pageSize": 999},
    )
    assert r.json()["pageSize"] == 200


def test_tool_query_still_rejects_writes(client, users_db):
    r = client.post(
        "/api/tool/query", json={"filename": users_db, "query": "DROP TABLE users"}
    )
    assert r.status_code == 400
    assert "DROP operations are not allowed" in r.json()["error"]

from unittest.mock import MagicMock

import psycopg
import pytest

from lead_sync.errors import ConfigurationError
from lead_sync.store.postgres import PostgresStore, build_upsert_statement


def _connection(fetched):
    conn = MagicMock()
    cur = conn.cursor.return_value.__enter__.return_value
    cur.fetchone.side_effect = list(fetched)
    return conn, cur


def test_requires_a_dsn(monkeypatch):
    monkeypatch.delenv("LEAD_SYNC_TEST_DSN", raising=False)

    with pytest.raises(ConfigurationError):
        PostgresStore(dsn_env="LEAD_SYNC_TEST_DSN")


def test_upsert_statement_targets_the_conflict_key():
    statement = build_upsert_statement("leads", ["email", "name"], "email")

    text = statement.as_string(None)

    assert text.startswith('INSERT INTO "leads" ("email", "name", created_at, updated_at)')
    assert 'ON CONFLICT ((lower("email"))) DO UPDATE SET "name" = EXCLUDED."name", updated_at = now()' in text
    assert '"email" = EXCLUDED."email"' not in text
    assert text.endswith("RETURNING *, (xmax = 0) AS _inserted")


def test_upsert_counts_inserts_and_updates():
    conn, cur = _connection(
        [
            {"id": "1", "email": "a@x.com", "_inserted": True},
            {"id": "2", "email": "b@x.com", "_inserted": False},
        ]
    )
    store = PostgresStore(connection=conn)

    result = store.upsert(
        "leads",
        [{"email": "a@x.com", "name": "A"}, {"email": "b@x.com", "name": "B"}],
        "email",
    )

    assert result.ok
    assert (result.inserted, result.updated) == (1, 1)
    assert result.data == [{"id": "1", "email": "a@x.com"}, {"id": "2", "email": "b@x.com"}]
    assert cur.execute.call_args_list[1].args[1] == ["b@x.com", "B"]
    conn.transaction.assert_called_once()


def test_upsert_reports_database_errors():
    conn, cur = _connection([])
    cur.execute.side_effect = psycopg.Error("duplicate key value violates unique constraint")
    store = PostgresStore(connection=conn)

    result = store.upsert("leads", [{"email": "a@x.com"}], "email")

    assert not result.ok
    assert "unique constraint" in result.error


def test_upsert_requires_conflict_column():
    conn, cur = _connection([])
    store = PostgresStore(connection=conn)

    result = store.upsert("leads", [{"name": "A"}], "email")

    assert not result.ok
    cur.execute.assert_not_called()


def test_select_passes_filter_values():
    conn, cur = _connection([])
    cur.fetchall.return_value = [{"id": "1", "email": "a@x.com"}]
    store = PostgresStore(connection=conn)

    rows = store.select("leads", {"email": "a@x.com"})

    assert rows == [{"id": "1", "email": "a@x.com"}]
    assert cur.execute.call_args.args[1] == ["a@x.com"]

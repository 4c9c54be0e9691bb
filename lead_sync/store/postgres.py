"""PostgreSQL-backed record store using ``INSERT ... ON CONFLICT`` upserts.

Expected tables (created and migrated outside this package). Emails are
matched case-insensitively through a unique index on ``lower(email)``::

    leads(id uuid primary key default gen_random_uuid(), email text not null,
          name, phone, company, status, assigned_to, note1, note2, street_address,
          post_code, lead_status, electricity_bill, source text,
          created_at timestamptz, updated_at timestamptz)
    salespersons(id uuid primary key default gen_random_uuid(), email text not null,
                 name, phone, department, region text,
                 created_at timestamptz, updated_at timestamptz)
    create unique index leads_email_key on leads (lower(email));
    create unique index salespersons_email_key on salespersons (lower(email));
"""
from __future__ import annotations

import logging
import os
from typing import Any, List, Mapping, Optional, Sequence

import psycopg
from psycopg import sql
from psycopg.rows import dict_row

from ..errors import ConfigurationError
from .base import Record, UpsertResult

LOGGER = logging.getLogger(__name__)

_MANAGED_COLUMNS = {"id", "created_at", "updated_at"}


class PostgresStore:
    """Record store over a psycopg connection."""

    def __init__(
        self,
        dsn: Optional[str] = None,
        *,
        dsn_env: Optional[str] = None,
        connection: Optional[psycopg.Connection] = None,
    ) -> None:
        if connection is None:
            dsn = dsn or (os.environ.get(dsn_env) if dsn_env else None)
            if not dsn:
                raise ConfigurationError(
                    "PostgresStore requires a 'dsn' option or a 'dsn_env' naming a set environment variable"
                )
            connection = psycopg.connect(dsn, autocommit=True)
        self._conn = connection

    def close(self) -> None:
        self._conn.close()

    def upsert(self, table: str, records: Sequence[Mapping[str, Any]], conflict_key: str) -> UpsertResult:
        if not records:
            return UpsertResult()
        columns = [column for column in records[0] if column not in _MANAGED_COLUMNS]
        if conflict_key not in columns:
            return UpsertResult(error=f"'{conflict_key}' is required for upsert into {table}")

        statement = build_upsert_statement(table, columns, conflict_key)
        result = UpsertResult()
        try:
            with self._conn.transaction():
                with self._conn.cursor(row_factory=dict_row) as cur:
                    for record in records:
                        cur.execute(statement, [record.get(column) for column in columns])
                        row = dict(cur.fetchone() or {})
                        if row.pop("_inserted", False):
                            result.inserted += 1
                        else:
                            result.updated += 1
                        result.data.append(row)
        except psycopg.Error as exc:
            LOGGER.warning("Upsert into %s failed: %s", table, exc.__class__.__name__)
            return UpsertResult(error=str(exc).strip() or exc.__class__.__name__)
        return result

    def select(self, table: str, filters: Optional[Mapping[str, Any]] = None) -> List[Record]:
        filters = dict(filters or {})
        query = sql.SQL("SELECT * FROM {}").format(sql.Identifier(table))
        if filters:
            query = sql.SQL("{} WHERE {}").format(
                query,
                sql.SQL(" AND ").join(
                    sql.SQL("{} = {}").format(sql.Identifier(column), sql.Placeholder()) for column in filters
                ),
            )
        with self._conn.cursor(row_factory=dict_row) as cur:
            cur.execute(query, list(filters.values()))
            return [dict(row) for row in cur.fetchall()]

    def delete(self, table: str, record_id: str) -> bool:
        query = sql.SQL("DELETE FROM {} WHERE id = %s").format(sql.Identifier(table))
        with self._conn.cursor() as cur:
            cur.execute(query, (record_id,))
            return cur.rowcount > 0


def build_upsert_statement(table: str, columns: Sequence[str], conflict_key: str) -> sql.Composed:
    """Compose a single-row upsert that refreshes ``updated_at`` and keeps ``created_at``.

    The conflict target is ``lower(key)`` and the key column is never
    updated, so an existing row keeps the address it was first stored with.
    """

    updates: List[sql.Composable] = [
        sql.SQL("{} = EXCLUDED.{}").format(sql.Identifier(column), sql.Identifier(column))
        for column in columns
        if column != conflict_key
    ]
    updates.append(sql.SQL("updated_at = now()"))
    return sql.SQL(
        "INSERT INTO {table} ({columns}, created_at, updated_at) "
        "VALUES ({values}, now(), now()) "
        "ON CONFLICT ((lower({key}))) DO UPDATE SET {updates} "
        "RETURNING *, (xmax = 0) AS _inserted"
    ).format(
        table=sql.Identifier(table),
        columns=sql.SQL(", ").join(sql.Identifier(column) for column in columns),
        values=sql.SQL(", ").join(sql.Placeholder() for _ in columns),
        key=sql.Identifier(conflict_key),
        updates=sql.SQL(", ").join(updates),
    )


__all__ = ["PostgresStore", "build_upsert_statement"]

from __future__ import annotations

import logging
from typing import Any, Optional

from sqlalchemy import Table, delete, insert, select, update
from sqlalchemy.exc import SQLAlchemyError

import models  # noqa: F401  (registers tables on Base.metadata)
from db import Base, SessionLocal
from utils import RemoteStoreError, iso_utc_now

log = logging.getLogger(__name__)


class SqlTableStore:
    """
    Generic table primitive over the relational store: filtered select, insert,
    update and delete by id. Rows go in and come out in store shape (snake_case).

    Each call runs in its own transaction; nothing here spans multiple rows or
    tables atomically. Every failure surfaces as RemoteStoreError.
    """

    def __init__(self, session_factory=None):
        self._session_factory = session_factory or SessionLocal

    def _table(self, name: str) -> Table:
        table = Base.metadata.tables.get(str(name or ""))
        if table is None:
            raise RemoteStoreError(f"Relation '{name}' does not exist")
        return table

    @staticmethod
    def _check_columns(table: Table, keys) -> None:
        unknown = sorted(k for k in keys if k not in table.c)
        if unknown:
            raise RemoteStoreError(
                f"Column(s) {', '.join(unknown)} do not exist on '{table.name}'",
                details={"table": table.name, "columns": unknown},
            )

    def _fetch_one(self, db, table: Table, row_id: str) -> Optional[dict[str, Any]]:
        row = db.execute(select(table).where(table.c.id == row_id)).first()
        return dict(row._mapping) if row is not None else None

    def select(
        self,
        table_name: str,
        filters: dict[str, Any] | None = None,
        *,
        order_by: str | None = "created_at",
        descending: bool = True,
    ) -> list[dict[str, Any]]:
        table = self._table(table_name)
        filters = filters or {}
        self._check_columns(table, filters.keys())

        q = select(table)
        for key, value in filters.items():
            col = table.c[key]
            q = q.where(col.is_(None) if value is None else col == value)
        if order_by and order_by in table.c:
            col = table.c[order_by]
            q = q.order_by(col.desc() if descending else col.asc())

        try:
            with self._session_factory() as db:
                rows = db.execute(q).all()
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"select from {table.name} failed: {e.__class__.__name__}") from e
        return [dict(r._mapping) for r in rows]

    def insert(self, table_name: str, row: dict[str, Any]) -> dict[str, Any]:
        table = self._table(table_name)
        self._check_columns(table, row.keys())

        try:
            with self._session_factory() as db, db.begin():
                res = db.execute(insert(table).values(**row))
                row_id = res.inserted_primary_key[0]
                created = self._fetch_one(db, table, row_id)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"insert into {table.name} failed: {e.__class__.__name__}") from e

        if created is None:
            raise RemoteStoreError(f"insert into {table.name} returned no row")
        log.debug("insert %s id=%s", table.name, row_id)
        return created

    def update(self, table_name: str, row_id: str, partial: dict[str, Any]) -> dict[str, Any]:
        table = self._table(table_name)
        self._check_columns(table, partial.keys())

        values = dict(partial)
        values.pop("id", None)
        if not values and "updated_at" in table.c:
            values["updated_at"] = iso_utc_now()

        try:
            with self._session_factory() as db, db.begin():
                res = db.execute(update(table).where(table.c.id == row_id).values(**values))
                if res.rowcount == 0:
                    raise RemoteStoreError(
                        f"{table.name} row {row_id} not found", code="NOT_FOUND", http_status=404
                    )
                updated = self._fetch_one(db, table, row_id)
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"update of {table.name} failed: {e.__class__.__name__}") from e

        log.debug("update %s id=%s keys=%s", table.name, row_id, sorted(values))
        return updated

    def delete(self, table_name: str, row_id: str) -> None:
        table = self._table(table_name)
        try:
            with self._session_factory() as db, db.begin():
                res = db.execute(delete(table).where(table.c.id == row_id))
                if res.rowcount == 0:
                    raise RemoteStoreError(
                        f"{table.name} row {row_id} not found", code="NOT_FOUND", http_status=404
                    )
        except SQLAlchemyError as e:
            raise RemoteStoreError(f"delete from {table.name} failed: {e.__class__.__name__}") from e
        log.debug("delete %s id=%s", table.name, row_id)

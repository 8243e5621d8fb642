"""SQLite-backed data access gateway for the trust dashboard."""

from __future__ import annotations

import datetime as dt
import json
import logging
import sqlite3
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from pydantic import BaseModel

from .errors import GatewayError

logger = logging.getLogger(__name__)


COLLECTIONS: dict[str, tuple[str, ...]] = {
    "donors": (
        "id",
        "name",
        "email",
        "phone",
        "type",
        "status",
        "birth_date",
        "anniversary_date",
        "social_media_handle",
        "memorial_dates",
        "created_at",
    ),
    "campaigns": (
        "id",
        "title",
        "description",
        "goal_cents",
        "deadline",
        "status",
        "created_at",
    ),
    "donations": (
        "id",
        "donor_id",
        "campaign_id",
        "amount_cents",
        "donation_type",
        "payment_method",
        "items",
        "donation_date",
        "created_at",
    ),
    "communications": (
        "id",
        "donor_id",
        "channel",
        "subject",
        "content",
        "status",
        "direction",
        "sent_at",
    ),
    "settings": (
        "id",
        "org_name",
        "org_email",
        "org_phone",
        "org_address",
        "website",
        "upi_id",
        "razorpay_key",
        "notifications_enabled",
    ),
    "users": (
        "id",
        "email",
        "password_hash",
        "salt",
        "created_at",
    ),
}

JSON_COLUMNS: dict[str, frozenset[str]] = {
    "donors": frozenset({"memorial_dates"}),
    "donations": frozenset({"items"}),
}

# (child collection, parent collection) -> foreign key column on the child
FOREIGN_KEYS: dict[tuple[str, str], str] = {
    ("donations", "donors"): "donor_id",
    ("donations", "campaigns"): "campaign_id",
    ("communications", "donors"): "donor_id",
}


def _json_default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    raise TypeError(f"Cannot serialize {type(value).__name__} to JSON.")


def _encode(collection: str, column: str, value: Any) -> Any:
    if column in JSON_COLUMNS.get(collection, frozenset()):
        if value is None:
            return None
        return json.dumps(list(value), default=_json_default)
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, (dt.date, dt.datetime)):
        return value.isoformat()
    return value


def _decode_row(collection: str, row: sqlite3.Row) -> dict[str, Any]:
    decoded = dict(row)
    for column in JSON_COLUMNS.get(collection, frozenset()):
        raw = decoded.get(column)
        if isinstance(raw, str):
            try:
                decoded[column] = json.loads(raw)
            except ValueError:
                logger.warning("Discarding malformed %s.%s value on row %s", collection, column, decoded.get("id"))
                decoded[column] = []
    return decoded


def _lastrowid(cursor: sqlite3.Cursor) -> int:
    row_id = cursor.lastrowid
    if row_id is None:
        raise GatewayError("Insert did not return a row id.")
    return row_id


def _table_columns(connection: sqlite3.Connection, table_name: str) -> set[str]:
    rows = connection.execute(f"PRAGMA table_info({table_name})").fetchall()
    return {str(row["name"]) for row in rows}


def _ensure_column(
    connection: sqlite3.Connection,
    table_name: str,
    column_name: str,
    definition: str,
) -> None:
    if column_name in _table_columns(connection, table_name):
        return
    connection.execute(
        f"ALTER TABLE {table_name} ADD COLUMN {column_name} {definition}"
    )


class DataGateway:
    """Collection-level select/insert/update/delete over the dashboard database."""

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        connection = sqlite3.connect(self.db_path)
        connection.row_factory = sqlite3.Row
        connection.execute("PRAGMA foreign_keys = ON")
        return connection

    def init_db(self) -> None:
        with self._connect() as connection:
            connection.executescript(
                """
                CREATE TABLE IF NOT EXISTS donors (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    email TEXT,
                    phone TEXT,
                    type TEXT NOT NULL DEFAULT 'Individual'
                        CHECK (type IN ('Individual', 'Corporate', 'Recurring')),
                    status TEXT NOT NULL DEFAULT 'Active'
                        CHECK (status IN ('Active', 'Inactive')),
                    birth_date TEXT,
                    anniversary_date TEXT,
                    social_media_handle TEXT,
                    memorial_dates TEXT NOT NULL DEFAULT '[]',
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS campaigns (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    description TEXT,
                    goal_cents INTEGER NOT NULL DEFAULT 0 CHECK (goal_cents >= 0),
                    deadline TEXT,
                    status TEXT NOT NULL DEFAULT 'Active'
                        CHECK (status IN ('Active', 'Completed')),
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                CREATE TABLE IF NOT EXISTS donations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    donor_id INTEGER NOT NULL,
                    campaign_id INTEGER,
                    amount_cents INTEGER CHECK (amount_cents IS NULL OR amount_cents >= 0),
                    donation_type TEXT NOT NULL DEFAULT 'monetary'
                        CHECK (donation_type IN ('monetary', 'in-kind')),
                    payment_method TEXT,
                    items TEXT,
                    donation_date TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (donor_id) REFERENCES donors(id) ON DELETE CASCADE,
                    FOREIGN KEY (campaign_id) REFERENCES campaigns(id) ON DELETE SET NULL
                );

                CREATE TABLE IF NOT EXISTS communications (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    donor_id INTEGER,
                    channel TEXT NOT NULL CHECK (channel IN ('Email', 'WhatsApp')),
                    subject TEXT,
                    content TEXT NOT NULL,
                    status TEXT NOT NULL DEFAULT 'Sent',
                    direction TEXT NOT NULL DEFAULT 'Outbound',
                    sent_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    FOREIGN KEY (donor_id) REFERENCES donors(id) ON DELETE SET NULL
                );

                CREATE TABLE IF NOT EXISTS settings (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    org_name TEXT,
                    org_email TEXT,
                    org_phone TEXT,
                    org_address TEXT,
                    website TEXT,
                    upi_id TEXT,
                    razorpay_key TEXT,
                    notifications_enabled INTEGER NOT NULL DEFAULT 1
                );

                CREATE TABLE IF NOT EXISTS users (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    email TEXT NOT NULL UNIQUE,
                    password_hash TEXT NOT NULL,
                    salt TEXT NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );

                CREATE INDEX IF NOT EXISTS idx_donations_date ON donations (donation_date);
                CREATE INDEX IF NOT EXISTS idx_donations_donor ON donations (donor_id);
                CREATE INDEX IF NOT EXISTS idx_donations_campaign ON donations (campaign_id);
                CREATE INDEX IF NOT EXISTS idx_communications_donor ON communications (donor_id);
                """
            )

            # Databases created before social handles were tracked.
            _ensure_column(
                connection=connection,
                table_name="donors",
                column_name="social_media_handle",
                definition="TEXT",
            )

            count_row = connection.execute(
                "SELECT COUNT(*) AS count FROM settings"
            ).fetchone()
            if count_row and count_row["count"] == 0:
                connection.execute(
                    "INSERT INTO settings (org_name, notifications_enabled) VALUES (?, ?)",
                    ("Prajakirana Seva Charitable Trust", 1),
                )

    def _check_collection(self, collection: str) -> tuple[str, ...]:
        columns = COLLECTIONS.get(collection)
        if columns is None:
            raise GatewayError(f"Unknown collection: {collection}")
        return columns

    def _check_columns(self, collection: str, names: Iterable[str]) -> None:
        allowed = self._check_collection(collection)
        unknown = sorted(set(names) - set(allowed))
        if unknown:
            raise GatewayError(f"Unknown column(s) for {collection}: {', '.join(unknown)}")

    def _where(
        self,
        collection: str,
        filters: Mapping[str, Any] | None,
    ) -> tuple[str, list[Any]]:
        if not filters:
            return "", []
        self._check_columns(collection, filters.keys())

        clauses: list[str] = []
        parameters: list[Any] = []
        for column, value in filters.items():
            if value is None:
                clauses.append(f"{column} IS NULL")
            elif isinstance(value, (list, tuple, set, frozenset)):
                values = list(value)
                if not values:
                    clauses.append("0 = 1")
                    continue
                placeholders = ", ".join("?" for _ in values)
                clauses.append(f"{column} IN ({placeholders})")
                parameters.extend(_encode(collection, column, item) for item in values)
            else:
                clauses.append(f"{column} = ?")
                parameters.append(_encode(collection, column, value))
        return f" WHERE {' AND '.join(clauses)}", parameters

    def select(
        self,
        collection: str,
        filters: Mapping[str, Any] | None = None,
        joins: Mapping[str, Sequence[str]] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        self._check_collection(collection)
        where_sql, parameters = self._where(collection, filters)

        order_sql = ""
        if order_by is not None:
            self._check_columns(collection, [order_by])
            direction = "DESC" if descending else "ASC"
            order_sql = f" ORDER BY {order_by} {direction}, id {direction}"

        limit_sql = ""
        if limit is not None:
            limit_sql = " LIMIT ?"
            parameters.append(int(limit))

        query = f"SELECT * FROM {collection}{where_sql}{order_sql}{limit_sql}"
        try:
            with self._connect() as connection:
                rows = [
                    _decode_row(collection, row)
                    for row in connection.execute(query, parameters).fetchall()
                ]
                for related, related_columns in (joins or {}).items():
                    self._attach(connection, collection, rows, related, related_columns)
        except sqlite3.Error as exc:
            logger.error("Select from %s failed: %s", collection, exc)
            raise GatewayError(f"Could not read {collection}: {exc}") from exc
        return rows

    def _attach(
        self,
        connection: sqlite3.Connection,
        collection: str,
        rows: list[dict[str, Any]],
        related: str,
        related_columns: Sequence[str],
    ) -> None:
        self._check_columns(related, related_columns)
        wanted = [column for column in related_columns if column != "id"]

        if (collection, related) in FOREIGN_KEYS:
            foreign_key = FOREIGN_KEYS[(collection, related)]
            parent_ids = sorted({row[foreign_key] for row in rows if row.get(foreign_key) is not None})
            parents: dict[int, dict[str, Any]] = {}
            if parent_ids:
                placeholders = ", ".join("?" for _ in parent_ids)
                select_sql = ", ".join(["id", *wanted])
                for parent in connection.execute(
                    f"SELECT {select_sql} FROM {related} WHERE id IN ({placeholders})",
                    parent_ids,
                ).fetchall():
                    parents[parent["id"]] = _decode_row(related, parent)
            for row in rows:
                row[related] = parents.get(row.get(foreign_key))
            return

        if (related, collection) in FOREIGN_KEYS:
            foreign_key = FOREIGN_KEYS[(related, collection)]
            parent_ids = [row["id"] for row in rows]
            children: dict[int, list[dict[str, Any]]] = {row_id: [] for row_id in parent_ids}
            if parent_ids:
                placeholders = ", ".join("?" for _ in parent_ids)
                select_sql = ", ".join(dict.fromkeys(["id", foreign_key, *wanted]))
                for child in connection.execute(
                    f"SELECT {select_sql} FROM {related} WHERE {foreign_key} IN ({placeholders}) ORDER BY id",
                    parent_ids,
                ).fetchall():
                    children[child[foreign_key]].append(_decode_row(related, child))
            for row in rows:
                row[related] = children.get(row["id"], [])
            return

        raise GatewayError(f"No relationship between {collection} and {related}.")

    def count(self, collection: str, filters: Mapping[str, Any] | None = None) -> int:
        self._check_collection(collection)
        where_sql, parameters = self._where(collection, filters)
        try:
            with self._connect() as connection:
                row = connection.execute(
                    f"SELECT COUNT(*) AS count FROM {collection}{where_sql}",
                    parameters,
                ).fetchone()
        except sqlite3.Error as exc:
            logger.error("Count on %s failed: %s", collection, exc)
            raise GatewayError(f"Could not count {collection}: {exc}") from exc
        return int(row["count"])

    def insert(
        self,
        collection: str,
        rows: Mapping[str, Any] | Sequence[Mapping[str, Any]],
    ) -> list[int]:
        self._check_collection(collection)
        batch = [rows] if isinstance(rows, Mapping) else list(rows)
        inserted: list[int] = []
        try:
            with self._connect() as connection:
                for row in batch:
                    values = {key: value for key, value in row.items() if key != "id"}
                    if not values:
                        raise GatewayError(f"Cannot insert an empty row into {collection}.")
                    self._check_columns(collection, values.keys())
                    column_sql = ", ".join(values.keys())
                    placeholders = ", ".join("?" for _ in values)
                    cursor = connection.execute(
                        f"INSERT INTO {collection} ({column_sql}) VALUES ({placeholders})",
                        [_encode(collection, column, value) for column, value in values.items()],
                    )
                    inserted.append(_lastrowid(cursor))
        except sqlite3.Error as exc:
            logger.error("Insert into %s failed: %s", collection, exc)
            raise GatewayError(f"Could not save to {collection}: {exc}") from exc
        return inserted

    def update(self, collection: str, row_id: int, patch: Mapping[str, Any]) -> None:
        values = {key: value for key, value in patch.items() if key != "id"}
        if not values:
            return
        self._check_columns(collection, values.keys())
        assignments = ", ".join(f"{column} = ?" for column in values)
        parameters = [_encode(collection, column, value) for column, value in values.items()]
        parameters.append(row_id)
        try:
            with self._connect() as connection:
                cursor = connection.execute(
                    f"UPDATE {collection} SET {assignments} WHERE id = ?",
                    parameters,
                )
        except sqlite3.Error as exc:
            logger.error("Update of %s #%s failed: %s", collection, row_id, exc)
            raise GatewayError(f"Could not update {collection}: {exc}") from exc
        if cursor.rowcount == 0:
            raise GatewayError(f"No {collection} record with id {row_id}.")

    def delete(self, collection: str, row_id: int) -> None:
        self._check_collection(collection)
        try:
            with self._connect() as connection:
                cursor = connection.execute(
                    f"DELETE FROM {collection} WHERE id = ?",
                    (row_id,),
                )
        except sqlite3.Error as exc:
            logger.error("Delete of %s #%s failed: %s", collection, row_id, exc)
            raise GatewayError(f"Could not delete from {collection}: {exc}") from exc
        if cursor.rowcount == 0:
            raise GatewayError(f"No {collection} record with id {row_id}.")

"""
Event Store and Registration Ledger backed by PostgreSQL.

Each method runs exactly one statement in its own transaction. Duplicate
registrations are rejected by the UNIQUE (event_id, user_id) constraint on
the `registrations` table, never by a read-then-insert check here.
"""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import psycopg2
import psycopg2.errors

from backend.database.db_connection import get_db
from backend.errors import NotFound, StoreError
from backend.events_service.models import EDITABLE_FIELDS, Event

EVENT_COLUMNS = """
    event_id, name, description, location, date_time, user_id,
    image_data, color, price, priority, tickets_available
"""

# Named in init_db.SCHEMA_SQL
USER_FK = "registrations_user_id_fkey"


class DuplicateRegistration(Exception):
    """The (event_id, user_id) pair already exists in the ledger."""


@contextmanager
def _store_call(action: str) -> Iterator[None]:
    """Translate driver failures into StoreError, keeping the cause in the log."""
    try:
        yield
    except psycopg2.Error as e:
        logging.exception(f"[Store] Database error during {action}: {e}")
        raise StoreError(f"Failed to {action}") from e


class PostgresStore:
    """psycopg2 implementation of the event store and registration ledger."""

    # --- EVENTS ---

    def list_events(self) -> List[Event]:
        sql = f"SELECT {EVENT_COLUMNS} FROM events ORDER BY date_time, event_id;"
        with _store_call("retrieve events"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql)
                    return [Event.from_row(r) for r in cur.fetchall()]

    def get_event(self, event_id: int) -> Optional[Event]:
        sql = f"SELECT {EVENT_COLUMNS} FROM events WHERE event_id = %s;"
        with _store_call("fetch event"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (event_id,))
                    row = cur.fetchone()
        return Event.from_row(row) if row else None

    def save_event(self, event: Event) -> Event:
        sql = f"""
            INSERT INTO events (
                name, description, location, date_time, user_id,
                image_data, color, price, priority, tickets_available
            ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {EVENT_COLUMNS};
        """
        params = (
            event.name, event.description, event.location, event.date_time,
            event.user_id, event.image_data, event.color, event.price,
            event.priority, event.tickets_available,
        )
        with _store_call("create event"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, params)
                    return Event.from_row(cur.fetchone())

    def update_event(self, event_id: int, fields: Dict[str, Any]) -> Optional[Event]:
        """
        Overwrite the given columns. Keys outside EDITABLE_FIELDS are ignored.

        Returns:
            Event: The updated row, or None if the event no longer exists.
        """
        keys = [k for k in EDITABLE_FIELDS if k in fields]
        if not keys:
            return self.get_event(event_id)

        set_clause = ", ".join(f"{k} = %s" for k in keys)
        set_clause += ", updated_at = CURRENT_TIMESTAMP"
        values = [fields[k] for k in keys] + [event_id]
        sql = f"UPDATE events SET {set_clause} WHERE event_id = %s RETURNING {EVENT_COLUMNS};"

        with _store_call("update event"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, values)
                    row = cur.fetchone()
        return Event.from_row(row) if row else None

    def update_tickets(self, event_id: int, tickets_available: int) -> bool:
        sql = """
            UPDATE events
            SET tickets_available = %s, updated_at = CURRENT_TIMESTAMP
            WHERE event_id = %s;
        """
        with _store_call("update ticket count"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (tickets_available, event_id))
                    return cur.rowcount > 0

    def delete_event(self, event_id: int) -> bool:
        # registrations rows go with it (ON DELETE CASCADE)
        with _store_call("delete event"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute("DELETE FROM events WHERE event_id = %s;", (event_id,))
                    return cur.rowcount > 0

    # --- REGISTRATIONS ---

    def insert_registration(self, event_id: int, user_id: int) -> None:
        """
        Raises:
            DuplicateRegistration: The pair already exists.
            NotFound: The event (or the user) was deleted before the insert landed.
        """
        sql = "INSERT INTO registrations (event_id, user_id) VALUES (%s, %s);"
        with _store_call("register for event"):
            try:
                with get_db() as conn:
                    with conn.cursor() as cur:
                        cur.execute(sql, (event_id, user_id))
            except psycopg2.errors.UniqueViolation as e:
                raise DuplicateRegistration(f"event {event_id}, user {user_id}") from e
            except psycopg2.errors.ForeignKeyViolation as e:
                if e.diag.constraint_name == USER_FK:
                    raise NotFound("User not found") from e
                raise NotFound("Event not found") from e

    def delete_registration(self, event_id: int, user_id: int) -> bool:
        sql = "DELETE FROM registrations WHERE event_id = %s AND user_id = %s;"
        with _store_call("cancel registration"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (event_id, user_id))
                    return cur.rowcount > 0

    def count_registration(self, event_id: int, user_id: int) -> int:
        sql = "SELECT COUNT(*) FROM registrations WHERE event_id = %s AND user_id = %s;"
        with _store_call("check registration"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (event_id, user_id))
                    return cur.fetchone()[0]

    def list_registrations(self, event_id: int) -> List[Dict[str, Any]]:
        sql = """
            SELECT r.user_id, u.email, r.created_at
            FROM registrations r
            JOIN users u ON r.user_id = u.user_id
            WHERE r.event_id = %s
            ORDER BY r.created_at, r.user_id;
        """
        with _store_call("retrieve registrations"):
            with get_db() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, (event_id,))
                    rows = [dict(r) for r in cur.fetchall()]

        for row in rows:
            if row.get("created_at"):
                row["created_at"] = row["created_at"].isoformat()
        return rows

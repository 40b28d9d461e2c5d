"""
Database bootstrap: create tables and seed the default admin account.

Safe to run repeatedly; every statement is idempotent.

Usage:
    python -m backend.database.init_db
"""

import logging
import os

from argon2 import PasswordHasher
from dotenv import load_dotenv

from backend.database.db_connection import get_db

load_dotenv()

ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@email.com").strip().lower()
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "admin")

SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS users (
        user_id SERIAL PRIMARY KEY,
        email VARCHAR(255) NOT NULL UNIQUE,
        password_hash TEXT NOT NULL,
        role VARCHAR(20) NOT NULL DEFAULT 'user'
            CHECK (role IN ('admin', 'user')),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS events (
        event_id SERIAL PRIMARY KEY,
        name VARCHAR(200) NOT NULL,
        description TEXT NOT NULL,
        location VARCHAR(255) NOT NULL,
        date_time TIMESTAMPTZ NOT NULL,
        user_id INTEGER NOT NULL REFERENCES users(user_id),
        image_data TEXT,
        color VARCHAR(32),
        price NUMERIC(10, 2),
        priority VARCHAR(20),
        tickets_available INTEGER NOT NULL DEFAULT 0
            CHECK (tickets_available >= 0),
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
    );

    CREATE TABLE IF NOT EXISTS registrations (
        registration_id SERIAL PRIMARY KEY,
        event_id INTEGER NOT NULL
            CONSTRAINT registrations_event_id_fkey REFERENCES events(event_id) ON DELETE CASCADE,
        user_id INTEGER NOT NULL
            CONSTRAINT registrations_user_id_fkey REFERENCES users(user_id) ON DELETE CASCADE,
        created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
        CONSTRAINT registrations_event_user_key UNIQUE (event_id, user_id)
    );

    CREATE INDEX IF NOT EXISTS idx_events_user_id ON events (user_id);
    CREATE INDEX IF NOT EXISTS idx_registrations_user_id ON registrations (user_id);
"""


def create_tables() -> None:
    """Create users, events, and registrations if they do not exist."""
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
    logging.info("[DB] Schema ensured: users, events, registrations")


def seed_admin() -> None:
    """
    Ensure the default admin account exists and has the admin role.

    An existing account with ADMIN_EMAIL keeps its password but is promoted.
    """
    with get_db() as conn:
        with conn.cursor() as cur:
            cur.execute("SELECT user_id, role FROM users WHERE email = %s;", (ADMIN_EMAIL,))
            row = cur.fetchone()

            if row is None:
                pw_hash = PasswordHasher().hash(ADMIN_PASSWORD)
                cur.execute(
                    "INSERT INTO users (email, password_hash, role) VALUES (%s, %s, 'admin');",
                    (ADMIN_EMAIL, pw_hash),
                )
                logging.info(f"[DB] Default admin created: {ADMIN_EMAIL}")
            elif row["role"] != "admin":
                cur.execute("UPDATE users SET role = 'admin' WHERE user_id = %s;", (row["user_id"],))
                logging.info(f"[DB] Promoted {ADMIN_EMAIL} to admin")


def init_db() -> None:
    create_tables()
    seed_admin()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    init_db()

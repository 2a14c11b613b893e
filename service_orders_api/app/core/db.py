"""
SQLite database integration and simple migration system.

This module provides functions for obtaining a database connection
(``get_connection``), a cursor context manager (``get_cursor``) and
``init_db``, which applies migrations on application start.  It uses
SQLite as a lightweight embedded database.

The migration mechanism stores applied migration versions in the
``migrations`` table and executes new migrations in order.
"""

import json
import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .config import settings


# Every permission on the service order resource.  Seeded into the
# ``admin`` and ``user`` roles so that ordinary accounts can manage their
# own orders out of the box.
SERVICE_ORDER_PERMISSIONS = [
    f"service_orders:{action}:{granularity}"
    for action in ("read", "create", "edit", "delete")
    for granularity in ("collection", "resource")
]

SUPER_ADMIN_ROLE_ID = 1
ADMIN_ROLE_ID = 2
USER_ROLE_ID = 3


MIGRATIONS: list[tuple[int, str]] = [
    # Migration 1: users, roles and service orders
    (
        1,
        """
        CREATE TABLE IF NOT EXISTS roles (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL UNIQUE,
            permissions TEXT
        );

        CREATE TABLE IF NOT EXISTS users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            email TEXT NOT NULL UNIQUE,
            full_name TEXT,
            password TEXT,
            role_id INTEGER,
            disabled INTEGER DEFAULT 0,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(role_id) REFERENCES roles(id)
        );

        CREATE TABLE IF NOT EXISTS service_orders (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            name TEXT NOT NULL,
            state TEXT NOT NULL DEFAULT 'cart',
            user_id INTEGER NOT NULL,
            created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE INDEX IF NOT EXISTS idx_service_orders_user_id ON service_orders(user_id);
        """,
    ),
    # Migration 2: a user owns at most one shopping cart
    (
        2,
        """
        -- Partial unique index: only rows in the 'cart' state take part, so a
        -- user may hold any number of wish/ordered orders but a single cart.
        CREATE UNIQUE INDEX IF NOT EXISTS idx_service_orders_one_cart
            ON service_orders(user_id) WHERE state = 'cart';
        """,
    ),
    # Migration 3: audit trail
    (
        3,
        """
        CREATE TABLE IF NOT EXISTS audit_logs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            user_id INTEGER,
            action TEXT NOT NULL,
            object_type TEXT,
            object_id INTEGER,
            timestamp TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
            details TEXT,
            FOREIGN KEY(user_id) REFERENCES users(id)
        );

        CREATE INDEX IF NOT EXISTS idx_audit_logs_user_id ON audit_logs(user_id);
        """,
    ),
]


def get_database_path() -> str:
    """Compute the path to the SQLite database file.

    If ``settings.database_url`` is an absolute path, use it directly.
    Otherwise resolve it relative to the project root.
    """
    db_url = settings.database_url
    if os.path.isabs(db_url):
        return db_url
    base_dir = Path(__file__).resolve().parent.parent.parent  # service_orders_api/
    return str((base_dir / db_url).resolve())


def get_connection() -> sqlite3.Connection:
    """Create and return a new SQLite connection.

    Rows are returned as ``sqlite3.Row`` objects so columns can be
    accessed by name.  Foreign key enforcement is switched on for the
    lifetime of the connection since SQLite disables it by default.
    """
    conn = sqlite3.connect(get_database_path())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    return conn


@contextmanager
def get_cursor() -> Iterator[sqlite3.Cursor]:
    """Context manager that yields a cursor and closes the connection on exit."""
    conn = get_connection()
    try:
        yield conn.cursor()
        conn.commit()
    finally:
        conn.close()


def init_db() -> None:
    """Initialise the database and apply pending migrations.

    Creates the ``migrations`` table if it does not exist, checks the
    current schema version, and applies any new migrations defined in
    ``MIGRATIONS``.  Default roles are inserted if missing.
    """
    with get_cursor() as cursor:
        cursor.execute(
            "CREATE TABLE IF NOT EXISTS migrations (version INTEGER PRIMARY KEY)"
        )
        cursor.execute("SELECT MAX(version) as version FROM migrations")
        row = cursor.fetchone()
        current_version = row["version"] if row and row["version"] is not None else 0

        for version, sql in MIGRATIONS:
            if version > current_version:
                cursor.executescript(sql)
                cursor.execute(
                    "INSERT INTO migrations (version) VALUES (?)", (version,)
                )
                current_version = version

        # Default roles: super_admin (id=1) bypasses permission checks,
        # admin (2) and user (3) may manage their own service orders.
        default_permissions = json.dumps(SERVICE_ORDER_PERMISSIONS)
        cursor.execute(
            "INSERT OR IGNORE INTO roles (id, name, permissions) VALUES (?, 'super_admin', '[]')",
            (SUPER_ADMIN_ROLE_ID,),
        )
        cursor.execute(
            "INSERT OR IGNORE INTO roles (id, name, permissions) VALUES (?, 'admin', ?)",
            (ADMIN_ROLE_ID, default_permissions),
        )
        cursor.execute(
            "INSERT OR IGNORE INTO roles (id, name, permissions) VALUES (?, 'user', ?)",
            (USER_ROLE_ID, default_permissions),
        )

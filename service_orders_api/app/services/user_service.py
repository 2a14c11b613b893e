"""
Business logic for users.

Users own service orders and carry a role that determines which
actions they may perform.  Passwords are stored as PBKDF2 hashes (see
``core.security``).
"""

import logging
from typing import List, Optional

from service_orders_api.app.core.db import SUPER_ADMIN_ROLE_ID, USER_ROLE_ID, get_connection
from service_orders_api.app.core.errors import BadRequestError, NotFoundError
from service_orders_api.app.core.security import hash_password, verify_password
from service_orders_api.app.schemas.user import UserCreate, UserRead


logger = logging.getLogger(__name__)

_COLUMNS = "id, email, full_name, role_id, disabled"


def _row_to_user(row) -> UserRead:
    return UserRead(
        id=row["id"],
        email=row["email"],
        full_name=row["full_name"],
        role_id=row["role_id"],
        disabled=bool(row["disabled"]),
    )


class UserService:
    """Service for registering, authenticating and looking up users."""

    @classmethod
    async def create_user(cls, data: UserCreate, role_id: Optional[int] = None) -> UserRead:
        """Create a new user in the database.

        The first registered user becomes the super administrator;
        everyone else gets the ``user`` role unless ``role_id`` is given.
        """
        logger.info("Registering user %s", data.email)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT id FROM users WHERE email = ?", (data.email,)).fetchone():
                raise BadRequestError(f"User {data.email} already exists")
            if role_id is None:
                row = cursor.execute("SELECT COUNT(*) AS count FROM users").fetchone()
                role_id = SUPER_ADMIN_ROLE_ID if row["count"] == 0 else USER_ROLE_ID
            cursor.execute(
                "INSERT INTO users (email, full_name, password, role_id) VALUES (?, ?, ?, ?)",
                (data.email, data.full_name, hash_password(data.password), role_id),
            )
            user_id = cursor.lastrowid
            conn.commit()
        finally:
            conn.close()
        return UserRead(id=user_id, email=data.email, full_name=data.full_name, role_id=role_id)

    @classmethod
    async def authenticate(cls, email: str, password: str) -> Optional[UserRead]:
        """Return the user if the credentials match an enabled account."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS}, password FROM users WHERE email = ?", (email,)
            ).fetchone()
        finally:
            conn.close()
        if not row or row["disabled"] or not row["password"]:
            return None
        if not verify_password(password, row["password"]):
            return None
        return _row_to_user(row)

    @classmethod
    async def get_user(cls, user_id: int) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE id = ?", (user_id,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Couldn't find User with 'id'={user_id}")
        return _row_to_user(row)

    @classmethod
    async def get_user_by_email(cls, email: str) -> UserRead:
        conn = get_connection()
        try:
            row = conn.execute(f"SELECT {_COLUMNS} FROM users WHERE email = ?", (email,)).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Couldn't find User with 'email'={email}")
        return _row_to_user(row)

    @classmethod
    async def list_users(cls) -> List[UserRead]:
        conn = get_connection()
        try:
            rows = conn.execute(f"SELECT {_COLUMNS} FROM users ORDER BY id").fetchall()
            return [_row_to_user(row) for row in rows]
        finally:
            conn.close()

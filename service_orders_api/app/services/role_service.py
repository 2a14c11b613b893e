"""
Service layer for role management.

Roles carry the permissions granted to users.  Permissions are stored
as a JSON list in the ``permissions`` column and interpreted by
``PermissionService``.  The initial roles (super_admin, admin and user)
are created by ``init_db``.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from service_orders_api.app.core.db import get_connection
from service_orders_api.app.core.errors import BadRequestError, NotFoundError
from service_orders_api.app.services.permission_service import is_valid_identifier


logger = logging.getLogger(__name__)


def _validate_permissions(permissions: List[str]) -> None:
    invalid = [p for p in permissions if not isinstance(p, str) or not is_valid_identifier(p)]
    if invalid:
        raise BadRequestError(f"Invalid permission identifiers: {', '.join(map(str, invalid))}")


def _row_to_role(row) -> Dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "permissions": json.loads(row["permissions"]) if row["permissions"] else [],
    }


class RoleService:
    """Service for managing roles and assignments."""

    @classmethod
    async def list_roles(cls) -> List[Dict[str, Any]]:
        conn = get_connection()
        try:
            rows = conn.execute("SELECT id, name, permissions FROM roles ORDER BY id").fetchall()
            return [_row_to_role(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def create_role(cls, name: str, permissions: List[str]) -> Dict[str, Any]:
        _validate_permissions(permissions)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if cursor.execute("SELECT id FROM roles WHERE name = ?", (name,)).fetchone():
                raise BadRequestError(f"Role {name} already exists")
            cursor.execute(
                "INSERT INTO roles (name, permissions) VALUES (?, ?)",
                (name, json.dumps(permissions)),
            )
            role_id = cursor.lastrowid
            conn.commit()
            logger.info("Role %s created", name)
            return {"id": role_id, "name": name, "permissions": permissions}
        finally:
            conn.close()

    @classmethod
    async def update_role(
        cls, role_id: int, name: Optional[str] = None, permissions: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        if permissions is not None:
            _validate_permissions(permissions)
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM roles WHERE id = ?", (role_id,)).fetchone():
                raise NotFoundError(f"Couldn't find Role with 'id'={role_id}")
            updates = []
            values: list = []
            if name is not None:
                updates.append("name = ?")
                values.append(name)
            if permissions is not None:
                updates.append("permissions = ?")
                values.append(json.dumps(permissions))
            if updates:
                values.append(role_id)
                cursor.execute(f"UPDATE roles SET {', '.join(updates)} WHERE id = ?", tuple(values))
                conn.commit()
                logger.info("Role %s updated", role_id)
            row = cursor.execute("SELECT id, name, permissions FROM roles WHERE id = ?", (role_id,)).fetchone()
            return _row_to_role(row)
        finally:
            conn.close()

    @classmethod
    async def delete_role(cls, role_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.cursor()
            in_use = cursor.execute("SELECT COUNT(*) AS count FROM users WHERE role_id = ?", (role_id,)).fetchone()
            if in_use["count"]:
                raise BadRequestError(f"Role {role_id} is assigned to {in_use['count']} user(s)")
            cursor.execute("DELETE FROM roles WHERE id = ?", (role_id,))
            if not cursor.rowcount:
                raise NotFoundError(f"Couldn't find Role with 'id'={role_id}")
            conn.commit()
            logger.info("Role %s deleted", role_id)
        finally:
            conn.close()

    @classmethod
    async def assign_role(cls, user_id: int, role_id: int) -> None:
        """Assign a role to a user."""
        conn = get_connection()
        try:
            cursor = conn.cursor()
            if not cursor.execute("SELECT id FROM roles WHERE id = ?", (role_id,)).fetchone():
                raise NotFoundError(f"Couldn't find Role with 'id'={role_id}")
            if not cursor.execute("SELECT id FROM users WHERE id = ?", (user_id,)).fetchone():
                raise NotFoundError(f"Couldn't find User with 'id'={user_id}")
            cursor.execute("UPDATE users SET role_id = ? WHERE id = ?", (role_id, user_id))
            conn.commit()
            logger.info("Assigned role %s to user %s", role_id, user_id)
        finally:
            conn.close()

"""
Authorization gate for resource actions.

Permissions are plain strings of the form
``"<resource_type>:<action>:<granularity>"`` stored as a JSON list on
each role.  ``granularity`` distinguishes an action on the whole
collection (``collection``) from one on a single record
(``resource``).  The super administrator role bypasses the check.
"""

import json
import logging
from typing import Dict, List

from service_orders_api.app.core.db import SUPER_ADMIN_ROLE_ID, get_connection
from service_orders_api.app.core.errors import ForbiddenError


logger = logging.getLogger(__name__)

ACTIONS = ("read", "create", "edit", "delete")
GRANULARITIES = ("collection", "resource")


def permission_identifier(resource_type: str, action: str, granularity: str) -> str:
    """Build the identifier checked for ``action`` on ``resource_type``."""
    if action not in ACTIONS:
        raise ValueError(f"Unknown action {action!r}")
    if granularity not in GRANULARITIES:
        raise ValueError(f"Unknown granularity {granularity!r}")
    return f"{resource_type}:{action}:{granularity}"


def is_valid_identifier(identifier: str) -> bool:
    parts = identifier.split(":")
    return (
        len(parts) == 3
        and bool(parts[0])
        and parts[1] in ACTIONS
        and parts[2] in GRANULARITIES
    )


class PermissionService:
    """Resolve a caller's permissions and check them."""

    @classmethod
    async def permissions_for_role(cls, role_id: int) -> List[str]:
        conn = get_connection()
        try:
            row = conn.execute("SELECT permissions FROM roles WHERE id = ?", (role_id,)).fetchone()
        finally:
            conn.close()
        if not row or not row["permissions"]:
            return []
        return list(json.loads(row["permissions"]))

    @classmethod
    async def is_allowed(cls, current_user: Dict[str, str], identifier: str) -> bool:
        role_id = current_user.get("role_id")
        if role_id is None:
            return False
        if role_id == SUPER_ADMIN_ROLE_ID:
            return True
        return identifier in await cls.permissions_for_role(role_id)

    @classmethod
    async def authorize(
        cls,
        current_user: Dict[str, str],
        resource_type: str,
        action: str,
        granularity: str,
    ) -> None:
        """Raise ``ForbiddenError`` unless the caller may perform ``action``.

        Must be called before any store access for the request.
        """
        identifier = permission_identifier(resource_type, action, granularity)
        if not await cls.is_allowed(current_user, identifier):
            logger.warning(
                "User %s denied %s", current_user.get("user_id"), identifier
            )
            raise ForbiddenError(f"Use of the {action} action on {resource_type} is forbidden")

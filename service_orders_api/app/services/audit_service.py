"""
Audit service for recording and querying system actions.

This module provides a centralized API for writing audit events to the
``audit_logs`` table and retrieving them with filters and pagination.
Service order mutations (create, edit, delete) are recorded here.
Only super administrators may read audit logs.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from typing import Any, Dict, List, Optional

from service_orders_api.app.core.db import get_connection


logger = logging.getLogger(__name__)


class AuditService:
    """Service class for writing and retrieving audit logs."""

    @classmethod
    async def log(
        cls,
        user_id: Optional[int],
        action: str,
        object_type: str,
        object_id: Optional[int] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Insert a new audit record.

        Parameters
        ----------
        user_id : Optional[int]
            ID of the user performing the action.
        action : str
            Short description of the action (e.g. "create", "edit", "delete").
        object_type : str
            Type of object affected (e.g. "service_order").
        object_id : Optional[int]
            Primary key of the affected object, if applicable.
        details : Optional[dict]
            Additional structured data about the action, stored as JSON.
        """
        conn = get_connection()
        try:
            conn.execute(
                """
                INSERT INTO audit_logs (user_id, action, object_type, object_id, details)
                VALUES (?, ?, ?, ?, ?)
                """,
                (user_id, action, object_type, object_id, json.dumps(details) if details else None),
            )
            conn.commit()
        finally:
            conn.close()

    @classmethod
    async def record(cls, *args: Any, **kwargs: Any) -> None:
        """Like ``log`` but a failed write only produces a warning.

        Used after a mutation has already been committed, where failing
        the request would misreport the outcome to the client.
        """
        try:
            await cls.log(*args, **kwargs)
        except sqlite3.Error as exc:
            logger.warning("Failed to write audit log %s: %s", kwargs or args, exc)

    @classmethod
    async def list_logs(
        cls,
        user_id: Optional[int] = None,
        object_type: Optional[str] = None,
        action: Optional[str] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """Retrieve audit records with optional filters and pagination.

        Newest records come first.
        """
        where_clauses: List[str] = []
        params: List[Any] = []
        if user_id is not None:
            where_clauses.append("user_id = ?")
            params.append(user_id)
        if object_type:
            where_clauses.append("object_type = ?")
            params.append(object_type)
        if action:
            where_clauses.append("action = ?")
            params.append(action)
        query = "SELECT id, user_id, action, object_type, object_id, timestamp, details FROM audit_logs"
        if where_clauses:
            query += " WHERE " + " AND ".join(where_clauses)
        query += " ORDER BY id DESC LIMIT ? OFFSET ?"
        params.extend([limit, offset])

        conn = get_connection()
        try:
            rows = conn.execute(query, tuple(params)).fetchall()
        finally:
            conn.close()
        return [
            {
                "id": row["id"],
                "user_id": row["user_id"],
                "action": row["action"],
                "object_type": row["object_type"],
                "object_id": row["object_id"],
                "timestamp": row["timestamp"],
                "details": json.loads(row["details"]) if row["details"] else None,
            }
            for row in rows
        ]

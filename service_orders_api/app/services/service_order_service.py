"""
Business logic and storage for service orders.

A service order is a shopping‑cart‑like record owned by exactly one
user.  Every method that reads or writes orders takes the owner's id
explicitly and adds ``user_id = ?`` to its SQL, so one user's orders
are never visible to, or changed by, another.

State rules enforced here:

* an order created without a state becomes the owner's cart;
* an order can never be created in the ``ordered`` state;
* a user owns at most one order in the ``cart`` state (also backed by
  a partial unique index, see ``core.db``);
* once ``ordered``, an order's state no longer changes.
"""

import logging
import sqlite3
from typing import List, Optional

from service_orders_api.app.core.db import get_connection
from service_orders_api.app.core.errors import BadRequestError, NotFoundError
from service_orders_api.app.schemas.service_order import (
    ServiceOrderCreate,
    ServiceOrderRead,
    ServiceOrderState,
    ServiceOrderUpdate,
)
from service_orders_api.app.services.audit_service import AuditService


logger = logging.getLogger(__name__)

_COLUMNS = "id, name, state, user_id, created_at, updated_at"

CART_ALIAS = "cart"


def _row_to_order(row: sqlite3.Row) -> ServiceOrderRead:
    return ServiceOrderRead(
        id=row["id"],
        name=row["name"],
        state=row["state"],
        user_id=row["user_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _integrity_error(exc: sqlite3.IntegrityError) -> Optional[BadRequestError]:
    """Map a constraint failure to a client error, or ``None`` if it is not one."""
    message = str(exc)
    # The one‑cart index is the only UNIQUE constraint on the table.
    if "UNIQUE" in message:
        return BadRequestError("User already has a shopping cart")
    if "FOREIGN KEY" in message:
        return BadRequestError("Service order owner does not exist")
    return None


def _has_cart(cursor: sqlite3.Cursor, owner_id: int, exclude_id: Optional[int] = None) -> bool:
    query = "SELECT id FROM service_orders WHERE user_id = ? AND state = ?"
    params: list = [owner_id, ServiceOrderState.CART.value]
    if exclude_id is not None:
        query += " AND id != ?"
        params.append(exclude_id)
    return cursor.execute(query, tuple(params)).fetchone() is not None


class ServiceOrderService:
    """Owner‑scoped operations on the ``service_orders`` table."""

    @classmethod
    async def count_all(cls) -> int:
        """Number of orders in the system, regardless of owner."""
        conn = get_connection()
        try:
            row = conn.execute("SELECT COUNT(*) AS count FROM service_orders").fetchone()
            return row["count"]
        finally:
            conn.close()

    @classmethod
    async def list_orders(cls, owner_id: int) -> List[ServiceOrderRead]:
        conn = get_connection()
        try:
            rows = conn.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE user_id = ? ORDER BY id",
                (owner_id,),
            ).fetchall()
            return [_row_to_order(row) for row in rows]
        finally:
            conn.close()

    @classmethod
    async def get_order(cls, owner_id: int, order_id: int) -> ServiceOrderRead:
        """Return the owner's order ``order_id``.

        Raises ``NotFoundError`` if it does not exist or belongs to
        someone else; the two cases are deliberately indistinguishable.
        """
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE id = ? AND user_id = ?",
                (order_id, owner_id),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError(f"Couldn't find ServiceOrder with 'id'={order_id}")
        return _row_to_order(row)

    @classmethod
    async def get_cart(cls, owner_id: int) -> ServiceOrderRead:
        """Resolve the ``cart`` alias to the owner's cart‑state order."""
        conn = get_connection()
        try:
            row = conn.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE user_id = ? AND state = ? ORDER BY id LIMIT 1",
                (owner_id, ServiceOrderState.CART.value),
            ).fetchone()
        finally:
            conn.close()
        if not row:
            raise NotFoundError("Couldn't find ServiceOrder with 'state'=cart")
        return _row_to_order(row)

    @classmethod
    async def create_orders(
        cls, owner_id: int, members: List[ServiceOrderCreate]
    ) -> List[ServiceOrderRead]:
        """Create one or more orders for ``owner_id``.

        All members are validated before anything is written and the
        inserts share one transaction: either every order is created or
        none is.
        """
        if not members:
            raise BadRequestError("No service orders specified")
        if any(member.state == ServiceOrderState.ORDERED for member in members):
            raise BadRequestError("Can't create an ordered service order")
        carts = sum(1 for member in members if member.state == ServiceOrderState.CART)
        if carts > 1:
            raise BadRequestError("Can't create more than one shopping cart")

        conn = get_connection()
        try:
            cursor = conn.cursor()
            if carts and _has_cart(cursor, owner_id):
                raise BadRequestError("User already has a shopping cart")
            created_ids: List[int] = []
            for member in members:
                cursor.execute(
                    "INSERT INTO service_orders (name, state, user_id) VALUES (?, ?, ?)",
                    (member.name, member.state.value, owner_id),
                )
                created_ids.append(cursor.lastrowid)
            conn.commit()
            placeholders = ", ".join("?" for _ in created_ids)
            rows = cursor.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE id IN ({placeholders}) ORDER BY id",
                tuple(created_ids),
            ).fetchall()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            logger.info("Rejected service order insert for user %s: %s", owner_id, exc)
            error = _integrity_error(exc)
            if error is None:
                raise
            raise error from exc
        finally:
            conn.close()

        created = [_row_to_order(row) for row in rows]
        for order in created:
            logger.info("User %s created service order %s (%s)", owner_id, order.id, order.state.value)
            await AuditService.record(
                user_id=owner_id,
                action="create",
                object_type="service_order",
                object_id=order.id,
                details={"name": order.name, "state": order.state.value},
            )
        return created

    @classmethod
    async def update_order(
        cls, owner_id: int, order_id: int, updates: ServiceOrderUpdate
    ) -> ServiceOrderRead:
        """Apply a partial update to one of the owner's orders.

        Fields left as ``None`` keep their stored value.
        """
        conn = get_connection()
        try:
            cursor = conn.cursor()
            row = cursor.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE id = ? AND user_id = ?",
                (order_id, owner_id),
            ).fetchone()
            if not row:
                raise NotFoundError(f"Couldn't find ServiceOrder with 'id'={order_id}")
            current = _row_to_order(row)

            assignments: List[str] = []
            values: list = []
            if updates.name is not None:
                assignments.append("name = ?")
                values.append(updates.name)
            if updates.state is not None and updates.state != current.state:
                if current.state == ServiceOrderState.ORDERED:
                    raise BadRequestError("Can't change the state of an ordered service order")
                if updates.state == ServiceOrderState.CART and _has_cart(cursor, owner_id, exclude_id=order_id):
                    raise BadRequestError("User already has a shopping cart")
                assignments.append("state = ?")
                values.append(updates.state.value)
            if not assignments:
                return current

            assignments.append("updated_at = CURRENT_TIMESTAMP")
            values.extend([order_id, owner_id])
            cursor.execute(
                f"UPDATE service_orders SET {', '.join(assignments)} WHERE id = ? AND user_id = ?",
                tuple(values),
            )
            conn.commit()
            row = cursor.execute(
                f"SELECT {_COLUMNS} FROM service_orders WHERE id = ? AND user_id = ?",
                (order_id, owner_id),
            ).fetchone()
        except sqlite3.IntegrityError as exc:
            conn.rollback()
            error = _integrity_error(exc)
            if error is None:
                raise
            raise error from exc
        finally:
            conn.close()

        updated = _row_to_order(row)
        logger.info("User %s updated service order %s", owner_id, order_id)
        await AuditService.record(
            user_id=owner_id,
            action="edit",
            object_type="service_order",
            object_id=order_id,
            details=updates.model_dump(mode="json", exclude_none=True),
        )
        return updated

    @classmethod
    async def delete_order(cls, owner_id: int, order_id: int) -> None:
        conn = get_connection()
        try:
            cursor = conn.execute(
                "DELETE FROM service_orders WHERE id = ? AND user_id = ?",
                (order_id, owner_id),
            )
            deleted = cursor.rowcount
            conn.commit()
        finally:
            conn.close()
        if not deleted:
            raise NotFoundError(f"Couldn't find ServiceOrder with 'id'={order_id}")
        logger.info("User %s deleted service order %s", owner_id, order_id)
        await AuditService.record(
            user_id=owner_id,
            action="delete",
            object_type="service_order",
            object_id=order_id,
        )

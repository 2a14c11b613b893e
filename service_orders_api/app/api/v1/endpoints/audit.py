"""
Audit log endpoints for API v1.

Expose a read‑only view over the ``audit_logs`` table.  Only super
administrators may access these endpoints.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from service_orders_api.app.core.security import require_roles
from service_orders_api.app.services.audit_service import AuditService


router = APIRouter()


@router.get("/logs", response_model=List[Dict[str, Any]])
async def list_audit_logs(
    user_id: Optional[int] = Query(None),
    object_type: Optional[str] = Query(None),
    action: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    current_user: dict = Depends(require_roles(1)),
) -> List[Dict[str, Any]]:
    """Return audit records, newest first, with optional filters."""
    return await AuditService.list_logs(
        user_id=user_id,
        object_type=object_type,
        action=action,
        limit=limit,
        offset=offset,
    )

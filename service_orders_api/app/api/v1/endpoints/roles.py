"""
Role management endpoints for API v1.

These routes allow the super administrator to create, update, delete
and list roles, and to assign roles to users.  A role's permissions
are identifiers such as ``service_orders:edit:resource``.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from service_orders_api.app.core.security import require_roles
from service_orders_api.app.services.role_service import RoleService


router = APIRouter()


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1)
    permissions: List[str] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    name: Optional[str] = None
    permissions: Optional[List[str]] = None


class RoleAssignment(BaseModel):
    user_id: int
    role_id: int


@router.get("/", response_model=List[Dict[str, Any]])
async def list_roles(current_user: dict = Depends(require_roles(1))) -> List[Dict[str, Any]]:
    return await RoleService.list_roles()


@router.post("/", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_role(body: RoleCreate, current_user: dict = Depends(require_roles(1))) -> Dict[str, Any]:
    """Create a new role.

    Unknown permission identifiers are rejected with ``bad_request``.
    """
    return await RoleService.create_role(body.name, body.permissions)


@router.put("/{role_id}", response_model=Dict[str, Any])
async def update_role(
    role_id: int,
    body: RoleUpdate,
    current_user: dict = Depends(require_roles(1)),
) -> Dict[str, Any]:
    return await RoleService.update_role(role_id, body.name, body.permissions)


@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(role_id: int, current_user: dict = Depends(require_roles(1))) -> None:
    """Delete a role that no user holds."""
    await RoleService.delete_role(role_id)


@router.post("/assign", status_code=status.HTTP_204_NO_CONTENT)
async def assign_role(body: RoleAssignment, current_user: dict = Depends(require_roles(1))) -> None:
    await RoleService.assign_role(body.user_id, body.role_id)

"""
Top‑level router for version 1 of the API.

This router aggregates domain‑specific routers under a unified prefix.
When new domains are introduced, update this file to include their
routers.
"""

from fastapi import APIRouter

from .endpoints import audit, roles, service_orders, users

router = APIRouter()

router.include_router(service_orders.router, prefix="/service_orders", tags=["service_orders"])
router.include_router(users.router, prefix="/users", tags=["users"])
router.include_router(roles.router, prefix="/roles", tags=["roles"])
router.include_router(audit.router, prefix="/audit", tags=["audit"])

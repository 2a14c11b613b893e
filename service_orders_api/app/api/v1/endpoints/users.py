"""
User endpoints for API v1.

Provide registration, login and listing of users.  The token returned
by ``/login`` is what clients send as ``Authorization: Bearer`` on
every service order request.
"""

from typing import List

from fastapi import APIRouter, Depends, status

from service_orders_api.app.core.errors import UnauthorizedError
from service_orders_api.app.core.security import create_access_token, get_current_user, require_roles
from service_orders_api.app.schemas.user import UserCreate, UserLogin, UserRead
from service_orders_api.app.services.user_service import UserService


router = APIRouter()


@router.post("/", response_model=UserRead, status_code=status.HTTP_201_CREATED)
async def register_user(user: UserCreate) -> UserRead:
    """Register a new user.

    The very first account becomes the super administrator; later
    accounts receive the ``user`` role.
    """
    return await UserService.create_user(user)


@router.post("/login")
async def login_user(credentials: UserLogin) -> dict:
    """Exchange an e‑mail and password for a bearer token."""
    db_user = await UserService.authenticate(credentials.email, credentials.password)
    if not db_user:
        raise UnauthorizedError("Invalid credentials")
    token = create_access_token({"sub": db_user.email})
    return {"access_token": token, "token_type": "bearer"}


@router.get("/me", response_model=UserRead)
async def read_current_user(current_user: dict = Depends(get_current_user)) -> UserRead:
    return await UserService.get_user(current_user["user_id"])


@router.get("/", response_model=List[UserRead])
async def list_users(current_user: dict = Depends(require_roles(1, 2))) -> List[UserRead]:
    """List all users.

    Only super administrators and administrators may list users.
    """
    return await UserService.list_users()

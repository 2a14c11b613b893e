"""
Service order endpoints for API v1.

The collection and resource paths follow a generic REST pattern:

* ``GET /service_orders`` lists the caller's orders;
* ``POST /service_orders`` creates one order, or performs a bulk
  ``create``/``edit``/``delete`` named by the ``action`` field;
* ``GET /service_orders/{id}`` reads one order, where ``{id}`` may be the
  alias ``cart`` for the caller's current shopping cart;
* ``POST /service_orders/{id}`` performs ``edit`` or ``delete`` on one
  order;
* ``DELETE /service_orders/{id}`` deletes one order.

Every request is authorized before the store is touched.  The POST
routes learn their action from the body, so they look the action up in
a dispatch table first, authorize it, and only then validate the rest
of the payload.
"""

from typing import Any, Awaitable, Callable, Dict, List, Optional, Type, TypeVar
from urllib.parse import urlparse

from fastapi import APIRouter, Body, Depends, Query, Request, Response, status
from pydantic import BaseModel, ValidationError

from service_orders_api.app.core.errors import ApiError, BadRequestError, NotFoundError
from service_orders_api.app.core.security import get_current_user, require_permission
from service_orders_api.app.schemas.service_order import (
    BulkDeleteAction,
    BulkEditAction,
    CreateAction,
    DeleteAction,
    EditAction,
    ResourceReference,
    ServiceOrderCreate,
    ServiceOrderEditMember,
    ServiceOrderRead,
    ServiceOrderUpdate,
)
from service_orders_api.app.services.permission_service import PermissionService
from service_orders_api.app.services.service_order_service import CART_ALIAS, ServiceOrderService


RESOURCE_TYPE = "service_orders"

router = APIRouter()

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: Type[ModelT], body: Dict[str, Any]) -> ModelT:
    try:
        return model.model_validate(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"{location}: {first['msg']}" if location else first["msg"]
        raise BadRequestError(message) from exc


def _href(request: Request, order_id: int) -> str:
    return str(request.url_for("read_service_order", order_id=str(order_id)))


def _serialize(request: Request, order: ServiceOrderRead) -> Dict[str, Any]:
    return {"href": _href(request, order.id), **order.model_dump(mode="json")}


def _delete_result(request: Request, order_id: int) -> Dict[str, Any]:
    return {
        "success": True,
        "message": f"{RESOURCE_TYPE} id: {order_id} deleting",
        "href": _href(request, order_id),
    }


def _failure_result(exc: ApiError, member: Dict[str, Any]) -> Dict[str, Any]:
    """Per‑member failure entry, echoing whatever reference the member carried."""
    result: Dict[str, Any] = {"success": False, "message": exc.message}
    if member.get("id") is not None:
        result["id"] = member["id"]
    if member.get("href"):
        result["href"] = member["href"]
    return result


def _member_id(member: ResourceReference) -> int:
    """Return the order id a batch member refers to, by ``id`` or ``href``."""
    if member.id is not None:
        return member.id
    path = urlparse(member.href).path.rstrip("/")
    collection, _, last = path.rpartition("/")
    if not collection.endswith(f"/{RESOURCE_TYPE}") or not last.isdigit():
        raise BadRequestError(f"Invalid {RESOURCE_TYPE} href {member.href}")
    return int(last)


async def _resolve(owner_id: int, order_id: str) -> ServiceOrderRead:
    """Look up ``order_id`` among the owner's orders, honouring the cart alias."""
    if order_id == CART_ALIAS:
        return await ServiceOrderService.get_cart(owner_id)
    if not order_id.isdigit():
        raise NotFoundError(f"Couldn't find ServiceOrder with 'id'={order_id}")
    return await ServiceOrderService.get_order(owner_id, int(order_id))


def _action_of(body: Dict[str, Any], default: Optional[str] = None) -> str:
    action = body.get("action", default)
    if not isinstance(action, str):
        raise BadRequestError(f"No action specified for {RESOURCE_TYPE}")
    return action


# ---------------------------------------------------------------------------
# Collection actions
# ---------------------------------------------------------------------------

async def _create_orders(request: Request, body: Dict[str, Any], current_user: dict) -> Dict[str, Any]:
    if "action" in body:
        members = _parse(CreateAction, body).members()
    else:
        members = [_parse(ServiceOrderCreate, body)]
    created = await ServiceOrderService.create_orders(current_user["user_id"], members)
    return {"results": [_serialize(request, order) for order in created]}


async def _edit_orders(request: Request, body: Dict[str, Any], current_user: dict) -> Dict[str, Any]:
    payload = _parse(BulkEditAction, body)
    results: List[Dict[str, Any]] = []
    for raw in payload.resources:
        try:
            member = _parse(ServiceOrderEditMember, raw)
            updated = await ServiceOrderService.update_order(
                current_user["user_id"],
                _member_id(member),
                ServiceOrderUpdate(name=member.name, state=member.state),
            )
        except (BadRequestError, NotFoundError) as exc:
            results.append(_failure_result(exc, raw))
            continue
        results.append(_serialize(request, updated))
    return {"results": results}


async def _delete_orders(request: Request, body: Dict[str, Any], current_user: dict) -> Dict[str, Any]:
    payload = _parse(BulkDeleteAction, body)
    results: List[Dict[str, Any]] = []
    for raw in payload.resources:
        try:
            order_id = _member_id(_parse(ResourceReference, raw))
            await ServiceOrderService.delete_order(current_user["user_id"], order_id)
        except (BadRequestError, NotFoundError) as exc:
            results.append(_failure_result(exc, raw))
            continue
        results.append(_delete_result(request, order_id))
    return {"results": results}


CollectionHandler = Callable[[Request, Dict[str, Any], dict], Awaitable[Dict[str, Any]]]

_COLLECTION_ACTIONS: Dict[str, CollectionHandler] = {
    "create": _create_orders,
    "edit": _edit_orders,
    "delete": _delete_orders,
}


# ---------------------------------------------------------------------------
# Resource actions
# ---------------------------------------------------------------------------

async def _edit_order(
    request: Request, order: ServiceOrderRead, body: Dict[str, Any], current_user: dict
) -> Dict[str, Any]:
    payload = _parse(EditAction, body)
    updated = await ServiceOrderService.update_order(current_user["user_id"], order.id, payload.resource)
    return _serialize(request, updated)


async def _delete_order(
    request: Request, order: ServiceOrderRead, body: Dict[str, Any], current_user: dict
) -> Dict[str, Any]:
    _parse(DeleteAction, body)
    await ServiceOrderService.delete_order(current_user["user_id"], order.id)
    return _delete_result(request, order.id)


ResourceHandler = Callable[[Request, ServiceOrderRead, Dict[str, Any], dict], Awaitable[Dict[str, Any]]]

_RESOURCE_ACTIONS: Dict[str, ResourceHandler] = {
    "edit": _edit_order,
    "delete": _delete_order,
}


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@router.get("", response_model=Dict[str, Any])
async def list_service_orders(
    request: Request,
    expand: Optional[str] = Query(None, description="Pass 'resources' to inline full records"),
    current_user: dict = Depends(require_permission(RESOURCE_TYPE, "read", "collection")),
) -> Dict[str, Any]:
    """List the caller's service orders.

    ``count`` is the number of orders in the system while ``subcount``
    is the number of orders returned, which are only the caller's own.
    """
    orders = await ServiceOrderService.list_orders(current_user["user_id"])
    total = await ServiceOrderService.count_all()
    expand_resources = expand is not None and "resources" in expand.split(",")
    resources = [
        _serialize(request, order) if expand_resources else {"href": _href(request, order.id)}
        for order in orders
    ]
    return {"name": RESOURCE_TYPE, "count": total, "subcount": len(resources), "resources": resources}


@router.post("", response_model=Dict[str, Any])
async def service_orders_collection_action(
    request: Request,
    body: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    """Create one order or run a bulk ``create``/``edit``/``delete``.

    A body without an ``action`` creates a single order from its
    ``name`` and optional ``state``.
    """
    action = _action_of(body, default="create")
    handler = _COLLECTION_ACTIONS.get(action)
    if handler is None:
        raise BadRequestError(f"Unsupported action {action} for {RESOURCE_TYPE}")
    await PermissionService.authorize(current_user, RESOURCE_TYPE, action, "collection")
    return await handler(request, body, current_user)


@router.get("/{order_id}", response_model=Dict[str, Any])
async def read_service_order(
    request: Request,
    order_id: str,
    current_user: dict = Depends(require_permission(RESOURCE_TYPE, "read", "resource")),
) -> Dict[str, Any]:
    """Read one of the caller's orders by id, or the current cart via ``cart``."""
    order = await _resolve(current_user["user_id"], order_id)
    return _serialize(request, order)


@router.post("/{order_id}", response_model=Dict[str, Any])
async def service_order_resource_action(
    request: Request,
    order_id: str,
    body: Dict[str, Any] = Body(...),
    current_user: dict = Depends(get_current_user),
) -> Dict[str, Any]:
    action = _action_of(body)
    handler = _RESOURCE_ACTIONS.get(action)
    if handler is None:
        raise BadRequestError(f"Unsupported action {action} for {RESOURCE_TYPE}")
    await PermissionService.authorize(current_user, RESOURCE_TYPE, action, "resource")
    order = await _resolve(current_user["user_id"], order_id)
    return await handler(request, order, body, current_user)


@router.delete("/{order_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_service_order(
    order_id: str,
    current_user: dict = Depends(require_permission(RESOURCE_TYPE, "delete", "resource")),
) -> Response:
    order = await _resolve(current_user["user_id"], order_id)
    await ServiceOrderService.delete_order(current_user["user_id"], order.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

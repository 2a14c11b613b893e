"""
Pydantic models for service order data.

``ServiceOrderCreate`` and ``ServiceOrderUpdate`` validate request
members; ``ServiceOrderRead`` is the record returned to clients.  The
POST endpoints multiplex several actions through one body, so the
action payloads are modelled here as well: each ``*Action`` model is
one variant of the tagged union keyed by the ``action`` field.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


class ServiceOrderState(str, Enum):
    CART = "cart"
    WISH = "wish"
    ORDERED = "ordered"


class ServiceOrderCreate(BaseModel):
    """Schema for creating a service order.

    ``state`` may be omitted, in which case the order becomes the
    caller's shopping cart.
    """

    name: str = Field(..., min_length=1, examples=["shopping cart"])
    state: ServiceOrderState = ServiceOrderState.CART


class ServiceOrderUpdate(BaseModel):
    """Schema for updating a service order.

    All fields are optional; only provided fields will be updated.
    """

    name: Optional[str] = Field(None, min_length=1)
    state: Optional[ServiceOrderState] = None


class ServiceOrderRead(BaseModel):
    """Schema for reading a service order from the API."""

    id: int
    name: str
    state: ServiceOrderState
    user_id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {
        "from_attributes": True,
    }


class ResourceReference(BaseModel):
    """A batch member pointing at an existing order by ``id`` or ``href``."""

    id: Optional[int] = None
    href: Optional[str] = None

    @model_validator(mode="after")
    def _needs_id_or_href(self) -> "ResourceReference":
        if self.id is None and not self.href:
            raise ValueError("resource must specify an id or href")
        return self


class ServiceOrderEditMember(ResourceReference, ServiceOrderUpdate):
    """Batch edit member: a reference plus the fields to change."""


class CreateAction(BaseModel):
    action: Literal["create"] = "create"
    resource: Optional[ServiceOrderCreate] = None
    resources: List[ServiceOrderCreate] = Field(default_factory=list)

    def members(self) -> List[ServiceOrderCreate]:
        if self.resource is not None:
            return [self.resource, *self.resources]
        return list(self.resources)


class EditAction(BaseModel):
    action: Literal["edit"]
    resource: ServiceOrderUpdate = Field(default_factory=ServiceOrderUpdate)


class BulkEditAction(BaseModel):
    action: Literal["edit"]
    # Members are validated one by one so a bad member only fails itself.
    resources: List[Dict[str, Any]] = Field(..., min_length=1)


class DeleteAction(BaseModel):
    action: Literal["delete"]


class BulkDeleteAction(BaseModel):
    action: Literal["delete"]
    resources: List[Dict[str, Any]] = Field(..., min_length=1)

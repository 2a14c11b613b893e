"""
Service layer tests for ``ServiceOrderService``.

These call the service directly, without HTTP, to pin down the
ownership scoping and state rules.
"""
import asyncio
import sqlite3

import pytest

from service_orders_api.app.core.errors import BadRequestError, NotFoundError
from service_orders_api.app.schemas.service_order import (
    ServiceOrderCreate,
    ServiceOrderState,
    ServiceOrderUpdate,
)
from service_orders_api.app.services.audit_service import AuditService
from service_orders_api.app.services.service_order_service import ServiceOrderService, _integrity_error


def run(coro):
    return asyncio.run(coro)


class TestCreateOrders:
    def test_defaults_to_cart(self, owner):
        created = run(ServiceOrderService.create_orders(owner.id, [ServiceOrderCreate(name="cart")]))

        assert created[0].state == ServiceOrderState.CART
        assert created[0].user_id == owner.id

    def test_batch_is_all_or_nothing(self, owner, count_orders):
        members = [
            ServiceOrderCreate(name="a", state="wish"),
            ServiceOrderCreate(name="b", state="ordered"),
        ]

        with pytest.raises(BadRequestError, match="Can't create an ordered service order"):
            run(ServiceOrderService.create_orders(owner.id, members))

        assert count_orders() == 0

    def test_two_carts_in_one_batch(self, owner, count_orders):
        members = [ServiceOrderCreate(name="a"), ServiceOrderCreate(name="b")]

        with pytest.raises(BadRequestError, match="more than one shopping cart"):
            run(ServiceOrderService.create_orders(owner.id, members))

        assert count_orders() == 0

    def test_empty_batch(self, owner):
        with pytest.raises(BadRequestError):
            run(ServiceOrderService.create_orders(owner.id, []))

    def test_unknown_owner(self, owner, count_orders):
        with pytest.raises(BadRequestError, match="owner does not exist"):
            run(ServiceOrderService.create_orders(999, [ServiceOrderCreate(name="orphan", state="wish")]))

        assert count_orders() == 0

    def test_mutations_are_audited(self, owner):
        created = run(ServiceOrderService.create_orders(owner.id, [ServiceOrderCreate(name="audited", state="wish")]))
        order_id = created[0].id
        run(ServiceOrderService.update_order(owner.id, order_id, ServiceOrderUpdate(name="renamed")))
        run(ServiceOrderService.delete_order(owner.id, order_id))

        logs = run(AuditService.list_logs(object_type="service_order"))

        assert [log["action"] for log in logs] == ["delete", "edit", "create"]
        assert all(log["object_id"] == order_id for log in logs)
        assert logs[1]["details"] == {"name": "renamed"}


class TestOwnership:
    def test_lookup_is_scoped_to_owner(self, owner, make_user, make_order):
        other = make_user(default_role=True)
        order_id = make_order(other.id)

        with pytest.raises(NotFoundError, match=f"'id'={order_id}"):
            run(ServiceOrderService.get_order(owner.id, order_id))

    def test_update_is_scoped_to_owner(self, owner, make_user, make_order):
        other = make_user(default_role=True)
        order_id = make_order(other.id, name="theirs")

        with pytest.raises(NotFoundError):
            run(ServiceOrderService.update_order(owner.id, order_id, ServiceOrderUpdate(name="mine")))

        assert run(ServiceOrderService.get_order(other.id, order_id)).name == "theirs"

    def test_delete_is_scoped_to_owner(self, owner, make_user, make_order, count_orders):
        other = make_user(default_role=True)
        order_id = make_order(other.id)

        with pytest.raises(NotFoundError):
            run(ServiceOrderService.delete_order(owner.id, order_id))

        assert count_orders() == 1

    def test_list_only_returns_own_orders(self, owner, make_user, make_order):
        other = make_user(default_role=True)
        mine = make_order(owner.id)
        make_order(other.id)

        orders = run(ServiceOrderService.list_orders(owner.id))

        assert [order.id for order in orders] == [mine]
        assert run(ServiceOrderService.count_all()) == 2


class TestUpdateOrder:
    def test_unspecified_fields_are_preserved(self, owner, make_order):
        order_id = make_order(owner.id, name="keep me", state="wish")

        updated = run(ServiceOrderService.update_order(owner.id, order_id, ServiceOrderUpdate()))

        assert (updated.name, updated.state) == ("keep me", ServiceOrderState.WISH)

    def test_cart_and_wish_swap(self, owner, make_order):
        cart_id = make_order(owner.id, state="cart")
        wish_id = make_order(owner.id, state="wish")

        run(ServiceOrderService.update_order(owner.id, cart_id, ServiceOrderUpdate(state="wish")))
        run(ServiceOrderService.update_order(owner.id, wish_id, ServiceOrderUpdate(state="cart")))

        assert run(ServiceOrderService.get_cart(owner.id)).id == wish_id

    def test_renaming_an_ordered_order_is_allowed(self, owner, make_order):
        order_id = make_order(owner.id, state="ordered")

        updated = run(ServiceOrderService.update_order(owner.id, order_id, ServiceOrderUpdate(name="placed")))

        assert updated.name == "placed"
        assert updated.state == ServiceOrderState.ORDERED


def test_missing_cart(owner):
    with pytest.raises(NotFoundError, match="Couldn't find ServiceOrder"):
        run(ServiceOrderService.get_cart(owner.id))


def test_only_known_constraint_failures_become_bad_requests():
    unique = _integrity_error(sqlite3.IntegrityError("UNIQUE constraint failed: service_orders.user_id"))
    foreign_key = _integrity_error(sqlite3.IntegrityError("FOREIGN KEY constraint failed"))

    assert unique.message == "User already has a shopping cart"
    assert foreign_key.message == "Service order owner does not exist"
    assert _integrity_error(sqlite3.IntegrityError("NOT NULL constraint failed: service_orders.name")) is None

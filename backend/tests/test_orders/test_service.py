"""
Test suite for OrderService.

Runs the order lifecycle against the in-memory store: creation with price
snapshot and stock decrement, status transitions and who may perform them,
agent assignment with district checks and commission, role-scoped visibility,
and the end-to-end booking scenario.
"""

from decimal import Decimal
from typing import Any
from uuid import uuid4

import pytest
import pytest_asyncio

from factories import FakeStore, make_product, make_user
from ponno.core.exceptions import (
    AccessDeniedError,
    DistrictMismatchError,
    InsufficientStockError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
)
from ponno.database.models import UserRole
from ponno.services.orders.enums import OrderStatus
from ponno.services.orders.service import OrderService, calculate_commission


async def book(
    service: OrderService,
    market: dict[str, Any],
    quantity: str = "3",
    **kwargs: Any,
):
    """Book an order for the marketplace product as the customer."""
    return await service.create_order(
        market["customer"],
        product_id=market["product"].id,
        quantity=Decimal(quantity),
        **kwargs,
    )


# ============================================================================
# Order Creation Tests
# ============================================================================


class TestOrderCreation:
    """Test order booking."""

    @pytest.mark.asyncio
    async def test_create_order_snapshots_price(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        assert order.unit_price == Decimal("50.00")
        assert order.total_price == Decimal("150.00")
        assert order.status == OrderStatus.BOOKED
        assert order.customer_id == marketplace["customer"].id
        assert order.agent_id is None
        assert order.commission == Decimal("0")
        assert order.commission_rate == Decimal("5.00")

    @pytest.mark.asyncio
    async def test_create_order_decrements_stock(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        await book(order_service, marketplace, quantity="4")

        assert marketplace["product"].available_quantity == Decimal("6")

    @pytest.mark.asyncio
    async def test_total_unaffected_by_later_price_change(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        await order_service.products.update_product(
            marketplace["product"].id, price=Decimal("80.00")
        )
        reloaded = await order_service.get_order(marketplace["customer"], order.id)

        assert reloaded.unit_price == Decimal("50.00")
        assert reloaded.total_price == Decimal("150.00")

    @pytest.mark.asyncio
    async def test_create_order_with_agent_sets_commission(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(
            order_service,
            marketplace,
            quantity="2",
            agent_id=marketplace["agent_a"].id,
            delivery_address="House 12, Road 5, Dhanmondi",
            customer_notes="Call before delivery",
        )

        assert order.agent_id == marketplace["agent_a"].id
        assert order.commission == Decimal("5.00")
        assert order.delivery_address == "House 12, Road 5, Dhanmondi"
        assert order.customer_notes == "Call before delivery"

    @pytest.mark.asyncio
    async def test_admin_can_create_order(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await order_service.create_order(
            marketplace["admin"],
            product_id=marketplace["product"].id,
            quantity=Decimal("1"),
        )

        assert order.customer_id == marketplace["admin"].id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role_key", ["farmer", "agent_a"])
    async def test_non_customer_cannot_create_order(
        self, order_service: OrderService, marketplace: dict, role_key: str
    ) -> None:
        with pytest.raises(PermissionDeniedError) as exc_info:
            await order_service.create_order(
                marketplace[role_key],
                product_id=marketplace["product"].id,
                quantity=Decimal("1"),
            )

        assert exc_info.value.code == "INSUFFICIENT_PERMISSIONS"
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_missing_product(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.create_order(
                marketplace["customer"], product_id=uuid4(), quantity=Decimal("1")
            )

        assert exc_info.value.code == "PRODUCT_NOT_FOUND"
        assert exc_info.value.status_code == 404

    @pytest.mark.asyncio
    async def test_inactive_product_is_not_found(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        marketplace["product"].is_active = False

        with pytest.raises(NotFoundError) as exc_info:
            await book(order_service, marketplace, quantity="1")

        assert exc_info.value.code == "PRODUCT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_insufficient_stock_leaves_store_untouched(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        with pytest.raises(InsufficientStockError) as exc_info:
            await book(order_service, marketplace, quantity="11")

        assert exc_info.value.code == "INSUFFICIENT_QUANTITY"
        assert marketplace["product"].available_quantity == Decimal("10")
        assert store.orders == {}

    @pytest.mark.asyncio
    async def test_exact_stock_can_be_ordered(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        await book(order_service, marketplace, quantity="10")

        assert marketplace["product"].available_quantity == Decimal("0")

    @pytest.mark.asyncio
    async def test_failed_conditional_decrement_raises_insufficient_stock(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        async def lost_race(product_id, quantity):
            return False

        order_service.products.decrement_available_quantity = lost_race

        with pytest.raises(InsufficientStockError):
            await book(order_service, marketplace)

        assert store.orders == {}

    @pytest.mark.asyncio
    async def test_unknown_agent(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await book(order_service, marketplace, agent_id=uuid4())

        assert exc_info.value.code == "AGENT_NOT_FOUND"
        assert store.orders == {}
        assert marketplace["product"].available_quantity == Decimal("10")

    @pytest.mark.asyncio
    async def test_inactive_agent_is_not_found(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        marketplace["agent_a"].is_active = False

        with pytest.raises(NotFoundError) as exc_info:
            await book(order_service, marketplace, agent_id=marketplace["agent_a"].id)

        assert exc_info.value.code == "AGENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_non_agent_user_is_not_an_agent(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await book(order_service, marketplace, agent_id=marketplace["farmer"].id)

        assert exc_info.value.code == "AGENT_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_agent_from_other_district(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        with pytest.raises(DistrictMismatchError) as exc_info:
            await book(order_service, marketplace, agent_id=marketplace["agent_b"].id)

        assert exc_info.value.code == "AGENT_DISTRICT_MISMATCH"
        assert exc_info.value.status_code == 400
        assert store.orders == {}
        assert marketplace["product"].available_quantity == Decimal("10")


# ============================================================================
# Status Transition Tests
# ============================================================================


class TestStatusTransitions:
    """Test updating order status."""

    @pytest.mark.asyncio
    async def test_farmer_confirms_order(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        updated = await order_service.update_order_status(
            marketplace["farmer"], order.id, OrderStatus.CONFIRMED
        )

        assert updated.status == OrderStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_transition_changes_only_status_and_notes(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace, agent_id=marketplace["agent_a"].id)
        before = {
            field: getattr(order, field)
            for field in ("quantity", "unit_price", "total_price", "commission", "agent_id")
        }

        updated = await order_service.update_order_status(
            marketplace["agent_a"],
            order.id,
            OrderStatus.CONFIRMED,
            agent_notes="Pickup tomorrow",
        )

        assert updated.agent_notes == "Pickup tomorrow"
        for field, value in before.items():
            assert getattr(updated, field) == value

    @pytest.mark.asyncio
    async def test_admin_walks_full_lifecycle(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)
        admin = marketplace["admin"]

        for status in (OrderStatus.CONFIRMED, OrderStatus.PICKED, OrderStatus.DELIVERED):
            order = await order_service.update_order_status(admin, order.id, status)

        assert order.status == OrderStatus.DELIVERED

        with pytest.raises(InvalidTransitionError):
            await order_service.update_order_status(admin, order.id, OrderStatus.CANCELLED)

    @pytest.mark.asyncio
    async def test_skipping_a_step_is_rejected(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(InvalidTransitionError) as exc_info:
            await order_service.update_order_status(
                marketplace["admin"], order.id, OrderStatus.PICKED
            )

        assert exc_info.value.current_status == OrderStatus.BOOKED
        assert exc_info.value.target_status == OrderStatus.PICKED

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "role_key",
        ["customer", "other_farmer", "agent_b", "other_customer"],
    )
    async def test_unrelated_users_cannot_update(
        self, order_service: OrderService, marketplace: dict, role_key: str
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(PermissionDeniedError) as exc_info:
            await order_service.update_order_status(
                marketplace[role_key], order.id, OrderStatus.CONFIRMED
            )

        assert exc_info.value.code == "INSUFFICIENT_PERMISSIONS"

    @pytest.mark.asyncio
    async def test_unassigned_agent_cannot_update(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(PermissionDeniedError):
            await order_service.update_order_status(
                marketplace["agent_a"], order.id, OrderStatus.CONFIRMED
            )

    @pytest.mark.asyncio
    async def test_missing_order(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.update_order_status(
                marketplace["admin"], uuid4(), OrderStatus.CONFIRMED
            )

        assert exc_info.value.code == "ORDER_NOT_FOUND"


# ============================================================================
# Agent Assignment Tests
# ============================================================================


class TestAgentAssignment:
    """Test attaching agents to orders."""

    @pytest.mark.asyncio
    async def test_assign_agent_computes_commission(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        updated = await order_service.assign_agent(
            marketplace["customer"], order.id, marketplace["agent_a"].id
        )

        assert updated.agent_id == marketplace["agent_a"].id
        assert updated.commission == Decimal("7.50")
        assert updated.commission_rate == Decimal("5.00")
        assert updated.agent.name == "Agent A"

    @pytest.mark.asyncio
    async def test_assignment_overwrites_previous_agent(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        replacement = make_user(UserRole.AGENT, marketplace["d1"].id, name="Agent Z")
        store.add(replacement)
        order = await book(order_service, marketplace, agent_id=marketplace["agent_a"].id)

        updated = await order_service.assign_agent(
            marketplace["admin"], order.id, replacement.id
        )

        assert updated.agent_id == replacement.id

    @pytest.mark.asyncio
    async def test_assignment_allowed_in_any_status(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)
        await order_service.update_order_status(
            marketplace["admin"], order.id, OrderStatus.CANCELLED
        )

        updated = await order_service.assign_agent(
            marketplace["customer"], order.id, marketplace["agent_a"].id
        )

        assert updated.status == OrderStatus.CANCELLED
        assert updated.agent_id == marketplace["agent_a"].id

    @pytest.mark.asyncio
    async def test_district_mismatch_leaves_order_unchanged(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(DistrictMismatchError):
            await order_service.assign_agent(
                marketplace["customer"], order.id, marketplace["agent_b"].id
            )

        reloaded = await order_service.get_order(marketplace["customer"], order.id)
        assert reloaded.agent_id is None
        assert reloaded.commission == Decimal("0")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role_key", ["farmer", "agent_a"])
    async def test_only_customers_and_admins_assign(
        self, order_service: OrderService, marketplace: dict, role_key: str
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(PermissionDeniedError):
            await order_service.assign_agent(
                marketplace[role_key], order.id, marketplace["agent_a"].id
            )

    @pytest.mark.asyncio
    async def test_customer_cannot_assign_on_foreign_order(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(AccessDeniedError) as exc_info:
            await order_service.assign_agent(
                marketplace["other_customer"], order.id, marketplace["agent_a"].id
            )

        assert exc_info.value.code == "ACCESS_DENIED"

    @pytest.mark.asyncio
    async def test_inactive_agent_rejected(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)
        marketplace["agent_a"].is_active = False

        with pytest.raises(NotFoundError) as exc_info:
            await order_service.assign_agent(
                marketplace["customer"], order.id, marketplace["agent_a"].id
            )

        assert exc_info.value.code == "AGENT_NOT_FOUND"

    def test_commission_rounds_to_cents(self) -> None:
        assert calculate_commission(Decimal("33.33"), Decimal("5.00")) == Decimal("1.67")
        assert calculate_commission(Decimal("150.00"), Decimal("5.00")) == Decimal("7.50")


# ============================================================================
# Visibility Tests
# ============================================================================


class TestOrderVisibility:
    """Test role-scoped listing and single-order access."""

    @pytest_asyncio.fixture
    async def orders(self, order_service: OrderService, marketplace: dict, store: FakeStore):
        second_product = make_product(marketplace["other_farmer"], marketplace["d1"].id)
        store.add(second_product)

        mine = await book(order_service, marketplace, agent_id=marketplace["agent_a"].id)
        theirs = await order_service.create_order(
            marketplace["other_customer"],
            product_id=second_product.id,
            quantity=Decimal("1"),
        )
        return mine, theirs

    @pytest.mark.asyncio
    async def test_customer_sees_own_orders(
        self, order_service: OrderService, marketplace: dict, orders
    ) -> None:
        mine, _ = orders

        result, pagination = await order_service.list_orders(marketplace["customer"])

        assert [o.id for o in result] == [mine.id]
        assert pagination == {"page": 1, "limit": 20, "total": 1, "pages": 1}

    @pytest.mark.asyncio
    async def test_agent_sees_assigned_orders(
        self, order_service: OrderService, marketplace: dict, orders
    ) -> None:
        mine, _ = orders

        result, _ = await order_service.list_orders(marketplace["agent_a"])
        assert [o.id for o in result] == [mine.id]

        result, _ = await order_service.list_orders(marketplace["agent_b"])
        assert result == []

    @pytest.mark.asyncio
    async def test_farmer_sees_orders_for_own_products(
        self, order_service: OrderService, marketplace: dict, orders
    ) -> None:
        _, theirs = orders

        result, _ = await order_service.list_orders(marketplace["other_farmer"])

        assert [o.id for o in result] == [theirs.id]

    @pytest.mark.asyncio
    async def test_admin_sees_everything(
        self, order_service: OrderService, marketplace: dict, orders
    ) -> None:
        result, pagination = await order_service.list_orders(
            marketplace["admin"], sort_by="created_at", sort_order="asc"
        )

        assert [o.id for o in result] == [o.id for o in orders]
        assert pagination["total"] == 2

    @pytest.mark.asyncio
    async def test_status_filter_and_pagination(
        self, order_service: OrderService, marketplace: dict, orders
    ) -> None:
        mine, _ = orders
        await order_service.update_order_status(
            marketplace["admin"], mine.id, OrderStatus.CONFIRMED
        )

        result, pagination = await order_service.list_orders(
            marketplace["admin"], status=OrderStatus.CONFIRMED, page=1, limit=1
        )

        assert [o.id for o in result] == [mine.id]
        assert pagination == {"page": 1, "limit": 1, "total": 1, "pages": 1}

    def test_visibility_predicates(self, marketplace: dict) -> None:
        predicate = OrderService.visibility_predicate

        assert predicate(marketplace["customer"]) == {"customer_id": marketplace["customer"].id}
        assert predicate(marketplace["agent_a"]) == {"agent_id": marketplace["agent_a"].id}
        assert predicate(marketplace["farmer"]) == {"farmer_id": marketplace["farmer"].id}
        assert predicate(marketplace["admin"]) == {}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role_key", ["customer", "agent_a", "farmer", "admin"])
    async def test_parties_can_get_order(
        self, order_service: OrderService, marketplace: dict, orders, role_key: str
    ) -> None:
        mine, _ = orders

        order = await order_service.get_order(marketplace[role_key], mine.id)

        assert order.id == mine.id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("role_key", ["other_customer", "agent_b", "other_farmer"])
    async def test_non_parties_are_denied(
        self, order_service: OrderService, marketplace: dict, orders, role_key: str
    ) -> None:
        mine, _ = orders

        with pytest.raises(AccessDeniedError) as exc_info:
            await order_service.get_order(marketplace[role_key], mine.id)

        assert exc_info.value.code == "ACCESS_DENIED"
        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_available_agents_by_district(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        agents = await order_service.get_available_agents(marketplace["d1"].id)

        assert [a.id for a in agents] == [marketplace["agent_a"].id]


# ============================================================================
# Admin Purge Tests
# ============================================================================


class TestOrderPurge:
    """Test admin order deletion."""

    @pytest.mark.asyncio
    async def test_admin_deletes_order(
        self, order_service: OrderService, marketplace: dict, store: FakeStore
    ) -> None:
        order = await book(order_service, marketplace)

        await order_service.delete_order(marketplace["admin"], order.id)

        assert order.id not in store.orders

    @pytest.mark.asyncio
    async def test_customer_cannot_delete(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        order = await book(order_service, marketplace)

        with pytest.raises(PermissionDeniedError):
            await order_service.delete_order(marketplace["customer"], order.id)

    @pytest.mark.asyncio
    async def test_delete_missing_order(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        with pytest.raises(NotFoundError) as exc_info:
            await order_service.delete_order(marketplace["admin"], uuid4())

        assert exc_info.value.code == "ORDER_NOT_FOUND"


# ============================================================================
# End-to-end Scenario
# ============================================================================


class TestBookingScenario:
    """Book, assign, confirm, and attempt an illegal jump."""

    @pytest.mark.asyncio
    async def test_booking_scenario(
        self, order_service: OrderService, marketplace: dict
    ) -> None:
        customer = marketplace["customer"]
        agent_a = marketplace["agent_a"]

        order = await book(order_service, marketplace, quantity="3")
        assert order.unit_price == Decimal("50.00")
        assert order.total_price == Decimal("150.00")
        assert order.commission == Decimal("0")
        assert order.status == OrderStatus.BOOKED
        assert marketplace["product"].available_quantity == Decimal("7")

        order = await order_service.assign_agent(customer, order.id, agent_a.id)
        assert order.commission == Decimal("7.50")
        assert order.commission_rate == Decimal("5.00")

        order = await order_service.update_order_status(
            agent_a, order.id, OrderStatus.CONFIRMED
        )
        assert order.status == OrderStatus.CONFIRMED

        with pytest.raises(InvalidTransitionError):
            await order_service.update_order_status(
                agent_a, order.id, OrderStatus.DELIVERED
            )

        with pytest.raises(DistrictMismatchError):
            await order_service.assign_agent(
                customer, order.id, marketplace["agent_b"].id
            )

        reloaded = await order_service.get_order(customer, order.id)
        assert reloaded.agent_id == agent_a.id
        assert reloaded.status == OrderStatus.CONFIRMED

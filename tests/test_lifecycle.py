"""
Tests for order placement, status transitions and reconciliation.
"""
import asyncio
import uuid

import pytest

from brew_cashier.errors import InvalidTransitionError, UnknownOrderError
from brew_cashier.lifecycle import OrderLifecycleManager
from brew_cashier.models import Order, OrderItem, OrderStatus, Receipt

from conftest import FakeRepository


def _receipt(total=6.25, notes=None):
    return Receipt(
        items=[OrderItem(name="Latte", milk="oat milk", unit_price=6.25, quantity=1)],
        total=total,
        special_notes=notes,
    )


class TestPlace:
    @pytest.mark.asyncio
    async def test_creates_pending_order_and_persists(self, lifecycle, repository):
        result = await lifecycle.place(_receipt(notes="extra hot"))

        assert result.saved is True
        order = result.order
        assert order.status is OrderStatus.PENDING
        assert uuid.UUID(order.order_id)
        assert order.total == 6.25
        assert order.customer_name == "Guest"
        assert order.special_notes == "extra hot"
        assert repository.created == [order]
        assert lifecycle.get(order.order_id) == order

    @pytest.mark.asyncio
    async def test_store_failure_still_returns_order(self):
        repository = FakeRepository(create_ok=False)
        lifecycle = OrderLifecycleManager(repository)

        result = await lifecycle.place(_receipt())

        assert result.saved is False
        assert result.order.status is OrderStatus.PENDING
        assert uuid.UUID(result.order.order_id)
        assert lifecycle.snapshot() == [result.order]

    @pytest.mark.asyncio
    async def test_each_order_gets_a_new_id(self, lifecycle):
        first = await lifecycle.place(_receipt())
        second = await lifecycle.place(_receipt())
        assert first.order.order_id != second.order.order_id


class TestAdvance:
    @pytest.mark.asyncio
    async def test_linear_path(self, lifecycle, repository):
        order = (await lifecycle.place(_receipt())).order

        started = await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)
        done = await lifecycle.advance(order.order_id, OrderStatus.COMPLETED)

        assert started.status is OrderStatus.IN_PROGRESS
        assert done.status is OrderStatus.COMPLETED
        assert lifecycle.get(order.order_id).status is OrderStatus.COMPLETED
        assert repository.updates == [
            (order.order_id, OrderStatus.IN_PROGRESS),
            (order.order_id, OrderStatus.COMPLETED),
        ]

    @pytest.mark.asyncio
    async def test_skipping_a_step_rejected(self, lifecycle, repository):
        order = (await lifecycle.place(_receipt())).order

        with pytest.raises(InvalidTransitionError):
            await lifecycle.advance(order.order_id, OrderStatus.COMPLETED)

        assert lifecycle.get(order.order_id).status is OrderStatus.PENDING
        assert repository.updates == []

    @pytest.mark.asyncio
    async def test_going_backwards_rejected(self, lifecycle):
        order = (await lifecycle.place(_receipt())).order
        await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)
        await lifecycle.advance(order.order_id, OrderStatus.COMPLETED)

        with pytest.raises(InvalidTransitionError):
            await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)

        assert lifecycle.get(order.order_id).status is OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_same_status_rejected(self, lifecycle):
        order = (await lifecycle.place(_receipt())).order
        with pytest.raises(InvalidTransitionError):
            await lifecycle.advance(order.order_id, OrderStatus.PENDING)

    @pytest.mark.asyncio
    async def test_unknown_order(self, lifecycle):
        with pytest.raises(UnknownOrderError):
            await lifecycle.advance("nope", OrderStatus.IN_PROGRESS)

    @pytest.mark.asyncio
    async def test_failed_write_still_updates_local_view(self):
        repository = FakeRepository(update_ok=False)
        lifecycle = OrderLifecycleManager(repository)
        order = (await lifecycle.place(_receipt())).order

        updated = await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)

        assert updated.status is OrderStatus.IN_PROGRESS


class TestRefresh:
    @pytest.mark.asyncio
    async def test_store_state_supersedes_local(self, lifecycle, repository):
        order = (await lifecycle.place(_receipt())).order
        repository.remote = [order.model_copy(update={"status": OrderStatus.IN_PROGRESS})]

        assert await lifecycle.refresh() is True
        assert lifecycle.get(order.order_id).status is OrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_poll_after_staff_action_wins(self, lifecycle, repository):
        """A poll that lands before the store applied a staff action reverts it."""
        order = (await lifecycle.place(_receipt())).order
        repository.remote = [order]

        await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)
        assert lifecycle.get(order.order_id).status is OrderStatus.IN_PROGRESS

        await lifecycle.refresh()
        assert lifecycle.get(order.order_id).status is OrderStatus.PENDING

        # Once the store catches up the next poll carries the new status.
        repository.remote = [order.model_copy(update={"status": OrderStatus.IN_PROGRESS})]
        await lifecycle.refresh()
        assert lifecycle.get(order.order_id).status is OrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_refresh_during_status_write_wins(self):
        """A poll that lands while a staff write is in flight is not overwritten."""
        gate = asyncio.Event()

        class GatedRepository(FakeRepository):
            async def update_status(self, order_id, status):
                result = await super().update_status(order_id, status)
                await gate.wait()
                return result

        repository = GatedRepository()
        lifecycle = OrderLifecycleManager(repository)
        order = (await lifecycle.place(_receipt())).order
        repository.remote = [order.model_copy(update={"status": OrderStatus.COMPLETED})]

        advancing = asyncio.create_task(lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS))
        while not repository.updates:
            await asyncio.sleep(0)
        await lifecycle.refresh()
        gate.set()
        result = await advancing

        assert result.status is OrderStatus.COMPLETED
        assert lifecycle.get(order.order_id).status is OrderStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_failed_read_keeps_local_view(self, lifecycle, repository):
        order = (await lifecycle.place(_receipt())).order
        await lifecycle.advance(order.order_id, OrderStatus.IN_PROGRESS)
        repository.fetch_fails = True

        assert await lifecycle.refresh() is False
        assert lifecycle.get(order.order_id).status is OrderStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_local_only_orders_kept(self, lifecycle, repository):
        order = (await lifecycle.place(_receipt())).order
        other = order.model_copy(update={"order_id": "remote-1"})
        repository.remote = [other]

        await lifecycle.refresh()

        ids = {o.order_id for o in lifecycle.snapshot()}
        assert ids == {order.order_id, "remote-1"}

    @pytest.mark.asyncio
    async def test_snapshot_is_chronological(self, lifecycle):
        first = (await lifecycle.place(_receipt())).order
        second = (await lifecycle.place(_receipt())).order
        assert [o.order_id for o in lifecycle.snapshot()] == [first.order_id, second.order_id]

    @pytest.mark.asyncio
    async def test_snapshot_mixes_store_rows_without_offset(self, lifecycle, repository):
        local = (await lifecycle.place(_receipt())).order
        repository.remote = [
            Order.from_store_row(
                {
                    "order_id": "sheet-1",
                    "timestamp": "2024-05-01T09:30:00",
                    "items": [{"name": "Tea", "price": 3.5}],
                    "total": 3.5,
                }
            )
        ]

        await lifecycle.refresh()

        assert [o.order_id for o in lifecycle.snapshot()] == ["sheet-1", local.order_id]

    @pytest.mark.asyncio
    async def test_poll_refreshes_until_cancelled(self, repository):
        calls = []

        class CountingRepository(FakeRepository):
            async def fetch_orders(self):
                calls.append(1)
                return []

        lifecycle = OrderLifecycleManager(CountingRepository())
        task = asyncio.create_task(lifecycle.poll(interval=0))
        while len(calls) < 3:
            await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert len(calls) >= 3

# brew_cashier/lifecycle.py
"""
Order Lifecycle Manager

Owns the local view of orders and is the only component that changes an
order's status.

    pending -> in-progress -> completed

Status changes are optimistic: the store is told, the local view changes at
once, and the next successful read from the store overrides whatever the
local view says for the same order id.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional

from .config import settings
from .errors import InvalidTransitionError, OrderStoreError, UnknownOrderError
from .models import Order, OrderStatus, Receipt
from .order_store import OrderRepository

logger = logging.getLogger(__name__)

NEXT_STATUS: Dict[OrderStatus, OrderStatus] = {
    OrderStatus.PENDING: OrderStatus.IN_PROGRESS,
    OrderStatus.IN_PROGRESS: OrderStatus.COMPLETED,
}


@dataclass(frozen=True)
class PlacementResult:
    order: Order
    saved: bool


class OrderLifecycleManager:
    def __init__(self, repository: OrderRepository) -> None:
        self.repository = repository
        self._orders: Dict[str, Order] = {}

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def get(self, order_id: str) -> Order:
        try:
            return self._orders[order_id]
        except KeyError:
            raise UnknownOrderError(order_id) from None

    def snapshot(self) -> List[Order]:
        """Orders oldest first."""
        return sorted(self._orders.values(), key=lambda o: o.created_at)

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------
    async def place(self, receipt: Receipt, customer_name: str = "Guest") -> PlacementResult:
        """
        Turn a finalized receipt into a pending order and persist it.

        The order is kept and returned even when the store write fails;
        `saved` tells the caller whether to warn the customer.
        """
        order = Order(
            order_id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            items=receipt.items,
            total=receipt.total,
            status=OrderStatus.PENDING,
            customer_name=customer_name,
            special_notes=receipt.special_notes or "",
        )
        self._orders[order.order_id] = order

        saved = await self.repository.create(order)
        if not saved:
            logger.warning("Order %s placed locally but not persisted", order.order_id)
        return PlacementResult(order=order, saved=saved)

    async def advance(self, order_id: str, target: OrderStatus) -> Order:
        """
        Move an order one step along its lifecycle.

        Skipping a step or going backwards raises InvalidTransitionError and
        leaves the order untouched.
        """
        order = self.get(order_id)
        target = OrderStatus(target)
        if NEXT_STATUS.get(order.status) is not target:
            raise InvalidTransitionError(
                f"Order {order_id} cannot go from {order.status.value} to {target.value}"
            )

        sent = await self.repository.update_status(order_id, target)
        if not sent:
            logger.warning("Status write for %s failed; local view updated anyway", order_id)

        current = self._orders.get(order_id, order)
        if current.status is not order.status:
            # A refresh landed while the write was in flight; the store's copy stands.
            logger.info(
                "Order %s reconciled to %s during update; %s not applied locally",
                order_id,
                current.status.value,
                target.value,
            )
            return current

        updated = current.model_copy(update={"status": target})
        self._orders[order_id] = updated
        return updated

    # -------------------------------------------------------------------------
    # Reconciliation
    # -------------------------------------------------------------------------
    async def refresh(self) -> bool:
        """
        Replace local orders with the store's copy, id by id.

        Orders the store does not know about (e.g. a failed create) are kept.
        Returns False, leaving the local view as it was, if the read failed.
        """
        try:
            remote = await self.repository.fetch_orders()
        except OrderStoreError as exc:
            logger.warning("Refresh failed, keeping local view: %s", exc)
            return False

        for order in remote:
            local = self._orders.get(order.order_id)
            if local is not None and local.status is not order.status:
                logger.info(
                    "Order %s reconciled: %s -> %s",
                    order.order_id,
                    local.status.value,
                    order.status.value,
                )
            self._orders[order.order_id] = order
        return True

    async def poll(self, interval: Optional[float] = None) -> None:
        """
        Refresh forever every `interval` seconds. Cancel the task to stop.
        """
        interval = interval if interval is not None else settings.ORDER_POLL_INTERVAL_SECONDS
        while True:
            await self.refresh()
            await asyncio.sleep(interval)

# brew_cashier/order_store.py
"""
Order Store Gateway

Encapsulates all calls to the remote order sheet (a spreadsheet web app):
- create         -> POST {"action": "addOrder", "order": {...}}
- list           -> GET  -> {"orders": [...]}
- update_status  -> POST {"action": "updateStatus", "order_id", "status"}

Bodies are sent as text/plain JSON, which is what the sheet's web app accepts
without a CORS preflight.

Failures never propagate from create(), list() or update_status(); they are
logged and reported as False or []. `fetch_orders()` is the one exception,
for callers that need to tell "no orders" from "store unreachable".
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .config import settings
from .errors import OrderStoreError
from .models import Order, OrderStatus

logger = logging.getLogger(__name__)


class OrderRepository:
    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url if url is not None else settings.ORDER_STORE_URL
        self.timeout = timeout if timeout is not None else settings.ORDER_STORE_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            transport=self._transport,
            follow_redirects=True,
        )

    async def _post(self, payload: Dict[str, Any]) -> None:
        async with self._client() as client:
            resp = await client.post(
                self.url,
                content=json.dumps(payload),
                headers={"Content-Type": "text/plain"},
            )
            resp.raise_for_status()

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    async def create(self, order: Order) -> bool:
        if not self.url:
            logger.warning("ORDER_STORE_URL not configured; order %s not saved", order.order_id)
            return False

        try:
            await self._post({"action": "addOrder", "order": order.to_wire()})
        except httpx.HTTPError as exc:
            logger.error("Error saving order %s: %s", order.order_id, exc)
            return False

        logger.info("Saved order %s (total %.2f)", order.order_id, order.total)
        return True

    async def fetch_orders(self) -> List[Order]:
        """
        Read every order from the store.

        Raises OrderStoreError when the store cannot be reached or answers
        with something other than an `orders` array. Rows that fail to decode
        are skipped individually.
        """
        if not self.url:
            raise OrderStoreError("ORDER_STORE_URL not configured")

        try:
            async with self._client() as client:
                # Cache buster.
                resp = await client.get(self.url, params={"t": int(time.time() * 1000)})
                resp.raise_for_status()
                data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise OrderStoreError(f"Could not read orders: {exc}") from exc

        rows = data.get("orders") if isinstance(data, dict) else None
        if not isinstance(rows, list):
            raise OrderStoreError("Store response has no orders array")

        orders: List[Order] = []
        for row in rows:
            if not isinstance(row, dict):
                logger.warning("Skipping non-object order row: %r", row)
                continue
            try:
                orders.append(Order.from_store_row(row))
            except ValidationError as exc:
                logger.warning(
                    "Skipping undecodable order row %r (%d errors)",
                    row.get("order_id"),
                    exc.error_count(),
                )
        return orders

    async def list(self) -> List[Order]:
        try:
            return await self.fetch_orders()
        except OrderStoreError as exc:
            logger.error("Error fetching orders: %s", exc)
            return []

    async def update_status(self, order_id: str, status: OrderStatus) -> bool:
        """
        Ask the store to change an order's status.

        True only means the write was accepted for delivery; the sheet does not
        confirm it. The next list() is the source of truth.
        """
        if not self.url:
            logger.warning("ORDER_STORE_URL not configured; status of %s not sent", order_id)
            return False

        try:
            await self._post(
                {
                    "action": "updateStatus",
                    "order_id": order_id,
                    "status": OrderStatus(status).value,
                }
            )
        except httpx.HTTPError as exc:
            logger.error("Error updating order %s to %s: %s", order_id, status, exc)
            return False
        return True

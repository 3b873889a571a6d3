import asyncio
from typing import List, Optional

import pytest

from brew_cashier.conversation import ConversationSession
from brew_cashier.errors import OrderStoreError
from brew_cashier.lifecycle import OrderLifecycleManager
from brew_cashier.models import Order, OrderStatus

LATTE_REPLY = (
    "Great, here's your total. ORDER_RECEIPT_START "
    '{"items":[{"name":"Latte","size":"medium","milk":"oat milk","price":6.25,"quantity":1}],'
    '"total":6.25} ORDER_RECEIPT_END'
)

WELCOME = "Hi there! Welcome to Brew & Co! What can I get started for you today?"


class FakeEngine:
    """Completion engine double: replays canned replies, records transcripts."""

    def __init__(self, replies=None):
        self.replies = list(replies or [])
        self.calls = []
        self.gate: Optional[asyncio.Event] = None

    async def complete(self, turns):
        self.calls.append(tuple(turns))
        if self.gate is not None:
            await self.gate.wait()
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeRepository:
    """Order store double with switchable failures."""

    def __init__(self, create_ok=True, update_ok=True):
        self.create_ok = create_ok
        self.update_ok = update_ok
        self.fetch_fails = False
        self.created: List[Order] = []
        self.updates = []
        self.remote: List[Order] = []

    async def create(self, order):
        self.created.append(order)
        return self.create_ok

    async def update_status(self, order_id, status):
        self.updates.append((order_id, OrderStatus(status)))
        return self.update_ok

    async def fetch_orders(self):
        if self.fetch_fails:
            raise OrderStoreError("store unreachable")
        return list(self.remote)

    async def list(self):
        try:
            return await self.fetch_orders()
        except OrderStoreError:
            return []


@pytest.fixture
def repository():
    return FakeRepository()


@pytest.fixture
def lifecycle(repository):
    return OrderLifecycleManager(repository)


@pytest.fixture
def make_session(lifecycle):
    def _make(replies=None, engine=None):
        engine = engine or FakeEngine(replies)
        return ConversationSession(engine=engine, lifecycle=lifecycle, welcome=WELCOME)

    return _make

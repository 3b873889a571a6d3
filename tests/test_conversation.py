"""
Tests for the conversation session state machine.
"""
import asyncio

import pytest

from brew_cashier.conversation import ConversationSession
from brew_cashier.errors import (
    CompletionError,
    EmptyInputError,
    InvalidTransitionError,
    SessionFinalizedError,
    TurnInProgressError,
)
from brew_cashier.lifecycle import OrderLifecycleManager
from brew_cashier.models import OrderStatus
from brew_cashier.session_context import SessionPhase

from conftest import LATTE_REPLY, WELCOME, FakeEngine, FakeRepository


class TestGreeting:
    def test_greet_appends_welcome_and_activates(self, make_session):
        session = make_session()

        assert session.phase is SessionPhase.GREETING
        assert session.greet() == WELCOME
        assert session.phase is SessionPhase.ACTIVE
        assert [(t.role, t.text) for t in session.state.turns] == [("agent", WELCOME)]

    def test_greet_twice_rejected(self, make_session):
        session = make_session()
        session.greet()
        with pytest.raises(InvalidTransitionError):
            session.greet()

    @pytest.mark.asyncio
    async def test_submit_greets_implicitly(self, make_session):
        session = make_session(["What size?"])
        await session.submit("A latte please")
        assert session.state.turns[0].text == WELCOME


class TestSubmit:
    @pytest.mark.asyncio
    async def test_full_transcript_sent_each_time(self, make_session):
        engine = FakeEngine(["What size?", "Hot or iced?"])
        session = make_session(engine=engine)
        session.greet()

        await session.submit("A latte please")
        await session.submit("Medium")

        assert [(t.role, t.text) for t in engine.calls[0]] == [
            ("agent", WELCOME),
            ("user", "A latte please"),
        ]
        assert [(t.role, t.text) for t in engine.calls[1]] == [
            ("agent", WELCOME),
            ("user", "A latte please"),
            ("agent", "What size?"),
            ("user", "Medium"),
        ]

    @pytest.mark.asyncio
    async def test_reply_without_receipt_keeps_session_active(self, make_session):
        session = make_session(["Would you like **oat milk**?"])

        result = await session.submit("Latte")

        assert result.reply_text == "Would you like oat milk?"
        assert result.receipt is None
        assert result.finalized is False
        assert session.phase is SessionPhase.ACTIVE
        assert session.state.turns[-1].text == "Would you like oat milk?"

    @pytest.mark.asyncio
    async def test_receipt_finalizes_and_places_order(self, make_session, repository):
        session = make_session([LATTE_REPLY])

        result = await session.submit("That's all")

        assert result.finalized is True
        assert result.reply_text == "Great, here's your total."
        assert result.receipt.total == 6.25
        assert result.order.status is OrderStatus.PENDING
        assert result.order_saved is True
        assert session.finalized
        assert session.state.pending_receipt == result.receipt
        assert repository.created == [result.order]
        assert "ORDER_RECEIPT_START" not in session.state.turns[-1].text

    @pytest.mark.asyncio
    async def test_unsaved_order_reported(self, lifecycle):
        lifecycle.repository.create_ok = False
        session = ConversationSession(engine=FakeEngine([LATTE_REPLY]), lifecycle=lifecycle)

        result = await session.submit("Done")

        assert result.order is not None
        assert result.order_saved is False
        assert session.finalized

    @pytest.mark.asyncio
    async def test_finalized_session_rejects_submit(self, make_session):
        engine = FakeEngine([LATTE_REPLY, "should never be used"])
        session = make_session(engine=engine)
        await session.submit("Done")
        turns_before = list(session.state.turns)

        with pytest.raises(SessionFinalizedError):
            await session.submit("Actually, add a muffin")

        assert session.state.turns == turns_before
        assert len(engine.calls) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None])
    async def test_blank_input_rejected(self, make_session, text):
        engine = FakeEngine()
        session = make_session(engine=engine)
        with pytest.raises(EmptyInputError):
            await session.submit(text)
        assert engine.calls == []

    @pytest.mark.asyncio
    async def test_receipt_customer_name_passed_through(self):
        lifecycle = OrderLifecycleManager(FakeRepository())
        session = ConversationSession(
            engine=FakeEngine([LATTE_REPLY]), lifecycle=lifecycle, customer_name="Dana"
        )
        result = await session.submit("Done")
        assert result.order.customer_name == "Dana"


class TestCompletionFailure:
    @pytest.mark.asyncio
    async def test_failure_keeps_user_turn_and_stays_active(self, make_session):
        session = make_session([CompletionError("timeout")])
        session.greet()

        with pytest.raises(CompletionError):
            await session.submit("A mocha")

        assert session.phase is SessionPhase.ACTIVE
        assert [(t.role, t.text) for t in session.state.turns][-1] == ("user", "A mocha")
        assert not session.busy

    @pytest.mark.asyncio
    async def test_retry_resends_without_duplicating(self, make_session):
        engine = FakeEngine([CompletionError("timeout"), "Hot or iced?"])
        session = make_session(engine=engine)
        session.greet()
        with pytest.raises(CompletionError):
            await session.submit("A mocha")

        result = await session.retry()

        assert result.reply_text == "Hot or iced?"
        assert [t.role for t in session.state.turns] == ["agent", "user", "agent"]
        assert engine.calls[0] == engine.calls[1]

    @pytest.mark.asyncio
    async def test_retry_without_pending_message_rejected(self, make_session):
        session = make_session(["What size?"])
        await session.submit("Latte")
        with pytest.raises(InvalidTransitionError):
            await session.retry()


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_second_submit_rejected_while_first_pending(self, make_session):
        engine = FakeEngine(["What size?"])
        engine.gate = asyncio.Event()
        session = make_session(engine=engine)

        first = asyncio.create_task(session.submit("Latte"))
        while not engine.calls:
            await asyncio.sleep(0)

        with pytest.raises(TurnInProgressError):
            await session.submit("Mocha")

        engine.gate.set()
        result = await first

        assert result.reply_text == "What size?"
        assert [t.text for t in session.state.turns] == [WELCOME, "Latte", "What size?"]

    @pytest.mark.asyncio
    async def test_late_reply_discarded_after_close(self, make_session):
        engine = FakeEngine(["What size?"])
        engine.gate = asyncio.Event()
        session = make_session(engine=engine)

        pending = asyncio.create_task(session.submit("Latte"))
        while not engine.calls:
            await asyncio.sleep(0)
        session.close()
        engine.gate.set()

        with pytest.raises(SessionFinalizedError):
            await pending
        assert [t.text for t in session.state.turns] == [WELCOME, "Latte"]

# app.py
"""
FastAPI entrypoint for the Brew & Co cashier.

Exposes:
- GET  /health                    -> simple health check
- POST /sessions                  -> open a conversation, returns the greeting
- POST /chat                      -> one customer message, returns the reply
- GET  /orders                    -> barista board (refreshed from the store)
- POST /orders/{order_id}/status  -> staff moves an order along
- GET  /orders/summary            -> owner figures
- POST /tts                       -> cleaned reply text as audio/mpeg
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Optional

from fastapi import FastAPI, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware

from brew_cashier import dashboard
from brew_cashier.agent_core import AgentCore
from brew_cashier.completion_engine import CompletionEngine
from brew_cashier.config import settings
from brew_cashier.errors import (
    CompletionError,
    EmptyInputError,
    InvalidTransitionError,
    SynthesisError,
    UnknownOrderError,
)
from brew_cashier.lifecycle import OrderLifecycleManager
from brew_cashier.logging_config import setup_logging
from brew_cashier.memory_store import MemoryStore
from brew_cashier.models import (
    ChatRequest,
    ChatResponse,
    Order,
    SpeechRequest,
    StartSessionResponse,
    StatusUpdateRequest,
)
from brew_cashier.order_store import OrderRepository
from brew_cashier.speech_gateway import SpeechSynthesizer

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App & dependencies wiring
# ---------------------------------------------------------------------------

memory_store = MemoryStore(ttl_minutes=settings.SESSION_TTL_MINUTES)
order_repository = OrderRepository()
lifecycle = OrderLifecycleManager(order_repository)
completion_engine = CompletionEngine()
speech_synthesizer = SpeechSynthesizer()

agent_core = AgentCore(
    memory_store=memory_store,
    engine=completion_engine,
    lifecycle=lifecycle,
)


@contextlib.asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging()
    poller: Optional[asyncio.Task] = None
    if settings.ORDER_STORE_URL:
        poller = asyncio.create_task(lifecycle.poll())
    try:
        yield
    finally:
        if poller is not None:
            poller.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await poller


app = FastAPI(title="Brew & Co Cashier", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # tighten in production if needed
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "service": "brew_cashier"}


@app.post("/sessions", response_model=StartSessionResponse)
async def start_session() -> StartSessionResponse:
    return agent_core.start_session()


@app.post("/chat", response_model=ChatResponse)
async def chat(req: ChatRequest) -> ChatResponse:
    """
    The client (text box or speech capture) sends:
    {
      "session_id": "id from POST /sessions",
      "text": "customer's message"
    }
    """
    try:
        return await agent_core.handle(req)
    except EmptyInputError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except CompletionError:
        raise HTTPException(status_code=502, detail="Failed to get response from AI")


@app.get("/orders")
async def orders() -> dict:
    refreshed = await lifecycle.refresh()
    return {"refreshed": refreshed, "board": dashboard.barista_board(lifecycle.snapshot())}


@app.get("/orders/summary")
async def orders_summary() -> dict:
    await lifecycle.refresh()
    return dashboard.owner_summary(lifecycle.snapshot())


@app.post("/orders/{order_id}/status", response_model=Order)
async def update_order_status(order_id: str, req: StatusUpdateRequest) -> Order:
    try:
        return await lifecycle.advance(order_id, req.status)
    except UnknownOrderError:
        raise HTTPException(status_code=404, detail=f"Unknown order {order_id}")
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=409, detail=str(exc))


@app.post("/tts")
async def tts(req: SpeechRequest) -> Response:
    if not req.text:
        raise HTTPException(status_code=400, detail="No text provided")
    try:
        audio = await speech_synthesizer.synthesize(req.text)
    except SynthesisError:
        raise HTTPException(status_code=502, detail="Failed to generate audio")
    return Response(content=audio, media_type="audio/mpeg")


# For local dev convenience:
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )

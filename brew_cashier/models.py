
# brew_cashier/models.py
"""
Pydantic models for the order data (items, receipts, orders) and for the
request/response payloads of the HTTP surface.

Order rows coming back from the remote store are loosely typed (items as a
JSON string, totals as text, free-form status strings), so `Order` decodes
them through validators that coerce or default each field.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


class OrderItem(BaseModel):
    """
    One line of a receipt. `unit_price` travels as "price" on the wire.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str
    size: Optional[str] = None
    milk: Optional[str] = None
    temperature: Optional[str] = None
    modifications: List[str] = Field(default_factory=list)
    shots: Optional[int] = None
    sweetness: Optional[str] = None
    ice: Optional[str] = None
    unit_price: float = Field(..., ge=0, alias="price")
    quantity: int = Field(1, ge=1)

    @field_validator("modifications", mode="before")
    @classmethod
    def _coerce_modifications(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    def details(self) -> List[str]:
        """Size, temperature, milk and modifications, in display order."""
        parts = [self.size, self.temperature, self.milk, *self.modifications]
        return [p for p in parts if p]


class Receipt(BaseModel):
    """
    Structured summary of a finalized order, as quoted by the agent.

    `total` is taken as-is; it is never recomputed from the item prices.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    items: List[OrderItem] = Field(..., min_length=1)
    total: float
    special_notes: Optional[str] = None


def _coerce_number(value: Any) -> Any:
    if isinstance(value, str):
        cleaned = value.strip().replace("$", "").replace(",", "")
        return float(cleaned)
    return value


class Order(BaseModel):
    """
    A persisted order record.

    Wire keys follow the store's columns: `order_id`, `timestamp`, `items`,
    `total`, `status`, `customer_name`, `special_notes`.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    order_id: str
    created_at: datetime = Field(..., alias="timestamp")
    items: List[OrderItem]
    total: float
    status: OrderStatus = OrderStatus.PENDING
    customer_name: str = "Guest"
    special_notes: str = ""

    @field_validator("order_id", mode="before")
    @classmethod
    def _coerce_order_id(cls, value: Any) -> Any:
        if value is None:
            return value
        return str(value).strip()

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value: Any) -> Any:
        # The store may hand back the items column as an encoded string.
        if isinstance(value, str):
            return json.loads(value) if value.strip() else []
        return value

    @field_validator("created_at", mode="after")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Store timestamps without an offset are UTC.
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @field_validator("total", mode="before")
    @classmethod
    def _coerce_total(cls, value: Any) -> Any:
        return _coerce_number(value)

    @field_validator("status", mode="before")
    @classmethod
    def _normalize_status(cls, value: Any) -> Any:
        if isinstance(value, OrderStatus):
            return value
        raw = str(value or "").strip().lower().replace("_", "-").replace(" ", "-")
        try:
            return OrderStatus(raw)
        except ValueError:
            logger.warning("Unknown order status %r, defaulting to pending", value)
            return OrderStatus.PENDING

    @field_validator("customer_name", mode="before")
    @classmethod
    def _default_customer(cls, value: Any) -> Any:
        if value is None or not str(value).strip():
            return "Guest"
        return str(value)

    @field_validator("special_notes", mode="before")
    @classmethod
    def _default_notes(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    @classmethod
    def from_store_row(cls, row: Dict[str, Any]) -> "Order":
        """Decode one row of the store's `orders` array."""
        return cls.model_validate(row)

    def to_wire(self) -> Dict[str, Any]:
        """JSON-safe payload in the store's column naming."""
        return self.model_dump(mode="json", by_alias=True)

    @property
    def reference(self) -> str:
        """Short ticket reference shown to staff."""
        return self.order_id[-6:].upper()


# -----------------------------------------------------------------------------
# HTTP payloads
# -----------------------------------------------------------------------------
class StartSessionResponse(BaseModel):
    session_id: str
    greeting: str


class ChatRequest(BaseModel):
    """
    One customer message, typed or transcribed.
    """
    session_id: str = Field(..., description="Session id returned by POST /sessions")
    text: str = Field(..., description="Customer's message")


class ChatResponse(BaseModel):
    reply_text: str
    finalized: bool = False
    receipt: Optional[Receipt] = None
    order: Optional[Order] = None
    order_saved: Optional[bool] = None


class StatusUpdateRequest(BaseModel):
    status: OrderStatus


class SpeechRequest(BaseModel):
    text: str

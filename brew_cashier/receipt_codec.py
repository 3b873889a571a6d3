# brew_cashier/receipt_codec.py
"""
Receipt Codec

The agent closes an order by appending a delimited JSON block to its reply:

    ORDER_RECEIPT_START
    {"items": [...], "total": 6.25, "special_notes": "..."}
    ORDER_RECEIPT_END

- extract(): pull a Receipt out of the latest reply (None when absent/bad).
- strip():   text fit for display and speech (block + emphasis removed).
- render_block(): the inverse, used to show the agent the expected format.

Absence of a block is the normal mid-conversation case, so extract() never
raises.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Optional

from pydantic import ValidationError

from .models import Receipt

logger = logging.getLogger(__name__)

RECEIPT_START = "ORDER_RECEIPT_START"
RECEIPT_END = "ORDER_RECEIPT_END"

_BLOCK_BODY_RE = re.compile(
    rf"{RECEIPT_START}\s*(.*?)\s*{RECEIPT_END}", re.DOTALL
)
_BLOCK_RE = re.compile(rf"{RECEIPT_START}.*?{RECEIPT_END}", re.DOTALL)
_DANGLING_START_RE = re.compile(rf"{RECEIPT_START}.*\Z", re.DOTALL)
_CODE_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_EMPHASIS_RE = re.compile(r"[*_~`]")


def extract(reply_text: Optional[str]) -> Optional[Receipt]:
    """
    Return the Receipt in the reply's first receipt block, or None.
    """
    if not reply_text:
        return None

    bodies = _BLOCK_BODY_RE.findall(reply_text)
    if not bodies:
        return None
    if len(bodies) > 1:
        logger.warning(
            "Reply carried %d receipt blocks; using the first", len(bodies)
        )

    body = _CODE_FENCE_RE.sub("", bodies[0].strip())
    try:
        data = json.loads(body)
    except json.JSONDecodeError as exc:
        logger.warning("Receipt block is not valid JSON: %s", exc)
        return None

    try:
        return Receipt.model_validate(data)
    except ValidationError as exc:
        logger.warning(
            "Receipt block failed validation (%d errors)", exc.error_count()
        )
        return None


def strip(reply_text: Optional[str]) -> str:
    """
    Remove receipt blocks and emphasis markup, then trim.

    An unterminated block (reply cut off mid-receipt) is dropped through the
    end of the text. Applying strip() to its own output changes nothing.
    """
    if not reply_text:
        return ""
    text = _BLOCK_RE.sub("", reply_text)
    text = _DANGLING_START_RE.sub("", text)
    text = text.replace(RECEIPT_END, "")
    text = _EMPHASIS_RE.sub("", text)
    return text.strip()


def render_block(receipt: Receipt) -> str:
    """Serialize a Receipt into the delimited wire block."""
    body = json.dumps(
        receipt.model_dump(mode="json", by_alias=True, exclude_none=True),
        indent=2,
    )
    return f"{RECEIPT_START}\n{body}\n{RECEIPT_END}"

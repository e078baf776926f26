"""
Pydantic request/response schemas for the Remit API.

Amounts are serialised as strings to avoid JSON float precision loss.
Timestamps are ISO-8601 UTC strings.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel


# ── Helpers ───────────────────────────────────────────────────────────────────

def _dt(dt: datetime | None) -> str | None:
    """Convert datetime | None → ISO-8601 UTC string or None."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def _dec(d: Decimal | float | None) -> str:
    """Convert Decimal | float | None → str."""
    if d is None:
        return "0"
    return str(d)


# ── Tool schemas ──────────────────────────────────────────────────────────────

class ToolInfo(BaseModel):
    name: str
    description: str
    required: list[str] = []
    optional: list[str] = []
    widget: Optional[str] = None


class ToolCallResponse(BaseModel):
    summary: str
    payload: dict[str, Any] = {}
    widget: Optional[str] = None
    is_error: bool = False


# ── Transfer schemas ──────────────────────────────────────────────────────────

class TransferSummary(BaseModel):
    id: str
    recipient_name: str
    recipient_country: str
    source_amount: str
    source_currency: str
    target_amount: str
    target_currency: str
    status: str
    is_real_transfer: bool
    created_at: str | None


class TransferDetail(TransferSummary):
    provider_transfer_id: str | None = None
    fee_amount: str
    net_amount: str
    exchange_rate: str
    delivery_time_label: str
    estimated_arrival: str | None
    stage: str
    fallback_note: str | None = None

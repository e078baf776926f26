"""
Transfers router — GET /transfers and GET /transfers/{id}
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Request

from api.schemas import TransferDetail, TransferSummary, _dec, _dt
from models.errors import NotFound

router = APIRouter(prefix="/transfers", tags=["transfers"])


def _to_summary(t) -> TransferSummary:
    return TransferSummary(
        id=t.id,
        recipient_name=t.recipient_name,
        recipient_country=t.recipient_country,
        source_amount=_dec(t.source_amount),
        source_currency=t.source_currency,
        target_amount=_dec(t.target_amount),
        target_currency=t.target_currency,
        status=t.status.value,
        is_real_transfer=t.is_real_transfer,
        created_at=_dt(t.created_at),
    )


def _to_detail(t) -> TransferDetail:
    return TransferDetail(
        **_to_summary(t).model_dump(),
        provider_transfer_id=t.provider_transfer_id,
        fee_amount=_dec(t.fee_amount),
        net_amount=_dec(t.net_amount),
        exchange_rate=_dec(t.exchange_rate),
        delivery_time_label=t.delivery_time_label,
        estimated_arrival=_dt(t.estimated_arrival),
        stage=t.stage.value,
        fallback_note=t.fallback_note,
    )


@router.get("", response_model=list[TransferSummary])
async def list_transfers(
    request: Request,
    status: str | None = None,
    recipient: str | None = None,
    limit: int = 50,
) -> list[TransferSummary]:
    orch = request.app.state.orchestrator
    return [_to_summary(t) for t in orch.history(limit=limit, status=status, recipient_name=recipient)]


@router.get("/{transfer_id}", response_model=TransferDetail)
async def get_transfer(transfer_id: str, request: Request) -> TransferDetail:
    orch = request.app.state.orchestrator
    try:
        t = orch.get_transfer(transfer_id)
    except NotFound as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return _to_detail(t)

"""
TransferOrchestrator — validates, prices, submits and tracks transfers.

submit_transfer() sequence:
  1. Validate amount (> 0, ≤ per-transaction limit) and recipient name.
  2. Resolve the corridor (unsupported → UnsupportedCorridor with the list).
  3. Reserve the transfer id before any await, so ids stay unique under
     concurrent submissions.
  4. Rate snapshot (missing corridor currency → RateUnavailable).
  5. Fee + breakdown.
  6. Provider path, when a provider is configured:
        quote → recipient → transfer (fresh idempotency key) → funding
     quote/recipient/transfer failure → abandon, go to 7 with a fallback note.
     funding failure                   → keep, status awaiting_funding
                                          (note set unless it was a permission refusal).
  7. Simulated path: status pending, arrival = now + corridor delivery time.
  8. Persist and return with the breakdown and the stage trail.

Stage machine:
    DRAFT → VALIDATING → QUOTED → RECIPIENT_CREATED → SUBMITTED → FUNDED
                    │                                          └→ AWAITING_FUNDING
                    └→ SIMULATED  (no provider, or any step before funding failed)

Status after creation only moves forward along pending → processing →
completed, at most one step per check_status() call.
"""

from __future__ import annotations

import logging
import random
import uuid
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, TYPE_CHECKING

from config.settings import settings as default_settings
from engine.provider import FailureKind, ProviderFailure
from engine.recipient_mapper import RecipientFieldMapper
from models.domain import (
    Corridor,
    OrchestrationStage,
    Quote,
    STATUS_SEQUENCE,
    StatusCheck,
    Transfer,
    TransferResult,
    TransferStatus,
)
from models.errors import NotFound, RateUnavailable, UnsupportedCorridor, ValidationFailed
from services.corridor_registry import CorridorRegistry
from services.fee_calculator import FeeConfig, build_breakdown, validate_amount
from services.rate_comparison import ComparisonRow, compare
from services.rate_provider import rate_for

if TYPE_CHECKING:
    from config.settings import Settings
    from engine.provider import PaymentProvider, ProviderTransfer
    from engine.store import InMemoryRecipientStore, InMemoryTransferStore
    from models.domain import ExchangeRateSnapshot, FeeBreakdown
    from services.rate_provider import RateProvider

logger = logging.getLogger("remit.engine.orchestrator")

# Provider status → our lifecycle. Anything else leaves the status untouched.
PROVIDER_STATUS_MAP: dict[str, TransferStatus] = {
    "incoming_payment_waiting":   TransferStatus.PENDING,
    "incoming_payment_initiated": TransferStatus.PENDING,
    "processing":                 TransferStatus.PROCESSING,
    "funds_converted":            TransferStatus.PROCESSING,
    "outgoing_payment_sent":      TransferStatus.COMPLETED,
}

_HISTORY_HINT   = "Use get_transfer_history to see your transfers."
_RECIPIENT_HINT = "Use list_recipients to see saved recipients."


class _ProviderOutcome:
    """What the provider path produced when it got as far as creating a transfer."""

    __slots__ = ("transfer_id", "rate", "status", "stage", "estimated_arrival", "note", "idempotency_key")

    def __init__(self, transfer_id, rate, status, stage, estimated_arrival, note, idempotency_key):
        self.transfer_id       = transfer_id
        self.rate              = rate
        self.status            = status
        self.stage             = stage
        self.estimated_arrival = estimated_arrival
        self.note              = note
        self.idempotency_key   = idempotency_key


class TransferOrchestrator:
    """
    Core state machine. All collaborators are injected; `provider=None` means
    real-provider mode is off and every transfer takes the simulated path.
    """

    def __init__(
        self,
        rates: "RateProvider",
        transfers: "InMemoryTransferStore",
        recipients: "InMemoryRecipientStore | None" = None,
        provider: "PaymentProvider | None" = None,
        corridors: CorridorRegistry | None = None,
        mapper: RecipientFieldMapper | None = None,
        config: "Settings | None" = None,
        rng: random.Random | None = None,
    ) -> None:
        self._rates      = rates
        self._transfers  = transfers
        self._recipients = recipients
        self._provider   = provider
        self._corridors  = corridors or CorridorRegistry()
        self._mapper     = mapper or RecipientFieldMapper()
        self._cfg        = config or default_settings
        self._rng        = rng or random.Random()
        self._fees       = FeeConfig.from_settings(self._cfg)

    # ── Config helpers ─────────────────────────────────────────────────────────

    @property
    def source_currency(self) -> str:
        return self._cfg.source_currency.upper()

    @property
    def fee_config(self) -> FeeConfig:
        return self._fees

    @property
    def real_provider_mode(self) -> bool:
        return self._provider is not None

    @property
    def corridors(self) -> CorridorRegistry:
        return self._corridors

    # ── Validation ─────────────────────────────────────────────────────────────

    def _validate_amount(self, amount: Any) -> Decimal:
        return validate_amount(amount, self._cfg.per_transaction_limit, self.source_currency)

    def _resolve_corridor(self, country: str | None) -> Corridor:
        if not country or not str(country).strip():
            raise ValidationFailed("Missing required field: destination country")
        corridor = self._corridors.find_by_country(country)
        if corridor is None:
            raise UnsupportedCorridor(str(country), self._corridors.supported_countries())
        return corridor

    async def _rate(self, source: str, target: str) -> tuple[Decimal, "ExchangeRateSnapshot"]:
        snapshot = await self._rates.get_rates()
        rate = rate_for(snapshot, source, target)
        if rate is None:
            logger.warning("rate unavailable: %s→%s snapshot_source=%s", source, target, snapshot.source)
            raise RateUnavailable(source, target)
        return rate, snapshot

    # ── Quote / rates ─────────────────────────────────────────────────────────

    async def quote(self, amount: Any, destination_country: str) -> Quote:
        """Price a transfer without creating anything."""
        value    = self._validate_amount(amount)
        corridor = self._resolve_corridor(destination_country)
        rate, snapshot = await self._rate(self.source_currency, corridor.currency_code)
        breakdown = build_breakdown(
            value, rate, self._fees, self.source_currency, corridor.currency_code,
        )
        return Quote(corridor, breakdown, rates_as_of=snapshot.as_of, rates_source=snapshot.source)

    async def exchange_rate(self, source: str, target: str) -> tuple[Decimal, "ExchangeRateSnapshot"]:
        if not source or not target:
            raise ValidationFailed("Missing required field: from_currency and to_currency")
        return await self._rate(source.upper(), target.upper())

    async def compare_rates(self, amount: Any, destination_country: str) -> tuple[Quote, list[ComparisonRow]]:
        quote = await self.quote(amount, destination_country)
        return quote, compare(quote.breakdown)

    # ── Submit ────────────────────────────────────────────────────────────────

    async def submit_transfer(
        self,
        amount: Any,
        destination_country: str,
        recipient_name: str,
        *,
        recipient_details: dict[str, Any] | None = None,
    ) -> TransferResult:
        stages = [OrchestrationStage.DRAFT, OrchestrationStage.VALIDATING]

        value = self._validate_amount(amount)
        name  = recipient_name.strip() if isinstance(recipient_name, str) else ""
        if not name:
            raise ValidationFailed("Missing required field: recipient name")
        corridor = self._resolve_corridor(destination_country)

        # Reserve the id before the first suspension point
        transfer_id = self._transfers.next_id()
        source, target = self.source_currency, corridor.currency_code

        rate, _ = await self._rate(source, target)
        breakdown = build_breakdown(value, rate, self._fees, source, target)

        outcome: _ProviderOutcome | None = None
        note: str | None = None
        if self._provider is not None:
            result = await self._submit_to_provider(
                transfer_id, breakdown, corridor, name, recipient_details, stages,
            )
            if isinstance(result, ProviderFailure):
                note = result.describe()
                logger.warning(
                    "provider path abandoned, simulating: transfer=%s %s", transfer_id, note,
                )
            else:
                outcome = result

        now = datetime.now(timezone.utc)
        if outcome is not None:
            if outcome.rate != rate:
                breakdown = build_breakdown(value, outcome.rate, self._fees, source, target)
            transfer = self._build_transfer(
                transfer_id, breakdown, corridor, name,
                status=outcome.status,
                stage=outcome.stage,
                estimated_arrival=outcome.estimated_arrival or now + self._corridors.delivery_duration(corridor),
                is_real=True,
                provider_transfer_id=outcome.transfer_id,
                fallback_note=outcome.note,
                idempotency_key=outcome.idempotency_key,
            )
        else:
            stages.append(OrchestrationStage.SIMULATED)
            transfer = self._build_transfer(
                transfer_id, breakdown, corridor, name,
                status=TransferStatus.PENDING,
                stage=OrchestrationStage.SIMULATED,
                estimated_arrival=now + self._corridors.delivery_duration(corridor),
                is_real=False,
                fallback_note=note,
            )

        self._transfers.create(transfer)
        logger.info(
            "transfer created: id=%s amount=%s %s → %s %s real=%s status=%s",
            transfer.id, transfer.source_amount, source, transfer.target_amount, target,
            transfer.is_real_transfer, transfer.status.value,
        )
        return TransferResult(transfer, breakdown, stages)

    async def _submit_to_provider(
        self,
        transfer_id: str,
        breakdown: "FeeBreakdown",
        corridor: Corridor,
        recipient_name: str,
        recipient_details: dict[str, Any] | None,
        stages: list[OrchestrationStage],
    ) -> _ProviderOutcome | ProviderFailure:
        provider = self._provider

        quote = await provider.create_quote(
            source_currency=breakdown.source_currency,
            target_currency=breakdown.target_currency,
            source_amount=breakdown.base_amount,
        )
        if isinstance(quote, ProviderFailure):
            return quote
        stages.append(OrchestrationStage.QUOTED)

        mapped = self._mapper.map_recipient(
            corridor.currency_code, recipient_details, production=self._cfg.is_production,
        )
        if mapped.placeholders_used:
            logger.info(
                "sandbox placeholders used for transfer=%s fields=%s",
                transfer_id, ",".join(mapped.placeholders_used),
            )
        recipient = await provider.create_recipient(
            currency=corridor.currency_code,
            recipient_type=mapped.recipient_type,
            account_holder_name=recipient_name,
            details=mapped.details,
        )
        if isinstance(recipient, ProviderFailure):
            return recipient
        stages.append(OrchestrationStage.RECIPIENT_CREATED)

        idempotency_key = str(uuid.uuid4())
        created = await provider.create_transfer(
            recipient_id=recipient.recipient_id,
            quote_id=quote.quote_id,
            idempotency_key=idempotency_key,
            reference=self._cfg.wise_transfer_reference,
        )
        if isinstance(created, ProviderFailure):
            return created
        stages.append(OrchestrationStage.SUBMITTED)

        funding = await provider.fund_transfer(created.transfer_id)
        if isinstance(funding, ProviderFailure):
            stages.append(OrchestrationStage.AWAITING_FUNDING)
            if funding.kind == FailureKind.PERMISSION:
                logger.info(
                    "funding not permitted for operator token; transfer=%s provider_id=%s awaits funding",
                    transfer_id, created.transfer_id,
                )
                note = None
            else:
                logger.warning(
                    "funding failed: transfer=%s provider_id=%s %s",
                    transfer_id, created.transfer_id, funding.describe(),
                )
                note = funding.describe()
            return _ProviderOutcome(
                created.transfer_id, quote.rate, TransferStatus.AWAITING_FUNDING,
                OrchestrationStage.AWAITING_FUNDING, quote.estimated_delivery, note, idempotency_key,
            )

        stages.append(OrchestrationStage.FUNDED)
        return _ProviderOutcome(
            created.transfer_id, quote.rate, TransferStatus.PROCESSING,
            OrchestrationStage.FUNDED, quote.estimated_delivery, None, idempotency_key,
        )

    def _build_transfer(
        self,
        transfer_id: str,
        breakdown: "FeeBreakdown",
        corridor: Corridor,
        recipient_name: str,
        *,
        status: TransferStatus,
        stage: OrchestrationStage,
        estimated_arrival: datetime,
        is_real: bool,
        provider_transfer_id: str | None = None,
        fallback_note: str | None = None,
        idempotency_key: str | None = None,
    ) -> Transfer:
        return Transfer(
            id=transfer_id,
            source_currency=breakdown.source_currency,
            target_currency=breakdown.target_currency,
            source_amount=breakdown.base_amount,
            fee_amount=breakdown.fee_amount,
            net_amount=breakdown.net_amount,
            exchange_rate=breakdown.rate,
            target_amount=breakdown.final_amount,
            recipient_name=recipient_name,
            recipient_country=corridor.country,
            delivery_time_label=corridor.delivery_time_label,
            status=status,
            estimated_arrival=estimated_arrival,
            is_real_transfer=is_real,
            provider_transfer_id=provider_transfer_id,
            fallback_note=fallback_note,
            stage=stage,
            idempotency_key=idempotency_key,
        )

    # ── Saved recipients ──────────────────────────────────────────────────────

    async def send_to_recipient(self, recipient_id: str, amount: Any) -> TransferResult:
        """Submit to a saved recipient and roll the amount into its running totals."""
        if self._recipients is None:
            raise ValidationFailed("Saved recipients are not available")
        recipient = self._recipients.get(recipient_id)
        if recipient is None:
            raise NotFound("recipient", recipient_id, _RECIPIENT_HINT)

        result = await self.submit_transfer(
            amount, recipient.country, recipient.name, recipient_details=recipient.details,
        )
        if self._recipients.record_transfer(recipient.id, result.transfer.source_amount) is None:
            logger.info("recipient %s deleted during transfer %s; totals not updated",
                        recipient.id, result.transfer.id)
        return result

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def get_transfer(self, transfer_id: str) -> Transfer:
        transfer = self._transfers.get(transfer_id.strip() if isinstance(transfer_id, str) else "")
        if transfer is None:
            raise NotFound("transfer", transfer_id, _HISTORY_HINT)
        return transfer

    async def check_status(self, transfer_id: str) -> StatusCheck:
        transfer = self.get_transfer(transfer_id)
        previous = transfer.status

        observed = await self._observe(transfer)
        if observed is not None and observed.progress > previous.progress:
            next_status = STATUS_SEQUENCE[previous.progress + 1]
            self._transfers.advance_status(transfer.id, next_status)
            logger.info("transfer %s status %s → %s", transfer.id, previous.value, next_status.value)

        return StatusCheck(transfer, previous, transfer.status != previous)

    async def _observe(self, transfer: Transfer) -> TransferStatus | None:
        """Where the transfer appears to be now; None means no evidence of progress."""
        if transfer.status == TransferStatus.COMPLETED:
            return None

        if transfer.is_real_transfer:
            if self._provider is None or not transfer.provider_transfer_id:
                return None
            result = await self._provider.get_transfer(transfer.provider_transfer_id)
            if isinstance(result, ProviderFailure):
                logger.warning("status probe failed for %s: %s", transfer.id, result.describe())
                return None
            mapped = PROVIDER_STATUS_MAP.get(result.status.lower())
            if mapped is None:
                logger.warning("unmapped provider status %r for %s", result.status, transfer.id)
            return mapped

        # Awaiting funding needs an operator action, not time
        if transfer.status == TransferStatus.AWAITING_FUNDING:
            return None
        if self._rng.random() < self._cfg.status_advance_probability:
            return STATUS_SEQUENCE[transfer.status.progress + 1]
        return None

    # ── Repeat / history ──────────────────────────────────────────────────────

    def _latest_for(self, recipient_name: str | None) -> Transfer | None:
        query = recipient_name.strip().lower() if isinstance(recipient_name, str) else ""
        for transfer in reversed(self._transfers.list_all()):
            if not query or query in transfer.recipient_name.lower():
                return transfer
        return None

    async def repeat_transfer(self, recipient_name: str | None = None) -> TransferResult:
        """
        Re-send the latest transfer (optionally the latest to a matching recipient).

        Uses the current rate but the original amount and fee, and completes
        immediately with no pending phase.
        """
        original = self._latest_for(recipient_name)
        if original is None:
            key = recipient_name.strip() if isinstance(recipient_name, str) and recipient_name.strip() else "previous transfer"
            raise NotFound("transfer", key, "Send a transfer first or check get_transfer_history.")

        transfer_id = self._transfers.next_id()
        rate, _ = await self._rate(original.source_currency, original.target_currency)
        breakdown = build_breakdown(
            original.source_amount, rate, self._fees,
            original.source_currency, original.target_currency,
            fee=original.fee_amount,
        )
        now = datetime.now(timezone.utc)
        transfer = Transfer(
            id=transfer_id,
            source_currency=original.source_currency,
            target_currency=original.target_currency,
            source_amount=breakdown.base_amount,
            fee_amount=breakdown.fee_amount,
            net_amount=breakdown.net_amount,
            exchange_rate=breakdown.rate,
            target_amount=breakdown.final_amount,
            recipient_name=original.recipient_name,
            recipient_country=original.recipient_country,
            delivery_time_label=original.delivery_time_label,
            status=TransferStatus.COMPLETED,
            estimated_arrival=now,
            stage=OrchestrationStage.SIMULATED,
            created_at=now,
        )
        self._transfers.create(transfer)
        logger.info("transfer %s repeated as %s at rate %s", original.id, transfer.id, rate)
        return TransferResult(
            transfer, breakdown,
            [OrchestrationStage.DRAFT, OrchestrationStage.VALIDATING, OrchestrationStage.SIMULATED],
        )

    def history(
        self,
        limit: int | None = 10,
        status: str | None = None,
        recipient_name: str | None = None,
    ) -> list[Transfer]:
        """Newest first, optionally filtered by status and recipient substring."""
        items = list(reversed(self._transfers.list_all()))
        if status:
            items = [t for t in items if t.status.value == status.strip().lower()]
        if recipient_name:
            query = recipient_name.strip().lower()
            items = [t for t in items if query in t.recipient_name.lower()]
        return items if limit is None else items[:max(0, limit)]

    def all_transfers(self) -> list[Transfer]:
        return self._transfers.list_all()

    async def provider_transfers(self, limit: int = 10) -> list["ProviderTransfer"]:
        """Latest transfers on the provider profile; empty without a provider or when the listing fails."""
        if self._provider is None:
            return []
        result = await self._provider.list_transfers(limit)
        if isinstance(result, ProviderFailure):
            logger.warning("provider transfer listing failed: %s", result.describe())
            return []
        return result

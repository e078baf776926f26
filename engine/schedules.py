"""
ScheduleManager — recurring transfer definitions.

The engine only records the definition and computes execution dates; an
external scheduler consumes `next_execution_at` and performs the transfers.

Lifecycle: active → cancelled (terminal). Cancelling twice is a validation
error so the caller learns the schedule was already stopped.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, TYPE_CHECKING

from config.settings import UnknownFrequencyPolicy, settings as default_settings
from engine.store import InMemoryScheduleStore
from models.domain import ScheduledTransfer, ScheduleStatus
from models.errors import NotFound, UnsupportedCorridor, ValidationFailed
from services.corridor_registry import CorridorRegistry
from services.fee_calculator import validate_amount
from services.schedule_dates import next_dates, parse_frequency, parse_start, step

if TYPE_CHECKING:
    from config.settings import Settings

logger = logging.getLogger("remit.engine.schedules")

_HINT = "Use list_scheduled_transfers to see your schedules."


class ScheduleManager:

    def __init__(
        self,
        store: InMemoryScheduleStore,
        corridors: CorridorRegistry | None = None,
        config: "Settings | None" = None,
    ) -> None:
        self._store     = store
        self._corridors = corridors or CorridorRegistry()
        self._cfg       = config or default_settings

    @property
    def _policy(self) -> UnknownFrequencyPolicy:
        return UnknownFrequencyPolicy(self._cfg.unknown_frequency_policy)

    def create(
        self,
        recipient_name: str,
        recipient_country: str,
        amount: Any,
        frequency: str,
        start_date: str | datetime | None = None,
    ) -> ScheduledTransfer:
        name = recipient_name.strip() if isinstance(recipient_name, str) else ""
        if not name:
            raise ValidationFailed("Missing required field: recipient_name")
        if not frequency:
            raise ValidationFailed("Missing required field: frequency")
        if not isinstance(frequency, str):
            raise ValidationFailed(f"frequency must be a string, got {type(frequency).__name__}")

        value = validate_amount(amount, self._cfg.per_transaction_limit, self._cfg.source_currency.upper())

        corridor = self._corridors.find_by_country(recipient_country)
        if corridor is None:
            raise UnsupportedCorridor(str(recipient_country), self._corridors.supported_countries())

        freq = parse_frequency(frequency)
        if freq is None and self._policy == UnknownFrequencyPolicy.REJECT:
            raise ValidationFailed(
                f"Unknown frequency '{frequency}'. Use weekly, biweekly, monthly or quarterly."
            )

        if start_date:
            try:
                first = parse_start(start_date)
            except (TypeError, ValueError):
                raise ValidationFailed(f"start_date must be an ISO-8601 date, got '{start_date}'")
        else:
            now = datetime.now(timezone.utc)
            first = step(now, freq) if freq is not None else now

        schedule = ScheduledTransfer(
            id=self._store.next_id(),
            recipient_name=name,
            recipient_country=corridor.country,
            amount=value,
            currency_from=self._cfg.source_currency.upper(),
            currency_to=corridor.currency_code,
            frequency=freq.value if freq is not None else frequency.strip().lower(),
            next_execution_at=first,
        )
        self._store.create(schedule)
        logger.info(
            "schedule created: id=%s %s %s to %s next=%s",
            schedule.id, schedule.frequency, value, corridor.country, first.isoformat(),
        )
        return schedule

    def list(self, status: str | None = None) -> list[ScheduledTransfer]:
        items = self._store.list_all()
        if status:
            items = [s for s in items if s.status.value == status.strip().lower()]
        return items

    def get(self, schedule_id: str) -> ScheduledTransfer:
        schedule = self._store.get(schedule_id.strip() if isinstance(schedule_id, str) else "")
        if schedule is None:
            raise NotFound("schedule", schedule_id, _HINT)
        return schedule

    def cancel(self, schedule_id: str) -> ScheduledTransfer:
        schedule = self.get(schedule_id)
        if schedule.status == ScheduleStatus.CANCELLED:
            raise ValidationFailed(f"Schedule {schedule.id} is already cancelled")
        self._store.cancel(schedule.id)
        logger.info("schedule cancelled: id=%s", schedule.id)
        return schedule

    def upcoming(self, schedule_id: str, count: int = 5) -> list[datetime]:
        """The next `count` execution dates, starting at next_execution_at."""
        schedule = self.get(schedule_id)
        if schedule.status == ScheduleStatus.CANCELLED:
            return []
        return next_dates(schedule.frequency, schedule.next_execution_at, count, self._policy)

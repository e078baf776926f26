"""
In-memory keyed stores for transfers, recipients and schedules.

Each store owns an IdAllocator producing human-readable, monotonically
increasing ids ("TXN-1000", "RCP-1", "SCH-1"). Allocation is synchronous and
lock-protected, so an orchestration reserves its id before its first await
and two concurrent submissions can never share one.

A database-backed implementation would keep the same method surface and back
the allocator with a sequence.
"""

from __future__ import annotations

import itertools
import threading
from datetime import datetime, timezone
from decimal import Decimal

from models.domain import (
    Recipient,
    ScheduledTransfer,
    ScheduleStatus,
    Transfer,
    TransferStatus,
)


class IdAllocator:
    """Thread-safe `{prefix}{n}` generator."""

    def __init__(self, prefix: str, start: int = 1) -> None:
        self.prefix   = prefix
        self._counter = itertools.count(start)
        self._lock    = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            return f"{self.prefix}{next(self._counter)}"


class StatusRegression(ValueError):
    """advance_status() asked to move a transfer backwards."""


# ── Transfers ─────────────────────────────────────────────────────────────────


class InMemoryTransferStore:
    """Append-only: transfers are never deleted, only their status advances."""

    def __init__(self, allocator: IdAllocator | None = None) -> None:
        self._ids   = allocator or IdAllocator("TXN-", 1000)
        self._by_id: dict[str, Transfer] = {}

    def next_id(self) -> str:
        return self._ids.next_id()

    def create(self, transfer: Transfer) -> Transfer:
        if transfer.id in self._by_id:
            raise ValueError(f"transfer {transfer.id} already exists")
        self._by_id[transfer.id] = transfer
        return transfer

    def get(self, transfer_id: str) -> Transfer | None:
        return self._by_id.get(transfer_id)

    def list_all(self) -> list[Transfer]:
        return list(self._by_id.values())

    def advance_status(self, transfer_id: str, status: TransferStatus) -> Transfer:
        transfer = self._by_id[transfer_id]
        if status.progress < transfer.status.progress:
            raise StatusRegression(
                f"{transfer_id}: {transfer.status.value} → {status.value} would regress"
            )
        transfer.status = status
        return transfer


# ── Recipients ────────────────────────────────────────────────────────────────


class InMemoryRecipientStore:

    def __init__(self, allocator: IdAllocator | None = None) -> None:
        self._ids   = allocator or IdAllocator("RCP-")
        self._by_id: dict[str, Recipient] = {}

    def next_id(self) -> str:
        return self._ids.next_id()

    def create(self, recipient: Recipient) -> Recipient:
        self._by_id[recipient.id] = recipient
        return recipient

    def get(self, recipient_id: str) -> Recipient | None:
        return self._by_id.get(recipient_id)

    def list_all(self) -> list[Recipient]:
        return list(self._by_id.values())

    def find(self, name: str, country: str) -> Recipient | None:
        name, country = name.strip().lower(), country.strip().lower()
        for r in self._by_id.values():
            if r.name.lower() == name and r.country.lower() == country:
                return r
        return None

    def delete(self, recipient_id: str) -> bool:
        return self._by_id.pop(recipient_id, None) is not None

    def record_transfer(self, recipient_id: str, amount: Decimal) -> Recipient | None:
        """Bump running totals; None if the recipient was deleted meanwhile."""
        recipient = self._by_id.get(recipient_id)
        if recipient is None:
            return None
        recipient.total_sent     += amount
        recipient.transfer_count += 1
        return recipient


# ── Schedules ─────────────────────────────────────────────────────────────────


class InMemoryScheduleStore:

    def __init__(self, allocator: IdAllocator | None = None) -> None:
        self._ids   = allocator or IdAllocator("SCH-")
        self._by_id: dict[str, ScheduledTransfer] = {}

    def next_id(self) -> str:
        return self._ids.next_id()

    def create(self, schedule: ScheduledTransfer) -> ScheduledTransfer:
        self._by_id[schedule.id] = schedule
        return schedule

    def get(self, schedule_id: str) -> ScheduledTransfer | None:
        return self._by_id.get(schedule_id)

    def list_all(self) -> list[ScheduledTransfer]:
        return list(self._by_id.values())

    def cancel(self, schedule_id: str) -> ScheduledTransfer:
        schedule = self._by_id[schedule_id]
        schedule.status       = ScheduleStatus.CANCELLED
        schedule.cancelled_at = datetime.now(timezone.utc)
        return schedule

"""
Domain model contracts: status progression, payload serialisation, error taxonomy.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from models.domain import (
    STATUS_SEQUENCE,
    OrchestrationStage,
    Recipient,
    ScheduledTransfer,
    Transfer,
    TransferStatus,
)
from models.errors import (
    NotFound,
    RateUnavailable,
    TransferError,
    UnsupportedCorridor,
    ValidationFailed,
)


# ── helpers ───────────────────────────────────────────────────────────────────

def _transfer(**overrides) -> Transfer:
    defaults = dict(
        id="TXN-1000",
        source_currency="USD",
        target_currency="MXN",
        source_amount=Decimal("200"),
        fee_amount=Decimal("3.00"),
        net_amount=Decimal("197.00"),
        exchange_rate=Decimal("17.5"),
        target_amount=Decimal("3447.500"),
        recipient_name="Maria Garcia",
        recipient_country="Mexico",
        delivery_time_label="Minutes",
        status=TransferStatus.PENDING,
        estimated_arrival=datetime(2026, 3, 2, 10, 15, tzinfo=timezone.utc),
    )
    defaults.update(overrides)
    return Transfer(**defaults)


class TestTransferStatus:

    def test_progress_indices(self):
        assert TransferStatus.PENDING.progress == 0
        assert TransferStatus.AWAITING_FUNDING.progress == 0
        assert TransferStatus.PROCESSING.progress == 1
        assert TransferStatus.COMPLETED.progress == 2

    def test_sequence_matches_progress(self):
        assert [s.progress for s in STATUS_SEQUENCE] == [0, 1, 2]

    def test_str_enum_value(self):
        assert TransferStatus("awaiting_funding") is TransferStatus.AWAITING_FUNDING


class TestPayloads:

    def test_transfer_payload_stringifies_money(self):
        payload = _transfer().to_payload()
        assert payload["source_amount"] == "200"
        assert payload["target_amount"] == "3447.500"
        assert payload["status"] == "pending"
        assert payload["stage"] == OrchestrationStage.SIMULATED.value
        assert payload["is_real_transfer"] is False
        assert payload["estimated_arrival"] == "2026-03-02T10:15:00+00:00"

    def test_created_at_is_tz_aware(self):
        assert _transfer().created_at.tzinfo is not None

    def test_recipient_payload_hides_details(self):
        r = Recipient(id="RCP-1", name="Ana", country="Mexico", currency_code="MXN",
                      details={"clabe": "032180000118359719"})
        payload = r.to_payload()
        assert "details" not in payload
        assert payload["total_sent"] == "0"

    def test_schedule_payload_cancelled_at_null(self):
        s = ScheduledTransfer(
            id="SCH-1", recipient_name="Ana", recipient_country="Mexico",
            amount=Decimal("100"), currency_from="USD", currency_to="MXN",
            frequency="monthly", next_execution_at=datetime(2026, 4, 1, tzinfo=timezone.utc),
        )
        payload = s.to_payload()
        assert payload["status"] == "active"
        assert payload["cancelled_at"] is None


class TestErrors:

    def test_hierarchy(self):
        assert issubclass(UnsupportedCorridor, ValidationFailed)
        for cls in (ValidationFailed, RateUnavailable, NotFound):
            assert issubclass(cls, TransferError)

    def test_unsupported_corridor_lists_countries(self):
        exc = UnsupportedCorridor("Atlantis", ["Mexico", "India"])
        payload = exc.to_payload()
        assert payload["kind"] == "unsupported_corridor"
        assert payload["supported_countries"] == ["Mexico", "India"]
        assert "Mexico, India" in exc.message

    def test_not_found_message_guides_to_listing(self):
        exc = NotFound("transfer", "TXN-9", "Use get_transfer_history to see your transfers.")
        assert exc.message == "Transfer TXN-9 not found. Use get_transfer_history to see your transfers."
        assert exc.to_payload()["entity"] == "transfer"

    def test_rate_unavailable_message(self):
        with pytest.raises(TransferError, match="USD to XYZ"):
            raise RateUnavailable("USD", "XYZ")

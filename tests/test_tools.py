"""
TransferTools — named tool dispatch and structured responses.
"""
from __future__ import annotations

import random
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from api.app import build_services
from config.settings import Settings
from engine.provider import FailureKind, MockPaymentProvider
from engine.tools import TOOL_SPECS
from models.domain import ExchangeRateSnapshot

RATES = {"USD": "1", "MXN": "17.5", "GTQ": "7.8", "INR": "83", "GBP": "0.8"}


async def _fetch(base: str) -> ExchangeRateSnapshot:
    return ExchangeRateSnapshot(
        base_currency=base,
        rates={k: Decimal(v) for k, v in RATES.items()},
        fetched_at=datetime.now(timezone.utc),
        as_of="2026-03-02",
    )


def _make_tools(provider=None, seed: int = 7):
    services = build_services(
        Settings(_env_file=None), provider=provider, fetcher=_fetch, rng=random.Random(seed),
    )
    return services.tools


class TestDispatch:

    def test_every_named_tool_registered(self):
        assert set(TOOL_SPECS) == {
            "send_money", "get_quote", "get_exchange_rate", "check_transfer_status",
            "get_transfer_history", "list_supported_countries", "save_recipient",
            "list_recipients", "delete_recipient", "send_to_recipient",
            "create_scheduled_transfer", "list_scheduled_transfers",
            "cancel_scheduled_transfer", "repeat_transfer", "compare_rates", "get_analytics",
        }

    async def test_unknown_tool(self):
        response = await _make_tools().call("launch_rocket", {})
        assert response.is_error
        assert response.payload["error"]["kind"] == "unknown_tool"

    @pytest.mark.parametrize("name,args,missing", [
        ("send_money", {"amount": 100, "recipient_country": "Mexico"}, "recipient_name"),
        ("get_exchange_rate", {"from_currency": "USD"}, "to_currency"),
        ("check_transfer_status", {}, "transfer_id"),
        ("cancel_scheduled_transfer", {"schedule_id": "  "}, "schedule_id"),
    ])
    async def test_missing_required_argument(self, name, args, missing):
        response = await _make_tools().call(name, args)
        assert response.is_error
        assert response.payload["error"]["kind"] == "validation"
        assert response.summary == f"Missing required field: {missing}"

    @pytest.mark.parametrize("name,args,field", [
        ("send_money", {"amount": 100, "recipient_name": 123, "recipient_country": "Mexico"}, "recipient_name"),
        ("get_quote", {"amount": 100, "recipient_country": 42}, "recipient_country"),
        ("get_exchange_rate", {"from_currency": 1, "to_currency": "MXN"}, "from_currency"),
        ("delete_recipient", {"recipient_id": 7}, "recipient_id"),
        ("create_scheduled_transfer", {
            "recipient_name": "Maria", "recipient_country": "Mexico", "amount": 100, "frequency": 7,
        }, "frequency"),
        ("create_scheduled_transfer", {
            "recipient_name": "Maria", "recipient_country": "Mexico", "amount": 100,
            "frequency": "weekly", "start_date": 5,
        }, "start_date"),
        ("save_recipient", {"name": "Maria", "country": "Mexico", "details": ["clabe"]}, "details"),
    ])
    async def test_wrong_argument_type_is_rejected(self, name, args, field):
        response = await _make_tools().call(name, args)
        assert response.is_error
        assert response.payload["error"]["kind"] == "validation"
        assert response.summary.startswith(f"{field} must be")

    async def test_send_money_numeric_source_currency(self):
        response = await _make_tools().call("send_money", {
            "from_currency": 1, "amount": 100, "recipient_name": "Maria", "recipient_country": "Mexico",
        })
        assert response.payload["error"]["kind"] == "validation"


class TestTransferTools:

    async def test_send_money_receipt(self):
        response = await _make_tools().call("send_money", {
            "amount": 200, "recipient_name": "Maria Garcia", "recipient_country": "Mexico",
        })
        assert not response.is_error
        assert response.widget == "transfer-receipt"
        assert response.summary == (
            "Transfer created! Maria Garcia will receive 3447.50 MXN. Fee: 3.00 USD. ID: TXN-1000"
        )
        assert response.payload["transfer"]["status"] == "pending"
        assert response.payload["breakdown"]["fee_percentage"] == "1.5"
        assert response.payload["stages"][-1] == "simulated"

    async def test_send_money_rejects_other_source_currency(self):
        response = await _make_tools().call("send_money", {
            "from_currency": "EUR", "amount": 200, "recipient_name": "Maria", "recipient_country": "Mexico",
        })
        assert response.is_error
        assert response.payload["error"]["kind"] == "validation"

    async def test_unsupported_corridor_error_payload(self):
        response = await _make_tools().call("send_money", {
            "amount": 200, "recipient_name": "Maria", "recipient_country": "Atlantis",
        })
        assert response.is_error
        assert response.payload["error"]["kind"] == "unsupported_corridor"
        assert "Mexico" in response.payload["error"]["supported_countries"]

    async def test_fallback_note_in_summary(self):
        provider = MockPaymentProvider()
        provider.fail("quote", FailureKind.NETWORK, "ConnectError", None)
        response = await _make_tools(provider).call("send_money", {
            "amount": 200, "recipient_name": "Maria", "recipient_country": "Mexico",
        })
        assert "quote failed (network)" in response.summary
        assert response.payload["transfer"]["is_real_transfer"] is False

    async def test_quote_and_rate(self):
        tools = _make_tools()
        quote = await tools.call("get_quote", {"amount": 1000, "recipient_country": "India"})
        rate = await tools.call("get_exchange_rate", {"from_currency": "usd", "to_currency": "gtq"})

        assert quote.payload["breakdown"]["fee_amount"] == "15.00"
        assert quote.payload["rates_as_of"] == "2026-03-02"
        assert rate.summary == "Current rate: 1 USD = 7.8000 GTQ"
        assert rate.widget == "exchange-rate-card"

    async def test_rate_unavailable(self):
        response = await _make_tools().call("get_exchange_rate", {"from_currency": "USD", "to_currency": "XYZ"})
        assert response.payload["error"]["kind"] == "rate_unavailable"

    async def test_status_and_history(self):
        tools = _make_tools()
        sent = await tools.call("send_money", {"amount": 100, "recipient_name": "Maria", "recipient_country": "Mexico"})
        tid = sent.payload["transfer"]["id"]

        status = await tools.call("check_transfer_status", {"transfer_id": tid})
        history = await tools.call("get_transfer_history", {"limit": "5"})

        assert status.payload["transfer"]["id"] == tid
        assert status.payload["previous_status"] == "pending"
        assert history.payload["count"] == 1

    async def test_status_unknown_transfer(self):
        response = await _make_tools().call("check_transfer_status", {"transfer_id": "TXN-1"})
        assert response.payload["error"]["kind"] == "not_found"
        assert "get_transfer_history" in response.summary

    async def test_history_bad_limit(self):
        response = await _make_tools().call("get_transfer_history", {"limit": "lots"})
        assert response.is_error

    async def test_repeat_transfer(self):
        tools = _make_tools()
        await tools.call("send_money", {"amount": 100, "recipient_name": "Maria", "recipient_country": "Mexico"})
        response = await tools.call("repeat_transfer", {})
        assert response.summary.startswith("Transfer repeated! Maria")
        assert response.payload["transfer"]["status"] == "completed"

    async def test_compare_rates(self):
        response = await _make_tools().call("compare_rates", {"amount": 500, "recipient_country": "Mexico"})
        assert response.widget == "rate-comparison"
        assert len(response.payload["comparison"]) == 2
        assert "more than the alternatives" in response.summary


class TestCatalogueAndBookTools:

    async def test_countries_by_region(self):
        tools = _make_tools()
        everything = await tools.call("list_supported_countries", {})
        asia = await tools.call("list_supported_countries", {"region": "Asia"})

        assert len(everything.payload["countries"]) == 18
        assert [c["country"] for c in asia.payload["countries"]] == ["Philippines", "India", "Vietnam"]

    async def test_recipient_lifecycle(self):
        tools = _make_tools()
        saved = await tools.call("save_recipient", {"name": "Maria", "country": "Mexico"})
        rid = saved.payload["recipient"]["id"]

        sent = await tools.call("send_to_recipient", {"recipient_id": rid, "amount": 100})
        listed = await tools.call("list_recipients", {})
        deleted = await tools.call("delete_recipient", {"recipient_id": rid})
        again = await tools.call("delete_recipient", {"recipient_id": rid})

        assert sent.payload["transfer"]["recipient_name"] == "Maria"
        assert listed.payload["recipients"][0]["transfer_count"] == 1
        assert deleted.payload["deleted"] is True
        assert again.payload["error"]["kind"] == "not_found"

    async def test_schedule_lifecycle(self):
        tools = _make_tools()
        created = await tools.call("create_scheduled_transfer", {
            "recipient_name": "Maria", "recipient_country": "Mexico", "amount": 150,
            "frequency": "weekly", "start_date": "2026-04-01T00:00:00Z",
        })
        sid = created.payload["schedule"]["id"]

        assert created.payload["upcoming"] == [
            "2026-04-01T00:00:00Z", "2026-04-08T00:00:00Z", "2026-04-15T00:00:00Z",
        ]
        cancelled = await tools.call("cancel_scheduled_transfer", {"schedule_id": sid})
        twice = await tools.call("cancel_scheduled_transfer", {"schedule_id": sid})
        listed = await tools.call("list_scheduled_transfers", {"status": "cancelled"})

        assert cancelled.payload["schedule"]["status"] == "cancelled"
        assert twice.is_error
        assert [s["id"] for s in listed.payload["schedules"]] == [sid]

    async def test_analytics(self):
        tools = _make_tools()
        await tools.call("send_money", {"amount": 1000, "recipient_name": "Maria", "recipient_country": "Mexico"})
        response = await tools.call("get_analytics", {})

        assert response.widget == "analytics-dashboard"
        assert response.payload["total_transfers"] == 1
        assert response.payload["daily_limit"]["remaining"] == "9000.0"


class TestProviderHistory:

    async def test_history_without_provider_view(self):
        tools = _make_tools(MockPaymentProvider())
        await tools.call("send_money", {"amount": 100, "recipient_name": "Maria", "recipient_country": "Mexico"})
        response = await tools.call("get_transfer_history", {})
        assert "provider_transfers" not in response.payload

    async def test_history_includes_provider_transfers(self):
        tools = _make_tools(MockPaymentProvider())
        sent = await tools.call("send_money", {
            "amount": 100, "recipient_name": "Maria", "recipient_country": "Mexico",
        })
        response = await tools.call("get_transfer_history", {"include_provider": True})

        assert response.payload["provider_transfers"] == [
            {"transfer_id": sent.payload["transfer"]["provider_transfer_id"], "status": "processing"},
        ]

    async def test_provider_view_empty_when_simulated(self):
        response = await _make_tools().call("get_transfer_history", {"include_provider": True})
        assert response.payload["provider_transfers"] == []

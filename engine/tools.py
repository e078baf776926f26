"""
TransferTools — one operation per named conversational tool.

Each tool takes a plain argument dict (however it arrived) and returns a
ToolResponse:
    summary   human-readable sentence for the agent to relay
    payload   structured data mirroring the relevant entity
    widget    which display widget renders the payload
    is_error  True when the operation was rejected

Required arguments and argument types are checked here. Every TransferError
is converted into an error response carrying `payload["error"]`; nothing
propagates to the transport.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, TYPE_CHECKING

from engine.analytics import summarize
from models.errors import TransferError, ValidationFailed
from services.schedule_dates import format_utc

if TYPE_CHECKING:
    from config.settings import Settings
    from engine.orchestrator import TransferOrchestrator
    from engine.recipients import RecipientBook
    from engine.schedules import ScheduleManager
    from models.domain import TransferResult

logger = logging.getLogger("remit.engine.tools")


@dataclass
class ToolResponse:
    summary: str
    payload: dict[str, Any] = field(default_factory=dict)
    widget: str | None = None
    is_error: bool = False

    def to_payload(self) -> dict:
        return {
            "summary":  self.summary,
            "payload":  self.payload,
            "widget":   self.widget,
            "is_error": self.is_error,
        }


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    required: tuple[str, ...] = ()
    optional: tuple[str, ...] = ()
    widget: str | None = None

    def to_payload(self) -> dict:
        return {
            "name":        self.name,
            "description": self.description,
            "required":    list(self.required),
            "optional":    list(self.optional),
            "widget":      self.widget,
        }


TOOL_SPECS: dict[str, ToolSpec] = {spec.name: spec for spec in (
    ToolSpec("send_money", "Send money internationally at the current exchange rate",
             ("amount", "recipient_name", "recipient_country"), ("from_currency", "recipient_details"), "transfer-receipt"),
    ToolSpec("get_quote", "Price a transfer without sending it",
             ("amount", "recipient_country"), (), "transfer-quote"),
    ToolSpec("get_exchange_rate", "Current exchange rate between two currencies",
             ("from_currency", "to_currency"), (), "exchange-rate-card"),
    ToolSpec("check_transfer_status", "Check and advance the status of a transfer",
             ("transfer_id",), (), "transfer-status"),
    ToolSpec("get_transfer_history", "Recent transfers, newest first",
             (), ("limit", "status", "recipient_name", "include_provider"), "transfer-history"),
    ToolSpec("list_supported_countries", "Destination countries, currencies and delivery times",
             (), ("region",), "country-list"),
    ToolSpec("save_recipient", "Save a recipient for future transfers",
             ("name", "country"), ("details",), "recipient-list"),
    ToolSpec("list_recipients", "Saved recipients",
             (), (), "recipient-list"),
    ToolSpec("delete_recipient", "Delete a saved recipient",
             ("recipient_id",), (), "recipient-list"),
    ToolSpec("send_to_recipient", "Send money to a saved recipient",
             ("recipient_id", "amount"), (), "transfer-receipt"),
    ToolSpec("create_scheduled_transfer", "Set up a recurring transfer",
             ("recipient_name", "recipient_country", "amount", "frequency"), ("start_date",), "schedule-list"),
    ToolSpec("list_scheduled_transfers", "Recurring transfers",
             (), ("status",), "schedule-list"),
    ToolSpec("cancel_scheduled_transfer", "Stop a recurring transfer",
             ("schedule_id",), (), "schedule-list"),
    ToolSpec("repeat_transfer", "Send the latest transfer again at today's rate",
             (), ("recipient_name",), "transfer-receipt"),
    ToolSpec("compare_rates", "Compare our price against a bank wire and a cash agent",
             ("amount", "recipient_country"), (), "rate-comparison"),
    ToolSpec("get_analytics", "Transfer statistics and limit usage",
             (), (), "analytics-dashboard"),
)}

_TEXT_ARGS = frozenset({
    "recipient_name", "recipient_country", "from_currency", "to_currency", "transfer_id",
    "recipient_id", "schedule_id", "frequency", "start_date", "name", "country", "region", "status",
})
_MAPPING_ARGS = frozenset({"recipient_details", "details"})


def _require(args: dict[str, Any], names: tuple[str, ...]) -> None:
    for name in names:
        value = args.get(name)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationFailed(f"Missing required field: {name}")


def _check_types(args: dict[str, Any], names: tuple[str, ...]) -> None:
    """Text and mapping arguments must arrive with the right JSON type."""
    for name in names:
        value = args.get(name)
        if value is None:
            continue
        if name in _TEXT_ARGS and not isinstance(value, str):
            raise ValidationFailed(f"{name} must be a string, got {type(value).__name__}")
        if name in _MAPPING_ARGS and not isinstance(value, dict):
            raise ValidationFailed(f"{name} must be an object, got {type(value).__name__}")


def _int_arg(args: dict[str, Any], name: str, default: int) -> int:
    value = args.get(name)
    if value in (None, ""):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationFailed(f"{name} must be an integer, got '{value}'")


class TransferTools:

    def __init__(
        self,
        orchestrator: "TransferOrchestrator",
        recipients: "RecipientBook",
        schedules: "ScheduleManager",
        config: "Settings",
    ) -> None:
        self._orch       = orchestrator
        self._recipients = recipients
        self._schedules  = schedules
        self._cfg        = config
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[ToolResponse]]] = {
            name: getattr(self, name) for name in TOOL_SPECS
        }

    # ── Dispatch ──────────────────────────────────────────────────────────────

    @staticmethod
    def specs() -> list[ToolSpec]:
        return list(TOOL_SPECS.values())

    def has(self, name: str) -> bool:
        return name in self._handlers

    async def call(self, name: str, args: dict[str, Any] | None = None) -> ToolResponse:
        spec = TOOL_SPECS.get(name)
        if spec is None:
            return ToolResponse(
                f"Unknown tool: {name}",
                {"error": {"kind": "unknown_tool", "message": f"Unknown tool: {name}",
                           "tools": sorted(TOOL_SPECS)}},
                is_error=True,
            )
        args = args or {}
        try:
            _require(args, spec.required)
            _check_types(args, spec.required + spec.optional)
            return await self._handlers[name](args)
        except TransferError as exc:
            logger.info("tool %s rejected: kind=%s %s", name, exc.kind, exc.message)
            return ToolResponse(exc.message, {"error": exc.to_payload()}, spec.widget, is_error=True)

    # ── Transfers ─────────────────────────────────────────────────────────────

    def _receipt(self, result: "TransferResult", verb: str = "Transfer created") -> ToolResponse:
        t = result.transfer
        summary = (
            f"{verb}! {t.recipient_name} will receive {t.target_amount:.2f} {t.target_currency}. "
            f"Fee: {t.fee_amount:.2f} {t.source_currency}. ID: {t.id}"
        )
        if t.fallback_note:
            summary += f" (simulated: {t.fallback_note})" if not t.is_real_transfer else f" ({t.fallback_note})"
        return ToolResponse(summary, {
            "transfer":  t.to_payload(),
            "breakdown": result.breakdown.to_payload(),
            "stages":    [s.value for s in result.stages],
        }, TOOL_SPECS["send_money"].widget)

    async def send_money(self, args: dict[str, Any]) -> ToolResponse:
        source = args.get("from_currency")
        if source and str(source).strip().upper() != self._orch.source_currency:
            raise ValidationFailed(
                f"Transfers are sent from {self._orch.source_currency} only, got '{source}'"
            )
        result = await self._orch.submit_transfer(
            args["amount"], args["recipient_country"], args["recipient_name"],
            recipient_details=args.get("recipient_details"),
        )
        return self._receipt(result)

    async def get_quote(self, args: dict[str, Any]) -> ToolResponse:
        quote = await self._orch.quote(args["amount"], args["recipient_country"])
        b = quote.breakdown
        return ToolResponse(
            f"Sending {b.base_amount:.2f} {b.source_currency} to {quote.corridor.country}: "
            f"fee {b.fee_amount:.2f}, rate {b.rate:.4f}, recipient gets {b.final_amount:.2f} "
            f"{b.target_currency} ({quote.corridor.delivery_time_label}).",
            {
                "corridor":     quote.corridor.to_payload(),
                "breakdown":    b.to_payload(),
                "rates_as_of":  quote.rates_as_of,
                "rates_source": quote.rates_source,
            },
            TOOL_SPECS["get_quote"].widget,
        )

    async def get_exchange_rate(self, args: dict[str, Any]) -> ToolResponse:
        source, target = args["from_currency"].upper(), args["to_currency"].upper()
        rate, snapshot = await self._orch.exchange_rate(source, target)
        return ToolResponse(
            f"Current rate: 1 {source} = {rate:.4f} {target}",
            {
                "from_currency": source,
                "to_currency":   target,
                "rate":          str(rate),
                "as_of":         snapshot.as_of,
                "fetched_at":    snapshot.fetched_at.isoformat(),
                "source":        snapshot.source,
            },
            TOOL_SPECS["get_exchange_rate"].widget,
        )

    async def check_transfer_status(self, args: dict[str, Any]) -> ToolResponse:
        check = await self._orch.check_status(args["transfer_id"])
        t = check.transfer
        if check.changed:
            summary = f"Transfer {t.id} moved from {check.previous_status.value} to {t.status.value}."
        else:
            summary = f"Transfer {t.id} is {t.status.value}."
        return ToolResponse(summary, {
            "transfer":        t.to_payload(),
            "previous_status": check.previous_status.value,
            "changed":         check.changed,
            "progress":        t.status.progress,
        }, TOOL_SPECS["check_transfer_status"].widget)

    async def get_transfer_history(self, args: dict[str, Any]) -> ToolResponse:
        items = self._orch.history(
            limit=_int_arg(args, "limit", 10),
            status=args.get("status"),
            recipient_name=args.get("recipient_name"),
        )
        summary = f"{len(items)} transfer(s) found." if items else "No transfers yet."
        payload: dict[str, Any] = {"transfers": [t.to_payload() for t in items], "count": len(items)}
        if args.get("include_provider"):
            remote = await self._orch.provider_transfers(_int_arg(args, "limit", 10))
            payload["provider_transfers"] = [
                {"transfer_id": p.transfer_id, "status": p.status} for p in remote
            ]
        return ToolResponse(
            summary,
            payload,
            TOOL_SPECS["get_transfer_history"].widget,
        )

    async def repeat_transfer(self, args: dict[str, Any]) -> ToolResponse:
        result = await self._orch.repeat_transfer(args.get("recipient_name"))
        return self._receipt(result, "Transfer repeated")

    async def compare_rates(self, args: dict[str, Any]) -> ToolResponse:
        quote, rows = await self._orch.compare_rates(args["amount"], args["recipient_country"])
        b = quote.breakdown
        best_saving = max((r.savings for r in rows), default=None)
        summary = f"With us the recipient gets {b.final_amount:.2f} {b.target_currency}."
        if best_saving is not None and best_saving > 0:
            summary += f" That is up to {best_saving:.2f} {b.target_currency} more than the alternatives."
        return ToolResponse(summary, {
            "corridor":    quote.corridor.to_payload(),
            "ours":        b.to_payload(),
            "comparison":  [r.to_payload() for r in rows],
        }, TOOL_SPECS["compare_rates"].widget)

    # ── Corridors ─────────────────────────────────────────────────────────────

    async def list_supported_countries(self, args: dict[str, Any]) -> ToolResponse:
        registry = self._orch.corridors
        region = args.get("region")
        corridors = registry.list_by_region(region) if region else registry.list_all()
        return ToolResponse(
            f"{len(corridors)} supported destination(s)" + (f" in {region}." if region else "."),
            {
                "countries": [c.to_payload() for c in corridors],
                "regions":   registry.regions(),
            },
            TOOL_SPECS["list_supported_countries"].widget,
        )

    # ── Recipients ────────────────────────────────────────────────────────────

    async def save_recipient(self, args: dict[str, Any]) -> ToolResponse:
        recipient, created = self._recipients.save(args["name"], args["country"], args.get("details"))
        verb = "Saved" if created else "Already saved"
        return ToolResponse(
            f"{verb}: {recipient.name} in {recipient.country} ({recipient.id}).",
            {"recipient": recipient.to_payload(), "created": created},
            TOOL_SPECS["save_recipient"].widget,
        )

    async def list_recipients(self, args: dict[str, Any]) -> ToolResponse:
        items = self._recipients.list()
        return ToolResponse(
            f"{len(items)} saved recipient(s)." if items else "No saved recipients yet.",
            {"recipients": [r.to_payload() for r in items]},
            TOOL_SPECS["list_recipients"].widget,
        )

    async def delete_recipient(self, args: dict[str, Any]) -> ToolResponse:
        recipient = self._recipients.delete(args["recipient_id"])
        return ToolResponse(
            f"Deleted recipient {recipient.name} ({recipient.id}).",
            {"recipient": recipient.to_payload(), "deleted": True},
            TOOL_SPECS["delete_recipient"].widget,
        )

    async def send_to_recipient(self, args: dict[str, Any]) -> ToolResponse:
        result = await self._orch.send_to_recipient(args["recipient_id"], args["amount"])
        return self._receipt(result)

    # ── Schedules ─────────────────────────────────────────────────────────────

    async def create_scheduled_transfer(self, args: dict[str, Any]) -> ToolResponse:
        schedule = self._schedules.create(
            args["recipient_name"], args["recipient_country"], args["amount"],
            args["frequency"], args.get("start_date"),
        )
        upcoming = self._schedules.upcoming(schedule.id, 3)
        return ToolResponse(
            f"Scheduled {schedule.amount:.2f} {schedule.currency_from} {schedule.frequency} to "
            f"{schedule.recipient_name}. Next: {format_utc(schedule.next_execution_at)} ({schedule.id}).",
            {"schedule": schedule.to_payload(), "upcoming": [format_utc(d) for d in upcoming]},
            TOOL_SPECS["create_scheduled_transfer"].widget,
        )

    async def list_scheduled_transfers(self, args: dict[str, Any]) -> ToolResponse:
        items = self._schedules.list(args.get("status"))
        return ToolResponse(
            f"{len(items)} scheduled transfer(s)." if items else "No scheduled transfers.",
            {"schedules": [s.to_payload() for s in items]},
            TOOL_SPECS["list_scheduled_transfers"].widget,
        )

    async def cancel_scheduled_transfer(self, args: dict[str, Any]) -> ToolResponse:
        schedule = self._schedules.cancel(args["schedule_id"])
        return ToolResponse(
            f"Cancelled scheduled transfer {schedule.id} to {schedule.recipient_name}.",
            {"schedule": schedule.to_payload()},
            TOOL_SPECS["cancel_scheduled_transfer"].widget,
        )

    # ── Analytics ─────────────────────────────────────────────────────────────

    async def get_analytics(self, args: dict[str, Any]) -> ToolResponse:
        summary = summarize(self._orch.all_transfers(), self._cfg)
        return ToolResponse(
            f"{summary.total_transfers} transfer(s), {summary.total_sent:.2f} {summary.currency} sent, "
            f"{summary.daily.remaining:.2f} left today.",
            summary.to_payload(),
            TOOL_SPECS["get_analytics"].widget,
        )

"""
RecipientFieldMapper — destination currency → provider recipient schema.

Each supported payout currency has a RecipientSchema naming the provider's
account type and the detail fields it requires. Caller-supplied details are
looked up under a few accepted spellings (snake_case, camelCase, common
synonyms). When a field is absent and we are not in production, a documented
sandbox placeholder is used so the sandbox accepts the request.

Currencies without a schema fall through to GENERIC_SCHEMA. The provider is
likely to reject it, and its real error is surfaced through the orchestrator's
fallback note rather than failing earlier here.

Extend with RecipientFieldMapper.register(); the orchestrator never changes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class FieldSpec:
    provider_key: str                  # key in the provider's `details` object
    aliases: tuple[str, ...]           # accepted caller keys, first match wins
    sandbox_value: Any = None          # placeholder when absent outside production


@dataclass(frozen=True)
class RecipientSchema:
    recipient_type: str
    fields: tuple[FieldSpec, ...]
    fixed: dict[str, Any] = field(default_factory=dict)   # always-sent values


@dataclass(frozen=True)
class MappedRecipient:
    recipient_type: str
    details: dict[str, Any]
    placeholders_used: tuple[str, ...] = ()


_ACCOUNT_NUMBER = ("account_number", "accountNumber", "account")
_BANK_CODE      = ("bank_code", "bankCode", "bank")

# ── Schemas ───────────────────────────────────────────────────────────────────
# Sandbox values are the provider's published test accounts where one exists.

RECIPIENT_SCHEMAS: dict[str, RecipientSchema] = {
    # UK local clearing: sort code + account number
    "GBP": RecipientSchema("sort_code", (
        FieldSpec("sortCode", ("sort_code", "sortCode", "bank_code", "bankCode"), "231470"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "31926819"),
    )),
    # SEPA: IBAN only
    "EUR": RecipientSchema("iban", (
        FieldSpec("IBAN", ("iban", "IBAN"), "DE89370400440532013000"),
    )),
    # US domestic: ABA routing number + account
    "USD": RecipientSchema("aba", (
        FieldSpec("abartn", ("routing_number", "abartn", "aba", "bank_code"), "111000025"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "12345678"),
        FieldSpec("accountType", ("account_type", "accountType"), "CHECKING"),
        FieldSpec("address", ("address",), {
            "country": "US", "city": "New York", "postCode": "10001",
            "firstLine": "1 Main St", "state": "NY",
        }),
    )),
    # Mexico SPEI: 18-digit CLABE
    "MXN": RecipientSchema("mexican", (
        FieldSpec("clabe", ("clabe", "CLABE", "account_number"), "032180000118359719"),
    )),
    # India NEFT/IMPS: IFSC + account
    "INR": RecipientSchema("indian", (
        FieldSpec("ifscCode", ("ifsc_code", "ifscCode", "ifsc", "bank_code"), "YESB0236041"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "678911234567"),
    )),
    "PHP": RecipientSchema("philippines", (
        FieldSpec("bankCode", _BANK_CODE, "010530667"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "001234567890"),
    )),
    "NGN": RecipientSchema("nigeria", (
        FieldSpec("bankCode", _BANK_CODE, "044"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "0123456789"),
    )),
    "KES": RecipientSchema("kenya_local", (
        FieldSpec("bankCode", _BANK_CODE, "01"),
        FieldSpec("accountNumber", _ACCOUNT_NUMBER, "1234567890"),
    )),
}

GENERIC_SCHEMA = RecipientSchema("bank_account", (
    FieldSpec("accountNumber", _ACCOUNT_NUMBER, "12345678"),
    FieldSpec("bankCode", _BANK_CODE),
))


class RecipientFieldMapper:
    """Registry-driven mapper; instances copy the module registry so tests can extend safely."""

    def __init__(self, schemas: dict[str, RecipientSchema] | None = None) -> None:
        self._schemas = dict(RECIPIENT_SCHEMAS if schemas is None else schemas)

    def register(self, currency: str, schema: RecipientSchema) -> None:
        self._schemas[currency.upper()] = schema

    def schema_for(self, currency: str) -> RecipientSchema:
        return self._schemas.get(currency.upper(), GENERIC_SCHEMA)

    def supports(self, currency: str) -> bool:
        return currency.upper() in self._schemas

    def map_recipient(
        self,
        currency: str,
        raw_details: dict[str, Any] | None,
        production: bool = False,
    ) -> MappedRecipient:
        schema  = self.schema_for(currency)
        raw     = raw_details or {}
        details: dict[str, Any] = {"legalType": "PRIVATE", **schema.fixed}
        placeholders: list[str] = []

        for spec in schema.fields:
            value = next((raw[k] for k in spec.aliases if raw.get(k) not in (None, "")), None)
            if value is None and not production and spec.sandbox_value is not None:
                value = spec.sandbox_value
                placeholders.append(spec.provider_key)
            if value is not None:
                details[spec.provider_key] = value

        return MappedRecipient(
            recipient_type=schema.recipient_type,
            details=details,
            placeholders_used=tuple(placeholders),
        )

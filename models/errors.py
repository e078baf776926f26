"""
Rejection taxonomy for the Remit engine.

Every orchestration failure that reaches a caller is one of these. None of
them is fatal to the process: the tools layer turns them into structured
error responses and the HTTP layer maps `kind` to a status code.
"""

from __future__ import annotations

from typing import Any


class TransferError(Exception):
    """Base class. `kind` is a stable machine-readable tag."""

    kind = "error"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_payload(self) -> dict[str, Any]:
        return {"kind": self.kind, "message": self.message}


class ValidationFailed(TransferError):
    """Bad amount, missing required field, invalid argument. Retry after fixing input."""

    kind = "validation"


class UnsupportedCorridor(ValidationFailed):
    """Destination country is not in the corridor registry."""

    kind = "unsupported_corridor"

    def __init__(self, country: str, supported_countries: list[str]) -> None:
        self.country             = country
        self.supported_countries = supported_countries
        super().__init__(
            f"Transfers to '{country}' are not supported. "
            f"Supported countries: {', '.join(supported_countries)}"
        )

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "supported_countries": self.supported_countries}


class RateUnavailable(TransferError):
    """No rate for the requested currency. Retry later."""

    kind = "rate_unavailable"

    def __init__(self, source_currency: str, target_currency: str) -> None:
        self.source_currency = source_currency
        self.target_currency = target_currency
        super().__init__(
            f"Exchange rate not available for {source_currency} to {target_currency}"
        )


class NotFound(TransferError):
    """Unknown transfer / recipient / schedule id."""

    kind = "not_found"

    def __init__(self, entity: str, key: str, hint: str) -> None:
        self.entity = entity
        self.key    = key
        self.hint   = hint
        super().__init__(f"{entity.capitalize()} {key} not found. {hint}")

    def to_payload(self) -> dict[str, Any]:
        return {**super().to_payload(), "entity": self.entity, "key": self.key}

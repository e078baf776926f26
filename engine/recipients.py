"""
RecipientBook — saved beneficiaries.

A recipient is created only by save(); saving the same name and country
again returns the existing record (details refreshed if new ones are given).
Running totals are bumped by the orchestrator when the recipient is used.
"""

from __future__ import annotations

import logging
from typing import Any

from engine.store import InMemoryRecipientStore
from models.domain import Recipient
from models.errors import NotFound, UnsupportedCorridor, ValidationFailed
from services.corridor_registry import CorridorRegistry

logger = logging.getLogger("remit.engine.recipients")

_HINT = "Use list_recipients to see saved recipients."


class RecipientBook:

    def __init__(
        self,
        store: InMemoryRecipientStore,
        corridors: CorridorRegistry | None = None,
    ) -> None:
        self._store     = store
        self._corridors = corridors or CorridorRegistry()

    def save(self, name: str, country: str, details: dict[str, Any] | None = None) -> tuple[Recipient, bool]:
        """Returns (recipient, created). created is False when an existing record was reused."""
        name = name.strip() if isinstance(name, str) else ""
        if not name:
            raise ValidationFailed("Missing required field: recipient name")
        if not isinstance(country, str) or not country.strip():
            raise ValidationFailed("Missing required field: country")
        corridor = self._corridors.find_by_country(country)
        if corridor is None:
            raise UnsupportedCorridor(country, self._corridors.supported_countries())

        existing = self._store.find(name, corridor.country)
        if existing is not None:
            if details:
                existing.details = {**existing.details, **details}
            logger.info("recipient reused: id=%s name=%s", existing.id, existing.name)
            return existing, False

        recipient = Recipient(
            id=self._store.next_id(),
            name=name,
            country=corridor.country,
            currency_code=corridor.currency_code,
            details=dict(details or {}),
        )
        self._store.create(recipient)
        logger.info("recipient saved: id=%s name=%s country=%s", recipient.id, name, corridor.country)
        return recipient, True

    def list(self) -> list[Recipient]:
        return self._store.list_all()

    def get(self, recipient_id: str) -> Recipient:
        recipient = self._store.get(recipient_id.strip() if isinstance(recipient_id, str) else "")
        if recipient is None:
            raise NotFound("recipient", recipient_id, _HINT)
        return recipient

    def delete(self, recipient_id: str) -> Recipient:
        recipient = self.get(recipient_id)
        self._store.delete(recipient.id)
        logger.info("recipient deleted: id=%s", recipient.id)
        return recipient

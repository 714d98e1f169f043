# src/onfire_hud/ledger/ledger_models.py

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any


class LedgerDirection(StrEnum):
    FORWARD = "send"
    REVERSAL = "unsend"

    @property
    def sign(self) -> int:
        return 1 if self is LedgerDirection.FORWARD else -1


@dataclass(frozen=True, slots=True)
class LedgerContext:
    """Human context attached to a ledger entry through the metadata bag."""

    task_id: str
    task_title: str
    conversation_id: str | None
    actor_name: str | None = None


@dataclass(frozen=True, slots=True)
class LedgerEntry:
    """
    One write-once ledger transaction.

    The amount is signed: positive for forward entries, negative for
    reversals. The task reference lives only in `metadata`; the ledger's
    typed relation column expects a different id type, so it is never set.
    """

    direction: LedgerDirection
    from_person_id: str
    to_person_id: str
    amount: int
    currency_code: str
    description: str = ""
    notes: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    related_entity_type: str = "task"
    id: str | None = None

    def __post_init__(self) -> None:
        if not self.from_person_id or not self.to_person_id:
            raise ValueError("ledger entry needs both payer and payee")
        if self.amount == 0 or (self.amount > 0) != (self.direction is LedgerDirection.FORWARD):
            raise ValueError(
                f"amount {self.amount} has the wrong sign for direction {self.direction.value}"
            )

    @property
    def related_task_id(self) -> str | None:
        value = self.metadata.get("task_id")
        return str(value) if value is not None else None

    def to_api(self) -> dict[str, Any]:
        return {
            "type": self.direction.value,
            "from_user_id": self.from_person_id,
            "to_user_id": self.to_person_id,
            "amount": self.amount,
            "fee": 0,
            "net_amount": self.amount,
            "currency_code": self.currency_code,
            "related_entity_type": self.related_entity_type,
            "description": self.description,
            "notes": self.notes,
            "metadata": dict(self.metadata),
        }

    def with_remote_id(self, remote_id: str | None) -> LedgerEntry:
        if not remote_id:
            return self
        return replace(self, id=str(remote_id))

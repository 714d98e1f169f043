# src/onfire_hud/ledger/ledger_client.py

from __future__ import annotations

import logging

from ..core.errors import InvalidAmountError, LedgerSubmissionError
from ..core.ports import LedgerAPI
from ..core.session import Session
from .ledger_models import LedgerContext, LedgerDirection, LedgerEntry

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY_CODE = "COIN"


class RewardLedgerClient:
    """
    Builds and submits reward ledger entries.

    Callers always pass a positive magnitude; the direction decides the sign.
    There is no retry here: whether a failed submission matters is the
    caller's decision.
    """

    def __init__(self, ledger_api: LedgerAPI, *, currency_code: str = DEFAULT_CURRENCY_CODE) -> None:
        self._api = ledger_api
        self._currency_code = currency_code

    async def submit_forward(
            self,
            session: Session,
            payer_id: str,
            payee_id: str,
            amount: int,
            context: LedgerContext,
    ) -> LedgerEntry:
        return await self._submit(session, LedgerDirection.FORWARD, payer_id, payee_id, amount, context)

    async def submit_reversal(
            self,
            session: Session,
            payer_id: str,
            payee_id: str,
            amount: int,
            context: LedgerContext,
    ) -> LedgerEntry:
        return await self._submit(session, LedgerDirection.REVERSAL, payer_id, payee_id, amount, context)

    def build_entry(
            self,
            direction: LedgerDirection,
            payer_id: str,
            payee_id: str,
            amount: int,
            context: LedgerContext,
    ) -> LedgerEntry:
        if amount <= 0:
            raise InvalidAmountError(amount)

        actor = context.actor_name or "user"
        metadata: dict[str, object] = {
            "task_id": context.task_id,
            "task_title": context.task_title,
            "conversation_id": context.conversation_id,
        }
        if direction is LedgerDirection.FORWARD:
            description = f"Payment for completing task: {context.task_title}"
            notes = f"Task completed by {actor}"
            metadata["completed_by"] = payee_id
        else:
            description = f"Reversal for uncompleted task: {context.task_title}"
            notes = f"Task uncompleted by {actor}"
            metadata["uncompleted_by"] = payee_id
            metadata["reversal"] = True

        return LedgerEntry(
            direction=direction,
            from_person_id=payer_id,
            to_person_id=payee_id,
            amount=direction.sign * amount,
            currency_code=self._currency_code,
            description=description,
            notes=notes,
            metadata=metadata,
        )

    async def _submit(
            self,
            session: Session,
            direction: LedgerDirection,
            payer_id: str,
            payee_id: str,
            amount: int,
            context: LedgerContext,
    ) -> LedgerEntry:
        entry = self.build_entry(direction, payer_id, payee_id, amount, context)
        logger.info(
            "Ledger %s: %s -> %s amount=%s task=%s",
            direction.value,
            payer_id,
            payee_id,
            entry.amount,
            context.task_id,
        )
        try:
            stored = await self._api.submit_ledger_entry(session, entry)
        except Exception as e:
            raise LedgerSubmissionError(context.task_id, direction.value) from e
        return stored if stored is not None else entry

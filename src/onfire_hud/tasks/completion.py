# src/onfire_hud/tasks/completion.py

"""
Completion orchestration.

Drives the NOT_STARTED <-> COMPLETED transition for one conversation view:
remote status update first, then the local (optimistic) cache move, then the
ledger entry, then a best-effort summary refresh.

Key invariants:
- nothing is mutated locally unless the task store accepted the update,
- completion and payment are not transactional with each other: a ledger
  failure is reported but never rolls the task back,
- a reversal reuses the amount paid at completion so the pair sums to zero,
- at most one transition is in flight per conversation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from ..core.errors import (
    FetchError,
    HudError,
    LedgerSubmissionError,
    MissingPayerError,
    NotFoundError,
    RemoteUpdateError,
)
from ..core.ports import NoticeSink, TaskStoreAPI
from ..core.session import Session
from ..ledger.ledger_client import RewardLedgerClient
from ..ledger.ledger_models import LedgerContext, LedgerEntry
from ..summary.reconciler import SummaryReconciler
from .task_cache import TaskCache
from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TransitionResult(str, Enum):
    APPLIED = "applied"
    NOOP = "noop"  # task already in the target state
    BUSY = "busy"  # another transition pending for this conversation
    STALE = "stale"  # committed and paid, but the view had switched conversations


@dataclass(slots=True, frozen=True)
class RewardCapture:
    """What was paid for a completion, remembered for its reversal."""

    amount: int
    payer_id: str | None
    payee_id: str


@dataclass(slots=True)
class TransitionOutcome:
    result: TransitionResult
    task: Task | None = None
    ledger_entry: LedgerEntry | None = None
    notices: list[HudError] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.result is TransitionResult.APPLIED


class CompletionOrchestrator:
    def __init__(
            self,
            cache: TaskCache,
            task_api: TaskStoreAPI,
            ledger: RewardLedgerClient,
            reconciler: SummaryReconciler | None = None,
            *,
            notice_sink: NoticeSink | None = None,
    ) -> None:
        self._cache = cache
        self._task_api = task_api
        self._ledger = ledger
        self._reconciler = reconciler
        self._notice_sink = notice_sink

        self._pending: set[str] = set()
        self._captures: dict[str, RewardCapture] = {}

    def is_pending(self, conversation_id: str | None) -> bool:
        return conversation_id in self._pending

    # ---- complete ----

    async def complete_task(self, session: Session, task_id: str, person_id: str) -> TransitionOutcome:
        conversation_id = self._cache.conversation_id

        task = self._cache.find_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)
        person = self._cache.find_person(person_id)
        if person is None:
            raise NotFoundError("person", person_id)

        if task.is_completed:
            logger.info("Task %s already completed; ignoring", task_id)
            return TransitionOutcome(TransitionResult.NOOP, task=task)

        if conversation_id is None or conversation_id in self._pending:
            logger.info("Transition already pending for conversation=%s; ignoring task %s", conversation_id, task_id)
            return TransitionOutcome(TransitionResult.BUSY, task=task)

        amount = task.reward_amount

        self._pending.add(conversation_id)
        try:
            await self._push_status(session, conversation_id, task, TaskStatus.COMPLETED, person_id)

            # The remote change is committed either way; only the local move depends on the view.
            self._captures[task_id] = RewardCapture(amount, task.created_by_user_id, person_id)
            if self._cache.is_current(conversation_id):
                updated = self._cache.apply_optimistic_completion(task_id, person_id)
                outcome = TransitionOutcome(TransitionResult.APPLIED, task=updated)
            else:
                logger.info("Conversation switched during completion of %s; skipping local update", task_id)
                outcome = TransitionOutcome(TransitionResult.STALE, task=task.with_completion(person_id))

            if not task.created_by_user_id:
                self._report(outcome, MissingPayerError(task_id))
            else:
                context = LedgerContext(
                    task_id=task_id,
                    task_title=task.title,
                    conversation_id=conversation_id,
                    actor_name=person.display_first_name,
                )
                try:
                    outcome.ledger_entry = await self._ledger.submit_forward(
                        session, task.created_by_user_id, person_id, amount, context
                    )
                except LedgerSubmissionError as e:
                    self._report(outcome, e)
        finally:
            self._pending.discard(conversation_id)

        await self._refresh_summaries(session)
        return outcome

    # ---- uncomplete ----

    async def uncomplete_task(self, session: Session, task_id: str) -> TransitionOutcome:
        conversation_id = self._cache.conversation_id

        task = self._cache.find_task(task_id)
        if task is None:
            raise NotFoundError("task", task_id)

        if not task.is_completed:
            logger.info("Task %s is not completed; ignoring", task_id)
            return TransitionOutcome(TransitionResult.NOOP, task=task)

        if conversation_id is None or conversation_id in self._pending:
            logger.info("Transition already pending for conversation=%s; ignoring task %s", conversation_id, task_id)
            return TransitionOutcome(TransitionResult.BUSY, task=task)

        # Capture before anything moves: the reversal must mirror what was paid.
        capture = self._captures.get(task_id)
        if capture is None or capture.payee_id != task.completed_by_user_id:
            capture = RewardCapture(task.reward_amount, task.created_by_user_id, task.completed_by_user_id or "")
        person = self._cache.find_person(capture.payee_id)

        self._pending.add(conversation_id)
        try:
            await self._push_status(session, conversation_id, task, TaskStatus.NOT_STARTED, None)

            self._captures.pop(task_id, None)
            if self._cache.is_current(conversation_id):
                updated = self._cache.apply_optimistic_reversal(task_id)
                outcome = TransitionOutcome(TransitionResult.APPLIED, task=updated)
            else:
                logger.info("Conversation switched during uncompletion of %s; skipping local update", task_id)
                outcome = TransitionOutcome(TransitionResult.STALE, task=task.with_reversal())

            if not capture.payer_id:
                self._report(outcome, MissingPayerError(task_id))
            else:
                context = LedgerContext(
                    task_id=task_id,
                    task_title=task.title,
                    conversation_id=conversation_id,
                    actor_name=person.display_first_name if person else None,
                )
                try:
                    outcome.ledger_entry = await self._ledger.submit_reversal(
                        session, capture.payer_id, capture.payee_id, capture.amount, context
                    )
                except LedgerSubmissionError as e:
                    self._report(outcome, e)
        finally:
            self._pending.discard(conversation_id)

        await self._refresh_summaries(session)
        return outcome

    # ---- helpers ----

    async def _push_status(
            self,
            session: Session,
            conversation_id: str,
            task: Task,
            status: TaskStatus,
            completed_by: str | None,
    ) -> None:
        try:
            await self._task_api.update_task_status(
                session,
                task.id,
                status=status,
                completed_by_user_id=completed_by,
                progress=status.progress,
            )
        except Exception as e:
            logger.warning("Remote status update failed task=%s status=%s", task.id, status.value)
            # The request may or may not have landed; only the remote knows.
            await self._resync(session, conversation_id)
            raise RemoteUpdateError(task.id) from e
        logger.info("Task %s -> %s (remote)", task.id, status.value)

    async def _resync(self, session: Session, conversation_id: str) -> None:
        if not self._cache.is_current(conversation_id):
            return
        try:
            await self._cache.revert_to_remote(session, conversation_id)
        except FetchError:
            logger.exception("Resync after failed update also failed conversation=%s", conversation_id)

    async def _refresh_summaries(self, session: Session) -> None:
        if self._reconciler is None:
            return
        try:
            await self._reconciler.refresh_all(session, self._cache.person_ids())
        except Exception:
            logger.exception("Summary refresh failed")

    def _report(self, outcome: TransitionOutcome, err: HudError) -> None:
        logger.warning("%s", err)
        outcome.notices.append(err)
        if self._notice_sink is None:
            return
        try:
            self._notice_sink(err)
        except Exception:
            logger.debug("Notice sink failed.", exc_info=True)

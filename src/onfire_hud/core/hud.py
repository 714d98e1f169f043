# src/onfire_hud/core/hud.py

"""
Task HUD facade: the only surface the UI collaborator talks to.

Wires the task cache, completion orchestrator, ledger client and summary
reconciler for one signed-in session. Front-ends (console, anything else)
read state through the getters and trigger flows through the async methods.
"""

from __future__ import annotations

import logging

from ..ledger.ledger_client import DEFAULT_CURRENCY_CODE, RewardLedgerClient
from ..summary.reconciler import SummaryReconciler
from ..summary.summary_models import EarningsProgress
from ..tasks.completion import CompletionOrchestrator, TransitionOutcome
from ..tasks.task_cache import TaskCache
from ..tasks.task_models import Person, Task
from .errors import FetchError
from .ports import NoticeSink, RemoteAPI
from .session import Session

logger = logging.getLogger(__name__)


class TaskHUD:
    def __init__(
            self,
            api: RemoteAPI,
            session: Session,
            *,
            currency_code: str = DEFAULT_CURRENCY_CODE,
            notice_sink: NoticeSink | None = None,
    ) -> None:
        self.session = session
        self.cache = TaskCache(api, api)
        self.ledger = RewardLedgerClient(api, currency_code=currency_code)
        self.reconciler = SummaryReconciler(api, self.cache)
        self.orchestrator = CompletionOrchestrator(
            self.cache,
            api,
            self.ledger,
            self.reconciler,
            notice_sink=notice_sink,
        )

    @property
    def conversation_id(self) -> str | None:
        return self.cache.conversation_id

    # ---- reads ----

    def get_active_tasks(self) -> list[Task]:
        return self.cache.active_tasks()

    def get_completed_tasks(self) -> list[Task]:
        return self.cache.completed_tasks()

    def get_people(self) -> list[Person]:
        return self.cache.people()

    def get_progress(self, person_id: str) -> EarningsProgress:
        return self.reconciler.derive_progress(person_id)

    def get_completed_by_person(self) -> dict[str, list[Task]]:
        return self.cache.completed_by_person()

    # ---- flows ----

    async def select_conversation(self, conversation_id: str) -> bool:
        """Switch to a conversation: load its tasks, then its people's summaries."""
        if conversation_id != self.cache.conversation_id:
            self.reconciler.clear()
        applied = await self.cache.load(self.session, conversation_id)
        if applied:
            await self.reconciler.refresh_all(self.session, self.cache.person_ids())
        return applied

    async def reload(self) -> bool:
        conversation_id = self.cache.conversation_id
        if conversation_id is None:
            raise FetchError(None, "No conversation selected")
        applied = await self.cache.revert_to_remote(self.session, conversation_id)
        if applied:
            await self.reconciler.refresh_all(self.session, self.cache.person_ids())
        return applied

    async def complete_task(self, task_id: str, person_id: str) -> TransitionOutcome:
        return await self.orchestrator.complete_task(self.session, task_id, person_id)

    async def uncomplete_task(self, task_id: str) -> TransitionOutcome:
        return await self.orchestrator.uncomplete_task(self.session, task_id)

# src/onfire_hud/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of the concrete HTTP adapter.
Every call receives the Session explicitly; adapters keep no auth state.
"""

from collections.abc import Callable, Sequence
from typing import Awaitable, Protocol

from ..ledger.ledger_models import LedgerEntry
from ..summary.summary_models import PersonEarningsSummary
from ..tasks.task_models import Conversation, Task, TaskStatus, UserProfile
from .session import Session

NoticeSink = Callable[[Exception], None]
# Secondary, non-blocking channel for failures that do not roll back task state.


class TaskStoreAPI(Protocol):
    def fetch_tasks(self, session: Session, conversation_id: str) -> Awaitable[list[Task]]: ...

    def update_task_status(
            self,
            session: Session,
            task_id: str,
            *,
            status: TaskStatus,
            completed_by_user_id: str | None,
            progress: int,
    ) -> Awaitable[Task | None]: ...


class LedgerAPI(Protocol):
    def submit_ledger_entry(self, session: Session, entry: LedgerEntry) -> Awaitable[LedgerEntry]: ...


class SummaryAPI(Protocol):
    def fetch_person_summary(
            self,
            session: Session,
            person_id: str,
    ) -> Awaitable[PersonEarningsSummary | None]: ...


class ProfileAPI(Protocol):
    def fetch_user_profiles(
            self,
            session: Session,
            user_ids: Sequence[str],
    ) -> Awaitable[list[UserProfile]]: ...


class ConversationAPI(Protocol):
    def fetch_conversations(self, session: Session) -> Awaitable[list[Conversation]]: ...


class RemoteAPI(TaskStoreAPI, LedgerAPI, SummaryAPI, ProfileAPI, ConversationAPI, Protocol):
    """Everything a full adapter (HTTP or offline) provides."""

    def aclose(self) -> Awaitable[None]: ...

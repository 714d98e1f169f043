# src/onfire_hud/api/offline.py

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, datetime

from ..core.session import Session
from ..ledger.ledger_models import LedgerEntry
from ..summary.summary_models import PersonEarningsSummary
from ..tasks.task_models import Conversation, Task, TaskStatus, UserProfile, utc_now

DEMO_CONVERSATION_ID = "demo-household"
_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)


class OfflineOnFireAPI:
    """
    In-memory adapter used for demos when no access token is configured.

    Behavior:
    - tasks live in a dict and status updates apply immediately
    - ledger entries are appended to a list
    - summaries are aggregated from that list (day / ISO week / month buckets)
    """

    def __init__(
            self,
            *,
            tasks: Sequence[Task] | None = None,
            profiles: Sequence[UserProfile] | None = None,
            conversations: Sequence[Conversation] | None = None,
    ) -> None:
        self.tasks: dict[str, Task] = {t.id: t for t in (tasks or [])}
        self.profiles: dict[str, UserProfile] = {p.user_id: p for p in (profiles or [])}
        self.conversations: list[Conversation] = list(conversations or [])
        self.entries: list[tuple[datetime, LedgerEntry]] = []

    @classmethod
    def with_demo_data(cls, user_id: str) -> OfflineOnFireAPI:
        conv = DEMO_CONVERSATION_ID
        host = user_id or "demo-user"
        tasks = [
            Task(id="t-dishes", title="Do the dishes", conversation_id=conv,
                 status=TaskStatus.NOT_STARTED, created_by_user_id=host, estimated_minutes=25),
            Task(id="t-laundry", title="Fold the laundry", conversation_id=conv,
                 status=TaskStatus.NOT_STARTED, created_by_user_id=host, budget_cost=5),
            Task(id="t-plants", title="Water the plants", conversation_id=conv,
                 status=TaskStatus.NOT_STARTED, created_by_user_id="demo-sam",
                 assignee_user_ids=("demo-alex",)),
            Task(id="t-trash", title="Take out the trash", conversation_id=conv,
                 status=TaskStatus.COMPLETED, created_by_user_id=host,
                 completed_by_user_id="demo-sam", estimated_minutes=10, updated_at=utc_now()),
        ]
        profiles = [
            UserProfile(user_id="demo-sam", display_name="Sam Rivera"),
            UserProfile(user_id="demo-alex", display_name="Alex Chen"),
        ]
        return cls(
            tasks=tasks,
            profiles=profiles,
            conversations=[Conversation(id=conv, name="Household (demo)")],
        )

    async def aclose(self) -> None:
        return

    async def fetch_tasks(self, session: Session, conversation_id: str) -> list[Task]:
        matching = [t for t in self.tasks.values() if t.conversation_id == conversation_id]
        return sorted(matching, key=lambda t: t.created_at or _EPOCH, reverse=True)

    async def update_task_status(
            self,
            session: Session,
            task_id: str,
            *,
            status: TaskStatus,
            completed_by_user_id: str | None,
            progress: int,
    ) -> Task | None:
        task = self.tasks.get(task_id)
        if task is None:
            raise KeyError(f"Unknown task: {task_id}")
        updated = replace(task, status=status, completed_by_user_id=completed_by_user_id, updated_at=utc_now())
        self.tasks[task_id] = updated
        return updated

    async def submit_ledger_entry(self, session: Session, entry: LedgerEntry) -> LedgerEntry:
        stored = entry.with_remote_id(f"tx-{len(self.entries) + 1}")
        self.entries.append((utc_now(), stored))
        return stored

    async def fetch_person_summary(self, session: Session, person_id: str) -> PersonEarningsSummary | None:
        daily: dict[str, float] = {}
        weekly: dict[str, float] = {}
        monthly: dict[str, float] = {}
        total = 0.0
        for ts, entry in self.entries:
            if entry.to_person_id != person_id:
                continue
            year, week, _ = ts.isocalendar()
            for bucket, key in (
                (daily, ts.date().isoformat()),
                (weekly, f"{year}-W{week:02d}"),
                (monthly, ts.strftime("%Y-%m")),
            ):
                bucket[key] = bucket.get(key, 0.0) + entry.amount
            total += entry.amount
        if not daily:
            return None
        return PersonEarningsSummary(person_id, daily=daily, weekly=weekly, monthly=monthly, lifetime=total)

    async def fetch_user_profiles(self, session: Session, user_ids: Sequence[str]) -> list[UserProfile]:
        return [self.profiles[u] for u in user_ids if u in self.profiles]

    async def fetch_conversations(self, session: Session) -> list[Conversation]:
        return list(self.conversations)

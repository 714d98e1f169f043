# src/onfire_hud/tasks/task_models.py

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from ..core.errors import InvalidRewardError

logger = logging.getLogger(__name__)

# The backend leaves estimated_time_minutes empty for quick tasks; the app
# has always priced those as half an hour.
DEFAULT_ESTIMATED_MINUTES = 30
MINUTES_PER_COIN = 10

PERSON_COLORS = (
    "#ff6b35",
    "#ff8c42",
    "#ff9a56",
    "#ffa86b",
    "#ffb680",
    "#ffc494",
    "#ffd2a8",
)


class TaskStatus(StrEnum):
    """
    Task lifecycle status as stored by the task API.

    Notes:
    - only NOT_STARTED <-> COMPLETED transitions are driven by this client,
    - "in_progress" is reserved by the backend and treated as active.
    """

    NOT_STARTED = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

    @classmethod
    def from_api(cls, raw: str | None) -> TaskStatus:
        if not raw:
            return cls.NOT_STARTED
        value = str(raw).strip().lower()
        if value == "not_started":
            return cls.NOT_STARTED
        try:
            return cls(value)
        except ValueError:
            return cls.NOT_STARTED

    @property
    def progress(self) -> int:
        return 100 if self is TaskStatus.COMPLETED else 0


def utc_now() -> datetime:
    return datetime.now(UTC)


def parse_timestamp(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, datetime):
        return raw if raw.tzinfo else raw.replace(tzinfo=UTC)
    try:
        ts = datetime.fromisoformat(str(raw))
    except ValueError:
        return None
    return ts if ts.tzinfo else ts.replace(tzinfo=UTC)


def _parse_int(raw: Any) -> int | None:
    if raw is None or raw == "":
        return None
    try:
        return int(float(raw))
    except (TypeError, ValueError):
        return None


def compute_reward_amount(
    task_id: str,
    *,
    budget_cost: int | None,
    estimated_minutes: int | None,
) -> int:
    """
    Coins paid for a task: the explicit budget when set, otherwise one coin per
    started ten minutes of estimated work.
    """
    if budget_cost is not None:
        amount = budget_cost
    else:
        minutes = DEFAULT_ESTIMATED_MINUTES if estimated_minutes is None else estimated_minutes
        amount = math.ceil(minutes / MINUTES_PER_COIN)
    if amount <= 0:
        raise InvalidRewardError(task_id, amount)
    return amount


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    conversation_id: str | None
    status: TaskStatus
    created_by_user_id: str | None = None
    completed_by_user_id: str | None = None
    budget_cost: int | None = None
    estimated_minutes: int | None = None
    updated_at: datetime | None = None

    created_at: datetime | None = None
    description: str = ""
    assignee_user_ids: tuple[str, ...] = ()
    cover_image_url: str | None = None

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("task id is required")
        completed = self.status is TaskStatus.COMPLETED
        if completed != (self.completed_by_user_id is not None):
            raise ValueError(
                f"task {self.id}: status={self.status.value} "
                f"inconsistent with completed_by_user_id={self.completed_by_user_id!r}"
            )

    @property
    def is_completed(self) -> bool:
        return self.status is TaskStatus.COMPLETED

    @property
    def reward_amount(self) -> int:
        return compute_reward_amount(
            self.id,
            budget_cost=self.budget_cost,
            estimated_minutes=self.estimated_minutes,
        )

    def with_completion(self, person_id: str, now: datetime | None = None) -> Task:
        return replace(
            self,
            status=TaskStatus.COMPLETED,
            completed_by_user_id=person_id,
            updated_at=now or utc_now(),
        )

    def with_reversal(self, now: datetime | None = None) -> Task:
        return replace(
            self,
            status=TaskStatus.NOT_STARTED,
            completed_by_user_id=None,
            updated_at=now or utc_now(),
        )

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> Task:
        """Build a Task from a task API row. Raises ValueError on inconsistent rows."""
        attachments = row.get("attachment_urls") or []
        cover = row.get("cover_image_url") or (attachments[0] if attachments else None)
        assignees = row.get("assignee_user_ids") or []
        completed_by = row.get("completed_by_user_id") or None

        return cls(
            id=str(row.get("id") or ""),
            title=str(row.get("title") or ""),
            conversation_id=row.get("chat_id"),
            status=TaskStatus.from_api(row.get("status")),
            created_by_user_id=row.get("created_by_user_id") or None,
            completed_by_user_id=str(completed_by) if completed_by else None,
            budget_cost=_parse_int(row.get("budget_cost")),
            estimated_minutes=_parse_int(row.get("estimated_time_minutes")),
            updated_at=parse_timestamp(row.get("updated_at")),
            created_at=parse_timestamp(row.get("created_at")),
            description=str(row.get("description") or ""),
            assignee_user_ids=tuple(str(a) for a in assignees if a),
            cover_image_url=cover,
        )


def tasks_from_api(rows: list[dict[str, Any]] | None) -> list[Task]:
    """Parse API rows, skipping (and logging) rows that violate Task invariants."""
    out: list[Task] = []
    for row in rows or []:
        if not isinstance(row, dict):
            continue
        try:
            out.append(Task.from_api(row))
        except ValueError as e:
            logger.warning("Skipping malformed task row id=%s: %s", row.get("id"), e)
    return out


@dataclass(frozen=True, slots=True)
class UserProfile:
    user_id: str
    display_name: str | None = None
    profile_photo_url: str | None = None


@dataclass(frozen=True, slots=True)
class Person:
    """A participant shown in the HUD. Derived on every load, never persisted."""

    id: str
    display_first_name: str
    color: str
    avatar_url: str | None = None
    initial: str = field(default="")

    def __post_init__(self) -> None:
        if not self.id:
            raise ValueError("person id is required")
        if not self.display_first_name:
            raise ValueError(f"person {self.id}: display_first_name is required")
        if not self.initial:
            object.__setattr__(self, "initial", self.display_first_name[0].upper())


def first_name(name: str | None) -> str:
    parts = (name or "").split()
    return parts[0] if parts else ""


@dataclass(frozen=True, slots=True)
class Conversation:
    id: str
    name: str
    avatar_url: str | None = None

    @classmethod
    def from_api(cls, row: dict[str, Any]) -> Conversation:
        conv_id = str(row.get("id") or "")
        if not conv_id:
            raise ValueError("conversation id is required")
        return cls(
            id=conv_id,
            name=str(row.get("name") or f"Conversation {conv_id[:8]}"),
            avatar_url=row.get("avatar_url") or row.get("group_photo_url") or None,
        )

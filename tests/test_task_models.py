# tests/test_task_models.py

from __future__ import annotations

import pytest

from onfire_hud.core.errors import InvalidRewardError
from onfire_hud.tasks.task_models import (
    Conversation,
    Person,
    Task,
    TaskStatus,
    compute_reward_amount,
    first_name,
    tasks_from_api,
)

from .fakes import make_task


def test_reward_prefers_explicit_budget() -> None:
    assert compute_reward_amount("t", budget_cost=12, estimated_minutes=999) == 12


def test_reward_rounds_estimated_minutes_up() -> None:
    assert compute_reward_amount("t", budget_cost=None, estimated_minutes=25) == 3
    assert compute_reward_amount("t", budget_cost=None, estimated_minutes=10) == 1
    # No estimate at all: priced as half an hour.
    assert compute_reward_amount("t", budget_cost=None, estimated_minutes=None) == 3


@pytest.mark.parametrize("budget,minutes", [(0, None), (-5, 30), (None, 0)])
def test_reward_must_be_positive(budget, minutes) -> None:
    with pytest.raises(InvalidRewardError):
        compute_reward_amount("t", budget_cost=budget, estimated_minutes=minutes)


def test_completed_status_requires_completer() -> None:
    with pytest.raises(ValueError):
        make_task(status=TaskStatus.COMPLETED, completed_by_user_id=None)
    with pytest.raises(ValueError):
        make_task(status=TaskStatus.NOT_STARTED, completed_by_user_id="p2")


def test_with_completion_and_reversal_keep_invariant() -> None:
    task = make_task(budget_cost=4)
    done = task.with_completion("p2")
    assert done.status is TaskStatus.COMPLETED
    assert done.completed_by_user_id == "p2"
    assert done.updated_at is not None

    back = done.with_reversal()
    assert back.status is TaskStatus.NOT_STARTED
    assert back.completed_by_user_id is None
    assert back.reward_amount == 4


def test_status_from_api_maps_wire_values() -> None:
    assert TaskStatus.from_api("completed") is TaskStatus.COMPLETED
    assert TaskStatus.from_api("not_started") is TaskStatus.NOT_STARTED
    assert TaskStatus.from_api("pending") is TaskStatus.NOT_STARTED
    assert TaskStatus.from_api("in_progress") is TaskStatus.IN_PROGRESS
    assert TaskStatus.from_api(None) is TaskStatus.NOT_STARTED
    assert TaskStatus.from_api("weird") is TaskStatus.NOT_STARTED


def test_task_from_api_row() -> None:
    task = Task.from_api(
        {
            "id": "abc",
            "title": "Mop",
            "chat_id": "c1",
            "status": "completed",
            "completed_by_user_id": "u2",
            "created_by_user_id": "u1",
            "budget_cost": "15",
            "estimated_time_minutes": None,
            "attachment_urls": ["https://img/1.png"],
            "assignee_user_ids": ["u2", None],
            "updated_at": "2026-10-18T09:30:00Z",
        }
    )
    assert task.is_completed
    assert task.reward_amount == 15
    assert task.cover_image_url == "https://img/1.png"
    assert task.assignee_user_ids == ("u2",)
    assert task.updated_at is not None and task.updated_at.tzinfo is not None


def test_tasks_from_api_skips_inconsistent_rows() -> None:
    rows = [
        {"id": "ok", "title": "fine", "status": "pending"},
        {"id": "bad", "title": "completed without completer", "status": "completed"},
        "not-a-dict",
    ]
    tasks = tasks_from_api(rows)  # type: ignore[arg-type]
    assert [t.id for t in tasks] == ["ok"]


def test_person_initial_and_first_name() -> None:
    assert first_name("Wendy Lou Worker") == "Wendy"
    assert first_name("   ") == ""
    p = Person(id="u1", display_first_name="wendy", color="#fff")
    assert p.initial == "W"
    with pytest.raises(ValueError):
        Person(id="u1", display_first_name="", color="#fff")


def test_conversation_name_fallback() -> None:
    conv = Conversation.from_api({"id": "0123456789abcdef", "group_photo_url": "https://img/g.png"})
    assert conv.name == "Conversation 01234567"
    assert conv.avatar_url == "https://img/g.png"

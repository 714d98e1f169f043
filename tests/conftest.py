# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from onfire_hud.core.hud import TaskHUD
from onfire_hud.core.session import Session, User
from onfire_hud.tasks.task_models import Conversation, TaskStatus, UserProfile

from .fakes import CONV, OTHER_CONV, PAYER, WORKER, FakeRemoteAPI, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap and commands.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="onfire-hud-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        api_base_url="https://api.test",
        http_timeout_seconds=5.0,
        offline=True,
        access_token=None,
        refresh_token=None,
        user_id="",
        user_first_name=None,
        username=None,
        user_avatar_url=None,
        currency_code="COIN",
        conversation_type="group",
        default_conversation_id=None,
        has_credentials=False,
    )


@pytest.fixture()
def session() -> Session:
    return Session(access_token="token-123", user=User(id=PAYER, first_name="Pat Payer"))


@pytest.fixture()
def api() -> FakeRemoteAPI:
    return FakeRemoteAPI(
        [
            make_task("t1", title="Wash the car", budget_cost=50),
            make_task("t2", title="Vacuum", estimated_minutes=25),
            make_task(
                "t3",
                title="Cook dinner",
                status=TaskStatus.COMPLETED,
                completed_by_user_id=WORKER,
                budget_cost=7,
            ),
            make_task("t9", title="Other group chore", conversation_id=OTHER_CONV, budget_cost=4),
        ],
        profiles=[UserProfile(user_id=WORKER, display_name="Wendy Worker", profile_photo_url="https://img/w.png")],
        conversations=[Conversation(id=CONV, name="Flatmates"), Conversation(id=OTHER_CONV, name="Office")],
    )


@pytest.fixture()
def hud(api: FakeRemoteAPI, session: Session) -> TaskHUD:
    return TaskHUD(api, session)

# tests/test_commands.py

from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import timedelta

import pytest

from onfire_hud.api.offline import DEMO_CONVERSATION_ID, OfflineOnFireAPI
from onfire_hud.cli.bootstrap import create_initial_state
from onfire_hud.cli.commands import CommandRegistry, registry, time_ago
from onfire_hud.ledger.ledger_models import LedgerDirection
from onfire_hud.tasks.task_models import utc_now


@pytest.mark.asyncio
async def test_registry_handles_sync_and_async_handlers(settings) -> None:
    reg = CommandRegistry()

    def ping(state, args, emit=None):
        return "pong " + " ".join(args)

    async def later(state, args, emit=None):
        return "done"

    reg.register("ping", ping, help_text="Ping.", aliases=["p"])
    reg.register("later", later, help_text="Async.")

    assert await reg.handle(None, "/ping a b") == "pong a b"  # type: ignore[arg-type]
    assert await reg.handle(None, "/P x") == "pong x"  # type: ignore[arg-type]
    assert await reg.handle(None, "/later") == "done"  # type: ignore[arg-type]
    assert await reg.handle(None, "hello") is None  # type: ignore[arg-type]
    assert "Unknown command" in await reg.handle(None, "/nope")  # type: ignore[arg-type]
    assert "/ping - Ping." in reg.build_help()


@pytest.mark.asyncio
async def test_commands_need_a_conversation(settings) -> None:
    state = create_initial_state(settings=settings)
    reply = await registry.handle(state, "/tasks")
    assert "No conversation selected" in reply


@pytest.mark.asyncio
async def test_offline_complete_and_undo_flow(settings) -> None:
    notices: list[Exception] = []
    state = create_initial_state(settings=settings, notice_sink=notices.append)
    api = state.api
    assert isinstance(api, OfflineOnFireAPI)

    convos = await registry.handle(state, "/convos")
    assert "Household (demo)" in convos

    listing = await registry.handle(state, "/use 1")
    assert state.hud.conversation_id == DEMO_CONVERSATION_ID
    assert "1. [3 coins] Do the dishes" in listing

    people = await registry.handle(state, "/people")
    assert "1. You" in people and "2. Alex" in people and "3. Sam" in people

    done = await registry.handle(state, "/done 1 2")
    assert "Congratulations Alex!" in done
    assert "You -> Alex +3 COIN" in done
    assert [t.title for t in state.hud.get_active_tasks()] == ["Fold the laundry", "Water the plants"]

    progress = await registry.handle(state, "/progress 2")
    assert "Alex: D 3 (30%)" in progress
    assert "(estimate)" not in progress

    again = await registry.handle(state, "/done t-dishes 2")
    assert "No active task" in again

    completed = await registry.handle(state, "/completed")
    assert "Alex (3 total)" in completed and "Sam (1 total)" in completed

    undo = await registry.handle(state, "/undo t-dishes")
    assert "'Do the dishes' uncompleted." in undo
    assert [e.direction for _, e in api.entries] == [LedgerDirection.FORWARD, LedgerDirection.REVERSAL]
    assert sum(e.amount for _, e in api.entries) == 0
    assert notices == []


@pytest.mark.asyncio
async def test_bad_arguments_get_usage_replies(settings) -> None:
    state = create_initial_state(settings=settings)
    await registry.handle(state, f"/use {DEMO_CONVERSATION_ID}")

    assert (await registry.handle(state, "/done 1")).startswith("Usage")
    assert "No person 9" in await registry.handle(state, "/done 1 9")
    assert "No completed task" in await registry.handle(state, "/undo 7")
    assert (await registry.handle(state, "/use")).startswith("Usage")


@pytest.mark.asyncio
async def test_hud_errors_are_rendered(settings) -> None:
    state = create_initial_state(settings=settings)
    await registry.handle(state, f"/use {DEMO_CONVERSATION_ID}")
    # Budget of zero makes the reward invalid.
    api = state.api
    assert isinstance(api, OfflineOnFireAPI)
    api.tasks["t-laundry"] = replace(api.tasks["t-laundry"], budget_cost=0)
    await registry.handle(state, "/reload")

    reply = await registry.handle(state, "/done t-laundry 1")
    assert reply.startswith("Error: Invalid reward for task t-laundry")


def test_time_ago() -> None:
    now = utc_now()
    assert time_ago(None) == "?"
    assert time_ago(now, now) == "Now"
    assert time_ago(now - timedelta(minutes=5), now) == "5m"
    assert time_ago(now - timedelta(hours=3, minutes=10), now) == "3h"


@pytest.mark.asyncio
async def test_status_shows_in_flight_update(settings, monkeypatch: pytest.MonkeyPatch) -> None:
    state = create_initial_state(settings=settings)
    await registry.handle(state, f"/use {DEMO_CONVERSATION_ID}")
    api = state.api
    assert isinstance(api, OfflineOnFireAPI)

    status = await registry.handle(state, "/status")
    assert "OFFLINE DEMO" in status and DEMO_CONVERSATION_ID in status
    assert "Saving" not in status

    gate = asyncio.Event()
    real_update = api.update_task_status

    async def held_update(*args, **kwargs):
        await gate.wait()
        return await real_update(*args, **kwargs)

    monkeypatch.setattr(api, "update_task_status", held_update)
    flow = asyncio.create_task(registry.handle(state, "/done 1 1"))
    await asyncio.sleep(0)

    assert "Saving a task update..." in await registry.handle(state, "/status")
    gate.set()
    assert "Congratulations You!" in await flow
    assert "Saving" not in await registry.handle(state, "/status")

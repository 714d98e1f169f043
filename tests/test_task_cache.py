# tests/test_task_cache.py

from __future__ import annotations

import asyncio

import pytest

from onfire_hud.core.errors import CacheInvariantError, FetchError
from onfire_hud.core.session import Session
from onfire_hud.tasks.task_cache import TaskCache
from onfire_hud.tasks.task_models import TaskStatus

from .fakes import CONV, OTHER_CONV, PAYER, WORKER, FakeRemoteAPI


@pytest.mark.asyncio
async def test_load_partitions_and_derives_people(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    assert await cache.load(session, CONV) is True

    assert [t.id for t in cache.active_tasks()] == ["t1", "t2"]
    assert [t.id for t in cache.completed_tasks()] == ["t3"]

    people = cache.people()
    # Signed-in user first, then first-seen order.
    assert [p.id for p in people] == [PAYER, WORKER]
    assert people[0].display_first_name == "Pat"
    assert people[1].display_first_name == "Wendy"
    assert people[1].avatar_url == "https://img/w.png"


@pytest.mark.asyncio
async def test_profile_failure_falls_back_to_ids(api: FakeRemoteAPI, session: Session) -> None:
    api.fail_profiles = True
    cache = TaskCache(api, api)
    await cache.load(session, CONV)
    names = {p.id: p.display_first_name for p in cache.people()}
    assert names == {PAYER: "Pat", WORKER: f"User {WORKER[:8]}"}


@pytest.mark.asyncio
async def test_fetch_failure_clears_previous_data(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)
    assert cache.active_tasks()

    api.fail_fetch = True
    with pytest.raises(FetchError):
        await cache.load(session, OTHER_CONV)

    assert cache.active_tasks() == []
    assert cache.completed_tasks() == []
    assert cache.people() == []


@pytest.mark.asyncio
async def test_failed_reload_of_same_conversation_clears(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)

    api.fail_fetch = True
    with pytest.raises(FetchError):
        await cache.revert_to_remote(session, CONV)
    assert cache.active_tasks() == [] and cache.completed_tasks() == []


@pytest.mark.asyncio
async def test_stale_load_is_discarded(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    gate = asyncio.Event()
    api.fetch_gates[CONV] = gate

    slow = asyncio.create_task(cache.load(session, CONV))
    await asyncio.sleep(0)

    # User switches conversation while the first load is still in flight.
    assert await cache.load(session, OTHER_CONV) is True
    gate.set()
    assert await slow is False

    assert cache.conversation_id == OTHER_CONV
    assert [t.id for t in cache.active_tasks()] == ["t9"]


@pytest.mark.asyncio
async def test_optimistic_moves_and_preconditions(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)

    done = cache.apply_optimistic_completion("t1", WORKER)
    assert done.status is TaskStatus.COMPLETED
    assert [t.id for t in cache.completed_tasks()] == ["t3", "t1"]

    with pytest.raises(CacheInvariantError):
        cache.apply_optimistic_completion("t1", WORKER)

    back = cache.apply_optimistic_reversal("t1")
    assert back.completed_by_user_id is None
    # Reverted tasks go back to the top of the active list.
    assert [t.id for t in cache.active_tasks()] == ["t1", "t2"]

    with pytest.raises(CacheInvariantError):
        cache.apply_optimistic_reversal("t2")


@pytest.mark.asyncio
async def test_state_invariant_holds_for_every_cached_task(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)
    cache.apply_optimistic_completion("t2", PAYER)
    cache.apply_optimistic_reversal("t3")

    for t in cache.active_tasks() + cache.completed_tasks():
        assert (t.status is TaskStatus.COMPLETED) == (t.completed_by_user_id is not None)


@pytest.mark.asyncio
async def test_colors_are_stable_across_loads(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)
    first = {p.id: p.color for p in cache.people()}

    await cache.load(session, OTHER_CONV)
    await cache.load(session, CONV)
    again = {p.id: p.color for p in cache.people()}
    assert first == again
    assert first[PAYER] != first[WORKER]


@pytest.mark.asyncio
async def test_completed_by_person_groups(api: FakeRemoteAPI, session: Session) -> None:
    cache = TaskCache(api, api)
    await cache.load(session, CONV)
    cache.apply_optimistic_completion("t1", WORKER)
    cache.apply_optimistic_completion("t2", PAYER)

    grouped = cache.completed_by_person()
    assert [t.id for t in grouped[WORKER]] == ["t3", "t1"]
    assert [t.id for t in grouped[PAYER]] == ["t2"]

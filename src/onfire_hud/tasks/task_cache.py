# src/onfire_hud/tasks/task_cache.py

"""
In-memory task cache for the selected conversation.

Holds the active/completed collections and the derived people list that the
HUD renders from. All mutation happens on the event loop thread; the only
hazard is an out-of-order response after the user switched conversations,
which is handled with a load generation counter.
"""

from __future__ import annotations

import logging
from datetime import datetime

from ..core.errors import CacheInvariantError, FetchError
from ..core.ports import ProfileAPI, TaskStoreAPI
from ..core.session import Session
from .task_models import PERSON_COLORS, Person, Task, UserProfile, first_name

logger = logging.getLogger(__name__)


class TaskCache:
    def __init__(self, task_api: TaskStoreAPI, profile_api: ProfileAPI | None = None) -> None:
        self._task_api = task_api
        self._profile_api = profile_api

        self._conversation_id: str | None = None
        self._generation = 0

        self._active: list[Task] = []
        self._completed: list[Task] = []
        self._people: list[Person] = []

        # person_id -> color, kept across loads so a person keeps their color.
        self._colors: dict[str, str] = {}

    # ---- read API ----

    @property
    def conversation_id(self) -> str | None:
        return self._conversation_id

    def is_current(self, conversation_id: str | None) -> bool:
        return conversation_id is not None and conversation_id == self._conversation_id

    def active_tasks(self) -> list[Task]:
        return list(self._active)

    def completed_tasks(self) -> list[Task]:
        return list(self._completed)

    def people(self) -> list[Person]:
        return list(self._people)

    def person_ids(self) -> list[str]:
        return [p.id for p in self._people]

    def find_task(self, task_id: str) -> Task | None:
        for t in self._active:
            if t.id == task_id:
                return t
        for t in self._completed:
            if t.id == task_id:
                return t
        return None

    def find_person(self, person_id: str) -> Person | None:
        for p in self._people:
            if p.id == person_id:
                return p
        return None

    def completed_by_person(self) -> dict[str, list[Task]]:
        """Completed tasks grouped by completer, in completion-list order."""
        grouped: dict[str, list[Task]] = {}
        for t in self._completed:
            if t.completed_by_user_id:
                grouped.setdefault(t.completed_by_user_id, []).append(t)
        return grouped

    # ---- loading ----

    def _clear(self) -> None:
        self._active = []
        self._completed = []
        self._people = []

    async def load(self, session: Session, conversation_id: str) -> bool:
        """
        Replace the cache with the conversation's remote tasks.

        Returns False when the response was discarded because another load
        (or a conversation switch) superseded it. On fetch failure the cache is
        cleared and FetchError is raised.
        """
        if not conversation_id:
            raise ValueError("conversation_id is required")

        if conversation_id != self._conversation_id:
            self._clear()
        self._conversation_id = conversation_id
        self._generation += 1
        generation = self._generation

        logger.debug("Loading tasks conversation=%s gen=%s", conversation_id, generation)
        try:
            tasks = await self._task_api.fetch_tasks(session, conversation_id)
        except Exception as e:
            if generation != self._generation:
                logger.info("Ignoring failed stale load conversation=%s", conversation_id)
                return False
            self._clear()
            raise FetchError(conversation_id) from e

        if generation != self._generation:
            logger.info("Discarding stale task list for conversation=%s", conversation_id)
            return False

        people = await self._derive_people(session, tasks)

        if generation != self._generation:
            logger.info("Discarding stale people list for conversation=%s", conversation_id)
            return False

        self._active = [t for t in tasks if not t.is_completed]
        self._completed = [t for t in tasks if t.is_completed]
        self._people = people

        logger.info(
            "Loaded conversation=%s: %d active, %d completed, %d people",
            conversation_id,
            len(self._active),
            len(self._completed),
            len(self._people),
        )
        return True

    async def revert_to_remote(self, session: Session, conversation_id: str) -> bool:
        """Drop optimistic state and reload from the task store."""
        logger.info("Resyncing conversation=%s from remote", conversation_id)
        return await self.load(session, conversation_id)

    async def _derive_people(self, session: Session, tasks: list[Task]) -> list[Person]:
        ordered: list[str] = []
        seen: set[str] = set()

        def add(user_id: str | None) -> None:
            if user_id and user_id not in seen:
                seen.add(user_id)
                ordered.append(user_id)

        add(session.user.id)
        for t in tasks:
            for a in t.assignee_user_ids:
                add(a)
            add(t.completed_by_user_id)
            add(t.created_by_user_id)

        profiles: dict[str, UserProfile] = {}
        if self._profile_api is not None and ordered:
            try:
                for p in await self._profile_api.fetch_user_profiles(session, ordered):
                    profiles[p.user_id] = p
            except Exception:
                # Names fall back to ids; not worth failing the load for.
                logger.warning("Profile lookup failed; using fallback names", exc_info=True)

        return [self._make_person(session, user_id, profiles.get(user_id)) for user_id in ordered]

    def _make_person(self, session: Session, user_id: str, profile: UserProfile | None) -> Person:
        name = ""
        avatar = None
        if profile is not None:
            name = first_name(profile.display_name)
            avatar = profile.profile_photo_url or None
        if not name and user_id == session.user.id:
            name = first_name(session.user.display_name())
            avatar = avatar or session.user.avatar_url
        if not name:
            name = f"User {user_id[:8]}"

        color = self._colors.get(user_id)
        if color is None:
            color = PERSON_COLORS[len(self._colors) % len(PERSON_COLORS)]
            self._colors[user_id] = color

        return Person(id=user_id, display_first_name=name, color=color, avatar_url=avatar)

    # ---- optimistic mutations ----

    def apply_optimistic_completion(
            self,
            task_id: str,
            person_id: str,
            now: datetime | None = None,
    ) -> Task:
        idx = self._index_of(self._active, task_id)
        if idx is None:
            raise CacheInvariantError(f"Task {task_id} is not active; cannot complete it")
        task = self._active[idx].with_completion(person_id, now)
        self._active = self._active[:idx] + self._active[idx + 1:]
        self._completed = [*self._completed, task]
        logger.debug("Task %s -> completed by %s (local)", task_id, person_id)
        return task

    def apply_optimistic_reversal(self, task_id: str, now: datetime | None = None) -> Task:
        idx = self._index_of(self._completed, task_id)
        if idx is None:
            raise CacheInvariantError(f"Task {task_id} is not completed; cannot reverse it")
        task = self._completed[idx].with_reversal(now)
        self._completed = self._completed[:idx] + self._completed[idx + 1:]
        self._active = [task, *self._active]
        logger.debug("Task %s -> active (local)", task_id)
        return task

    @staticmethod
    def _index_of(tasks: list[Task], task_id: str) -> int | None:
        for i, t in enumerate(tasks):
            if t.id == task_id:
                return i
        return None

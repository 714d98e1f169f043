# src/onfire_hud/summary/reconciler.py

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from ..core.errors import InvalidRewardError
from ..core.ports import SummaryAPI
from ..core.session import Session
from ..tasks.task_cache import TaskCache
from ..tasks.task_models import utc_now
from .summary_models import EarningsProgress, PersonEarningsSummary

logger = logging.getLogger(__name__)


class SummaryReconciler:
    """
    Keeps per-person earnings summaries from the remote feed.

    The stored map is replaced wholesale on every refresh. Until a person has
    a remote summary, progress is estimated from the task cache.
    """

    def __init__(self, summary_api: SummaryAPI, cache: TaskCache) -> None:
        self._api = summary_api
        self._cache = cache
        self._summaries: dict[str, PersonEarningsSummary] = {}

    def summary_for(self, person_id: str) -> PersonEarningsSummary | None:
        return self._summaries.get(person_id)

    def clear(self) -> None:
        self._summaries = {}

    async def refresh_all(self, session: Session, person_ids: Iterable[str]) -> dict[str, PersonEarningsSummary]:
        """Fetch every person's summary; one failure never blocks the others."""
        fresh: dict[str, PersonEarningsSummary] = {}
        for person_id in person_ids:
            try:
                summary = await self._api.fetch_person_summary(session, person_id)
            except Exception:
                logger.warning("Summary fetch failed person=%s; using local estimate", person_id, exc_info=True)
                continue
            if summary is not None:
                fresh[person_id] = summary

        self._summaries = fresh
        logger.debug("Summaries refreshed: %d people", len(fresh))
        return dict(fresh)

    def derive_progress(self, person_id: str, *, today: date | None = None) -> EarningsProgress:
        summary = self._summaries.get(person_id)
        if summary is not None:
            day = today or utc_now().date()
            return EarningsProgress(
                daily=abs(summary.day_total(day)),
                weekly=abs(summary.latest_week_total()),
                monthly=abs(summary.month_total(day)),
                lifetime=abs(summary.lifetime),
                net_lifetime=summary.lifetime,
                source="remote",
            )

        total = float(self._local_estimate(person_id))
        return EarningsProgress(
            daily=total,
            weekly=total,
            monthly=total,
            lifetime=total,
            net_lifetime=total,
            source="local",
        )

    def _local_estimate(self, person_id: str) -> int:
        total = 0
        for task in self._cache.completed_tasks():
            if task.completed_by_user_id != person_id:
                continue
            try:
                total += task.reward_amount
            except InvalidRewardError:
                logger.debug("Task %s has no valid reward; excluded from estimate", task.id)
        return total

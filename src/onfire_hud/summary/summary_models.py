# src/onfire_hud/summary/summary_models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Literal

# Bar fill scale: amount that fills a bar completely.
DAY_BAR_FULL = 10
WEEK_BAR_FULL = 50
MONTH_BAR_FULL = 200


def _to_amounts(raw: Any) -> dict[str, float]:
    if not isinstance(raw, dict):
        return {}
    out: dict[str, float] = {}
    for key, value in raw.items():
        try:
            out[str(key)] = float(value or 0)
        except (TypeError, ValueError):
            continue
    return out


@dataclass(frozen=True, slots=True)
class PersonEarningsSummary:
    """Remote aggregate of one person's ledger entries. Amounts are signed."""

    person_id: str
    daily: dict[str, float] = field(default_factory=dict)
    weekly: dict[str, float] = field(default_factory=dict)
    monthly: dict[str, float] = field(default_factory=dict)
    lifetime: float = 0.0

    @classmethod
    def from_api(cls, person_id: str, data: dict[str, Any]) -> PersonEarningsSummary:
        try:
            lifetime = float(data.get("total_amount") or 0)
        except (TypeError, ValueError):
            lifetime = 0.0
        return cls(
            person_id=person_id,
            daily=_to_amounts(data.get("daily_summary")),
            weekly=_to_amounts(data.get("weekly_summary")),
            monthly=_to_amounts(data.get("monthly_summary")),
            lifetime=lifetime,
        )

    def day_total(self, day: date) -> float:
        return self.daily.get(day.isoformat(), 0.0)

    def latest_week_total(self) -> float:
        if not self.weekly:
            return 0.0
        return self.weekly[max(self.weekly)]

    def month_total(self, day: date) -> float:
        return self.monthly.get(day.strftime("%Y-%m"), 0.0)


def _bar(amount: float, full: float) -> float:
    return min(amount / full * 100, 100.0)


@dataclass(frozen=True, slots=True)
class EarningsProgress:
    daily: float
    weekly: float
    monthly: float
    lifetime: float
    net_lifetime: float
    source: Literal["remote", "local"]

    @property
    def day_height(self) -> float:
        return _bar(self.daily, DAY_BAR_FULL)

    @property
    def week_height(self) -> float:
        return _bar(self.weekly, WEEK_BAR_FULL)

    @property
    def month_height(self) -> float:
        return _bar(self.monthly, MONTH_BAR_FULL)

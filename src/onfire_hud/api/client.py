# src/onfire_hud/api/client.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from ..core.errors import HudError
from ..core.session import Session
from ..ledger.ledger_models import LedgerEntry
from ..summary.summary_models import PersonEarningsSummary
from ..tasks.task_models import Conversation, Task, TaskStatus, UserProfile, tasks_from_api, utc_now

logger = logging.getLogger(__name__)

TASK_COLUMNS = (
    "id,title,description,status,priority,cover_image_url,attachment_urls,"
    "assignee_user_ids,created_by_user_id,completed_by_user_id,created_at,"
    "updated_at,chat_id,estimated_time_minutes,budget_cost"
)


class ApiError(HudError):
    """A remote call failed (transport error or non-2xx response)."""

    def __init__(self, message: str, *, status_code: int | None = None, body: str = "") -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message)

    @property
    def is_auth_error(self) -> bool:
        return self.status_code in (401, 403)


def _make_timeout(seconds: float) -> httpx.Timeout:
    return httpx.Timeout(seconds, connect=min(5.0, seconds))


def _first_row(data: Any) -> dict[str, Any] | None:
    # PostgREST returns arrays for table endpoints and often for RPCs too.
    if isinstance(data, list):
        data = data[0] if data else None
    return data if isinstance(data, dict) else None


class OnFireAPI:
    """
    httpx adapter for the task, ledger, summary, profile and conversation APIs.

    Stateless with respect to auth: every call takes the Session and builds
    its headers from it. No automatic retries.
    """

    def __init__(
            self,
            base_url: str,
            *,
            timeout_seconds: float = 15.0,
            transport: httpx.AsyncBaseTransport | None = None,
            conversation_type: str = "group",
    ) -> None:
        self._conversation_type = conversation_type
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=_make_timeout(timeout_seconds),
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings) -> OnFireAPI:
        return cls(
            settings.api_base_url,
            timeout_seconds=float(getattr(settings, "http_timeout_seconds", 15.0)),
            conversation_type=str(getattr(settings, "conversation_type", "group")),
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
            self,
            session: Session,
            method: str,
            path: str,
            *,
            params: dict[str, str] | None = None,
            json: Any = None,
            headers: dict[str, str] | None = None,
    ) -> Any:
        merged = session.auth_headers()
        if headers:
            merged.update(headers)
        try:
            resp = await self._client.request(method, path, params=params, json=json, headers=merged)
            resp.raise_for_status()
        except httpx.HTTPStatusError as e:
            body = e.response.text[:500]
            logger.warning("%s %s -> HTTP %s: %s", method, path, e.response.status_code, body)
            raise ApiError(
                f"{method} {path} failed with HTTP {e.response.status_code}",
                status_code=e.response.status_code,
                body=body,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("%s %s -> %s", method, path, e.__class__.__name__)
            raise ApiError(f"{method} {path} failed: {e.__class__.__name__}") from e

        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise ApiError(f"{method} {path} returned invalid JSON", status_code=resp.status_code) from e

    # ---- tasks ----

    async def fetch_tasks(self, session: Session, conversation_id: str) -> list[Task]:
        data = await self._request(
            session,
            "GET",
            "/tasks",
            params={
                "select": TASK_COLUMNS,
                "chat_id": f"eq.{conversation_id}",
                "order": "created_at.desc",
            },
        )
        if data is None:
            return []
        if not isinstance(data, list):
            raise ApiError("GET /tasks returned a non-list payload")
        return tasks_from_api(data)

    async def update_task_status(
            self,
            session: Session,
            task_id: str,
            *,
            status: TaskStatus,
            completed_by_user_id: str | None,
            progress: int,
    ) -> Task | None:
        data = await self._request(
            session,
            "PATCH",
            "/tasks",
            params={"id": f"eq.{task_id}"},
            json={
                "status": status.value,
                "completed_by_user_id": completed_by_user_id,
                "progress_percentage": progress,
                "updated_at": utc_now().isoformat(),
            },
            headers={"Prefer": "return=representation"},
        )
        if isinstance(data, list) and not data:
            # PostgREST answers 200 [] when the filter matched nothing.
            raise ApiError(f"PATCH /tasks matched no task id={task_id}", status_code=404)
        row = _first_row(data)
        if row is None:
            return None
        parsed = tasks_from_api([row])
        return parsed[0] if parsed else None

    # ---- ledger ----

    async def submit_ledger_entry(self, session: Session, entry: LedgerEntry) -> LedgerEntry:
        data = await self._request(session, "POST", "/rpc/create_transaction", json=entry.to_api())
        row = _first_row(data)
        if row is not None and row.get("success") is False:
            raise ApiError(str(row.get("message") or "Transaction rejected"), body=str(row))
        remote_id = (row or {}).get("transaction_id") or (row or {}).get("id")
        return entry.with_remote_id(str(remote_id) if remote_id else None)

    # ---- summaries ----

    async def fetch_person_summary(self, session: Session, person_id: str) -> PersonEarningsSummary | None:
        data = await self._request(
            session,
            "POST",
            "/rpc/get_transaction_summary",
            json={"p_user_id": person_id},
        )
        row = _first_row(data)
        if row is None:
            return None
        return PersonEarningsSummary.from_api(person_id, row)

    # ---- profiles / conversations ----

    async def fetch_user_profiles(self, session: Session, user_ids: Sequence[str]) -> list[UserProfile]:
        if not user_ids:
            return []
        data = await self._request(
            session,
            "GET",
            "/user_profiles",
            params={
                "select": "user_id,display_name,profile_photo_url",
                "user_id": f"in.({','.join(user_ids)})",
            },
        )
        out: list[UserProfile] = []
        for row in data or []:
            if not isinstance(row, dict) or not row.get("user_id"):
                continue
            out.append(
                UserProfile(
                    user_id=str(row["user_id"]),
                    display_name=row.get("display_name") or None,
                    profile_photo_url=row.get("profile_photo_url") or None,
                )
            )
        return out

    async def fetch_conversations(self, session: Session) -> list[Conversation]:
        data = await self._request(
            session,
            "POST",
            "/rpc/get_user_conversations",
            json={"p_conversation_type": self._conversation_type},
        )
        out: list[Conversation] = []
        for row in data or []:
            if not isinstance(row, dict):
                continue
            try:
                out.append(Conversation.from_api(row))
            except ValueError:
                logger.debug("Skipping conversation row without id: %r", row)
        return out

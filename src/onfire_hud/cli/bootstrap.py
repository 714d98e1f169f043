# src/onfire_hud/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data dir exists,
- builds the Session from settings,
- picks the HTTP adapter or the offline demo adapter,
- wires everything into AppState.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from ..api.client import OnFireAPI
from ..api.offline import OfflineOnFireAPI
from ..config import get_settings
from ..core.hud import TaskHUD
from ..core.ports import NoticeSink, RemoteAPI
from ..core.session import Session
from ..core.state import AppState

logger = logging.getLogger(__name__)

DEMO_USER_ID = "demo-user"


def create_initial_state(*, settings=None, notice_sink: NoticeSink | None = None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    settings.data_dir.mkdir(parents=True, exist_ok=True)

    session = Session.from_settings(settings)
    offline = bool(getattr(settings, "offline", False)) or not settings.has_credentials

    api: RemoteAPI
    if offline:
        if not settings.offline:
            logger.warning("No access token / user id configured; running with offline demo data.")
        if not session.user.id:
            session = replace(session, user=replace(session.user, id=DEMO_USER_ID, first_name="You"))
        api = OfflineOnFireAPI.with_demo_data(session.user.id)
    else:
        api = OnFireAPI.from_settings(settings)

    hud = TaskHUD(
        api,
        session,
        currency_code=settings.currency_code,
        notice_sink=notice_sink,
    )
    return AppState(settings=settings, session=session, api=api, hud=hud, offline=offline)

# src/onfire_hud/core/state.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..tasks.task_models import Conversation
from .hud import TaskHUD
from .ports import RemoteAPI
from .session import Session


@dataclass(slots=True)
class AppState:
    """
    Runtime state shared by front-ends.

    Concrete implementations are wired in cli/bootstrap.py (composition root).
    """

    settings: Any
    session: Session
    api: RemoteAPI
    hud: TaskHUD

    offline: bool = False
    conversations: list[Conversation] = field(default_factory=list)

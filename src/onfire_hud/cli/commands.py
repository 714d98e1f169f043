# src/onfire_hud/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import TypeVar

from ..core.errors import HudError
from ..core.state import AppState
from ..tasks.completion import TransitionOutcome, TransitionResult
from ..tasks.task_models import Person, Task, utc_now

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[
    [AppState, list[str], CommandEmitter | None], str | Awaitable[str]
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /tasks, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        Handlers may be plain functions or coroutines.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            result = handler(state, args, emit)
            if inspect.isawaitable(result):
                result = await result
        except HudError as e:
            logger.info("/%s failed: %s", name, e)
            return f"Error: {e}"
        return result

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting helpers ----

def time_ago(ts: datetime | None, now: datetime | None = None) -> str:
    if ts is None:
        return "?"
    now = now or utc_now()
    minutes = max(0, int((now - ts).total_seconds() // 60))
    if minutes == 0:
        return "Now"
    if minutes < 60:
        return f"{minutes}m"
    return f"{minutes // 60}h"


def _coins(task: Task) -> str:
    try:
        return str(task.reward_amount)
    except HudError:
        return "-"


def _pick(items: Sequence[T], token: str, key: Callable[[T], str]) -> T | None:
    """Resolve a 1-based list number or an exact id."""
    if token.isdigit():
        idx = int(token) - 1
        if 0 <= idx < len(items):
            return items[idx]
    for item in items:
        if key(item) == token:
            return item
    return None


def _person_name(state: AppState, person_id: str | None) -> str:
    if not person_id:
        return "?"
    person = state.hud.cache.find_person(person_id)
    return person.display_first_name if person else f"User {person_id[:8]}"


def _describe_outcome(state: AppState, outcome: TransitionOutcome, verb: str) -> str:
    if outcome.result is TransitionResult.NOOP:
        return f"Nothing to do: task is already {verb}."
    if outcome.result is TransitionResult.BUSY:
        return "Another task update is still in flight; try again in a moment."
    lines = []
    task = outcome.task
    if outcome.result is TransitionResult.STALE:
        lines.append("Conversation changed while saving; the list here was not updated.")
    elif task is not None:
        lines.append(f"'{task.title}' {verb}.")
    if outcome.ledger_entry is not None:
        entry = outcome.ledger_entry
        lines.append(
            f"Ledger: {_person_name(state, entry.from_person_id)} -> "
            f"{_person_name(state, entry.to_person_id)} {entry.amount:+d} {entry.currency_code}"
        )
    for notice in outcome.notices:
        lines.append(f"Warning: {notice}")
    return "\n".join(lines)


def _require_conversation(state: AppState) -> str | None:
    if state.hud.conversation_id is None:
        return "No conversation selected. Use /convos and /use <n>."
    return None


# ---- commands ----

def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    mode = "OFFLINE DEMO" if state.offline else str(getattr(state.settings, "api_base_url", "?"))
    hud = state.hud
    return (
        "Status:\n"
        f"  Backend: {mode}\n"
        f"  Signed in as: {state.session.user.display_name() or state.session.user.id}\n"
        f"  Conversation: {hud.conversation_id or '-'}\n"
        f"  Tasks: {len(hud.get_active_tasks())} active, {len(hud.get_completed_tasks())} completed, "
        f"{len(hud.get_people())} people"
        + ("\n  Saving a task update..." if hud.orchestrator.is_pending(hud.conversation_id) else "")
    )


async def cmd_convos(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    state.conversations = await state.api.fetch_conversations(state.session)
    if not state.conversations:
        return "No conversations found. Please create a conversation first."
    lines = ["Conversations:"]
    for i, c in enumerate(state.conversations, start=1):
        marker = "*" if c.id == state.hud.conversation_id else " "
        lines.append(f" {marker}{i}. {c.name}")
    return "\n".join(lines)


async def cmd_use(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /use <n>   -> select conversation n from the last /convos listing
    /use <id>  -> select a conversation by id
    """
    if not args:
        return "Usage: /use <number|conversation_id>"
    conv = _pick(state.conversations, args[0], key=lambda c: c.id)
    conversation_id = conv.id if conv else args[0]
    if emit:
        emit(f"Loading tasks for {conv.name if conv else conversation_id}...")
    await state.hud.select_conversation(conversation_id)
    return cmd_tasks(state, [], emit)


async def cmd_reload(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    missing = _require_conversation(state)
    if missing:
        return missing
    await state.hud.reload()
    return cmd_tasks(state, [], emit)


def cmd_tasks(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    missing = _require_conversation(state)
    if missing:
        return missing
    tasks = state.hud.get_active_tasks()
    if not tasks:
        return "No active tasks found for this conversation."
    lines = ["Available tasks:"]
    for i, t in enumerate(tasks, start=1):
        lines.append(f"  {i}. [{_coins(t)} coins] {t.title}")
    return "\n".join(lines)


def cmd_people(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    missing = _require_conversation(state)
    if missing:
        return missing
    people = state.hud.get_people()
    if not people:
        return "No people in this conversation yet."
    lines = ["People:"]
    for i, p in enumerate(people, start=1):
        lines.append(f"  {i}. {p.display_first_name} ({p.initial}, {p.color})")
    return "\n".join(lines)


async def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/done <task n> <person n>: mark an active task completed by someone."""
    missing = _require_conversation(state)
    if missing:
        return missing
    if len(args) < 2:
        return "Usage: /done <task number> <person number>"
    task = _pick(state.hud.get_active_tasks(), args[0], key=lambda t: t.id)
    if task is None:
        return f"No active task {args[0]}. Use /tasks."
    person: Person | None = _pick(state.hud.get_people(), args[1], key=lambda p: p.id)
    if person is None:
        return f"No person {args[1]}. Use /people."

    outcome = await state.hud.complete_task(task.id, person.id)
    if outcome.applied:
        return f"Congratulations {person.display_first_name}!\n" + _describe_outcome(state, outcome, "completed")
    return _describe_outcome(state, outcome, "completed")


async def cmd_undo(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """/undo <completed n>: move a completed task back to the active list."""
    missing = _require_conversation(state)
    if missing:
        return missing
    if not args:
        return "Usage: /undo <completed task number>"
    task = _pick(state.hud.get_completed_tasks(), args[0], key=lambda t: t.id)
    if task is None:
        return f"No completed task {args[0]}. Use /completed."
    outcome = await state.hud.uncomplete_task(task.id)
    return _describe_outcome(state, outcome, "uncompleted")


def cmd_completed(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    missing = _require_conversation(state)
    if missing:
        return missing
    completed = state.hud.get_completed_tasks()
    if not completed:
        return "No completed tasks yet."
    numbers = {t.id: i for i, t in enumerate(completed, start=1)}
    lines = ["Completed tasks:"]
    for person_id, tasks in state.hud.get_completed_by_person().items():
        total = 0
        for t in tasks:
            try:
                total += t.reward_amount
            except HudError:
                continue
        lines.append(f"  {_person_name(state, person_id)} ({total} total)")
        for t in tasks:
            lines.append(f"    {numbers[t.id]}. {t.title} [{_coins(t)}] {time_ago(t.updated_at)}")
    return "\n".join(lines)


def cmd_progress(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    missing = _require_conversation(state)
    if missing:
        return missing
    people = state.hud.get_people()
    if args:
        person = _pick(people, args[0], key=lambda p: p.id)
        if person is None:
            return f"No person {args[0]}. Use /people."
        people = [person]

    lines = ["Earnings progress:"]
    for p in people:
        prog = state.hud.get_progress(p.id)
        src = "" if prog.source == "remote" else " (estimate)"
        lines.append(
            f"  {p.display_first_name}: D {prog.daily:g} ({prog.day_height:.0f}%)  "
            f"W {prog.weekly:g} ({prog.week_height:.0f}%)  "
            f"M {prog.monthly:g} ({prog.month_height:.0f}%)  "
            f"total {prog.lifetime:g} net {prog.net_lifetime:+g}{src}"
        )
    return "\n".join(lines)


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show backend, user and conversation.")
registry.register("convos", cmd_convos, help_text="List group conversations.", aliases=["conversations"])
registry.register("use", cmd_use, help_text="Select a conversation: /use <n|id>.")
registry.register("reload", cmd_reload, help_text="Reload tasks from the server.", aliases=["refresh"])
registry.register("tasks", cmd_tasks, help_text="List active tasks.")
registry.register("people", cmd_people, help_text="List people in this conversation.")
registry.register("done", cmd_done, help_text="Complete a task: /done <task n> <person n>.")
registry.register("undo", cmd_undo, help_text="Uncomplete a task: /undo <completed n>.")
registry.register("completed", cmd_completed, help_text="Completed tasks grouped by person.")
registry.register("progress", cmd_progress, help_text="Earnings bars: /progress [person n].")

# src/onfire_hud/connectors/console_connector.py

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..cli.commands import registry as command_registry
from ..core.state import AppState

logger = logging.getLogger(__name__)


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


def print_notice(err: Exception) -> None:
    """Notice sink: ledger/summary problems that do not undo a task change."""
    _print_ts(f"[NOTICE] {err}")


async def run_console_loop(state: AppState) -> None:
    logger.info("Console connector started (offline=%s).", state.offline)
    _print_ts("[CONSOLE] Use /help for commands. Use /exit to quit.\n")

    default_conv = getattr(state.settings, "default_conversation_id", None)
    if default_conv:
        reply = await command_registry.handle(state, f"/use {default_conv}", emit=_print_ts)
    else:
        reply = await command_registry.handle(state, "/convos", emit=_print_ts)
        if state.conversations:
            reply = await command_registry.handle(state, "/use 1", emit=_print_ts)
    if reply:
        _print_ts(reply)

    while True:
        try:
            user_input = (await asyncio.to_thread(input, ">>> ")).strip()
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if not user_input:
            continue

        if user_input.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        try:
            reply = await command_registry.handle(state, user_input, emit=_print_ts)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is None:
            reply = "Commands start with '/'. Use /help."
        _print_ts(reply)

    logger.info("Console connector finished.")

# src/onfire_hud/core/errors.py

"""
Error taxonomy for the task/reward core.

Fatal errors abort a flow before anything is mutated. Non-fatal ones
(MissingPayerError, LedgerSubmissionError) are reported through the notice sink
after the task state change has already been committed remotely.
"""

from __future__ import annotations


class HudError(Exception):
    """Base class for all errors raised by the core."""


class FetchError(HudError):
    """Reading tasks for a conversation failed; the cache was cleared."""

    def __init__(self, conversation_id: str | None, message: str = "") -> None:
        self.conversation_id = conversation_id
        super().__init__(message or f"Failed to load tasks for conversation {conversation_id}")


class NotFoundError(HudError):
    """A task or person is not known to the current cache."""

    def __init__(self, kind: str, item_id: str) -> None:
        self.kind = kind
        self.item_id = item_id
        super().__init__(f"{kind} not found: {item_id}")


class InvalidRewardError(HudError):
    """The reward computed for a task is not positive."""

    def __init__(self, task_id: str, amount: float) -> None:
        self.task_id = task_id
        self.amount = amount
        super().__init__(f"Invalid reward for task {task_id}: {amount}")


class InvalidAmountError(HudError):
    """A ledger entry was requested with a non-positive magnitude."""

    def __init__(self, amount: float) -> None:
        self.amount = amount
        super().__init__(f"Ledger amount must be positive, got {amount}")


class MissingPayerError(HudError):
    """The task has no creator, so nobody can pay for it."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Task {task_id} has no created_by_user_id; ledger entry skipped")


class RemoteUpdateError(HudError):
    """The task store rejected a status update. Nothing was mutated locally."""

    def __init__(self, task_id: str, message: str = "") -> None:
        self.task_id = task_id
        super().__init__(message or f"Remote status update failed for task {task_id}")


class LedgerSubmissionError(HudError):
    """The ledger rejected an entry after the task status was already committed."""

    def __init__(self, task_id: str | None, direction: str, message: str = "") -> None:
        self.task_id = task_id
        self.direction = direction
        super().__init__(message or f"Ledger '{direction}' entry failed for task {task_id}")


class CacheInvariantError(HudError):
    """An optimistic mutation was applied to a task in the wrong collection."""

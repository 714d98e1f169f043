# src/onfire_hud/__init__.py

"""Task HUD client: optimistic task completion with a coin reward ledger."""

__version__ = "0.3.0"

# src/onfire_hud/core/session.py

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class User:
    """The signed-in user as returned by the login flow."""

    id: str
    first_name: str | None = None
    username: str | None = None
    avatar_url: str | None = None

    def display_name(self) -> str | None:
        return self.first_name or self.username or None


@dataclass(frozen=True, slots=True)
class Session:
    """
    Explicit auth context passed into every remote call.

    How the tokens were obtained (login, QR pairing) is not this package's
    concern; the adapter only needs a bearer token.
    """

    access_token: str
    user: User
    refresh_token: str | None = None

    def auth_headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    @classmethod
    def from_settings(cls, settings) -> Session:
        user = User(
            id=(getattr(settings, "user_id", "") or "").strip(),
            first_name=getattr(settings, "user_first_name", None) or None,
            username=getattr(settings, "username", None) or None,
            avatar_url=getattr(settings, "user_avatar_url", None) or None,
        )
        return cls(
            access_token=(getattr(settings, "access_token", "") or "").strip(),
            user=user,
            refresh_token=getattr(settings, "refresh_token", None) or None,
        )

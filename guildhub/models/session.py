from __future__ import annotations

import secrets

from pydantic import BaseModel, Field


def new_session_id() -> str:
    return secrets.token_urlsafe(48)


class Session(BaseModel):
    """Server-side session state for one client.

    ``user_id`` is a weak back-reference; the session never owns the user.
    ``return_to`` is read once by the OAuth callback and then cleared.
    """

    id: str = Field(default_factory=new_session_id)
    user_id: int | None = None
    return_to: str | None = None
    flash_notice: str | None = None
    flash_alert: str | None = None
    csrf_token: str | None = None
    expires_at: str | None = None
    created_at: str | None = None

    def pop_return_to(self) -> str | None:
        value, self.return_to = self.return_to, None
        return value

    def flash(self, notice: str | None = None, alert: str | None = None) -> None:
        """Replace any pending message with this one."""
        self.flash_notice = notice
        self.flash_alert = alert

    def consume_flash(self) -> dict:
        flash = {"notice": self.flash_notice, "alert": self.flash_alert}
        self.flash_notice = None
        self.flash_alert = None
        return flash

    def ensure_csrf_token(self) -> str:
        if not self.csrf_token:
            self.csrf_token = secrets.token_urlsafe(32)
        return self.csrf_token

    def reset(self) -> None:
        """Drop every field and rotate the id."""
        self.id = new_session_id()
        self.user_id = None
        self.return_to = None
        self.flash_notice = None
        self.flash_alert = None
        self.csrf_token = None
        self.expires_at = None
        self.created_at = None

    def state(self) -> tuple:
        """Fields that are persisted; used to detect changes during a request."""
        return (
            self.id,
            self.user_id,
            self.return_to,
            self.flash_notice,
            self.flash_alert,
            self.csrf_token,
        )

    @property
    def is_empty(self) -> bool:
        return not any(self.state()[1:])

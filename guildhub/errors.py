"""Exceptions raised by the identity layer.

Everything here is caught at the boundary of the OAuth handlers and turned
into a redirect with a short message. ``AuthRedirect`` is the one exception
that travels through FastAPI: the session guard raises it from a dependency
and the application-level handler converts it into a redirect.
"""

from __future__ import annotations


class GuildhubError(Exception):
    """Base class for GuildHub errors."""


class MissingAssertion(GuildhubError):
    """The provider sent no usable identity data."""


class ProviderFailure(GuildhubError):
    """The provider reported that authentication was not completed."""

    def __init__(self, code: str, description: str | None = None):
        super().__init__(f"{code}: {description or 'no description'}")
        self.code = code
        self.description = description


class PersistenceError(GuildhubError):
    """The identity store rejected a write."""


class ConflictError(PersistenceError):
    """A uniqueness constraint failed; the record exists now."""


class AuthRedirect(GuildhubError):
    """Abort the request and redirect, flashing ``alert`` on the way out."""

    def __init__(self, location: str, alert: str | None = None, status_code: int = 302):
        super().__init__(alert or location)
        self.location = location
        self.alert = alert
        self.status_code = status_code

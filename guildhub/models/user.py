from __future__ import annotations

from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from pydantic import BaseModel


class User(BaseModel):
    id: int
    external_id: str
    display_name: str | None = None
    avatar_url: str | None = None
    email: str | None = None
    is_admin: bool = False
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def is_member(self) -> bool:
        return not self.is_admin

    @property
    def label(self) -> str:
        """Name to show for the user, falling back to email and then the local id."""
        return self.display_name or self.email or f"User #{self.id}"

    def avatar(self, size: int = 128) -> str | None:
        """Avatar URL with the CDN ``size`` parameter set to ``size``."""
        if not self.avatar_url:
            return None
        parts = urlsplit(self.avatar_url)
        query = [(k, v) for k, v in parse_qsl(parts.query) if k != "size"]
        query.append(("size", str(size)))
        return urlunsplit(parts._replace(query=urlencode(query)))

    def public_dict(self) -> dict:
        return {
            "id": self.id,
            "external_id": self.external_id,
            "display_name": self.display_name,
            "label": self.label,
            "email": self.email,
            "avatar_url": self.avatar(),
            "is_admin": self.is_admin,
        }


class ProviderIdentity(BaseModel):
    """Identity asserted by the OAuth provider, validated at the boundary."""

    external_id: str
    name: str | None = None
    discriminator: str | None = None
    email: str | None = None
    avatar_url: str | None = None

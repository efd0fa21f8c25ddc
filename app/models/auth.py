"""Authentication models for the App Service client principal header."""

from __future__ import annotations

from pydantic import Field

from app.models.wire import CamelModel


class ClientPrincipal(CamelModel):
    identity_provider: str | None = None
    user_id: str | None = None
    user_details: str | None = None
    user_roles: list[str] = Field(default_factory=list)

    def has_role(self, role: str) -> bool:
        wanted = role.strip().lower()
        return any(str(r).strip().lower() == wanted for r in self.user_roles)

    @property
    def display(self) -> str | None:
        return self.user_details or self.user_id

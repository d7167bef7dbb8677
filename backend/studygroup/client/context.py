"""
Explicit authentication state for the client data layer.

Services receive an AuthContext instead of reading a global token holder,
so two clients (or two tests) never share a session.
"""

from dataclasses import dataclass, field
from typing import Any

from studygroup.db.models import UserRole
from studygroup.permissions import Action, Actor, ResourceType, evaluate


@dataclass
class AuthContext:
    """Token and user of the signed-in account, if any."""

    access_token: str | None = None
    refresh_token: str | None = None
    user: dict[str, Any] | None = field(default=None)

    @property
    def is_authenticated(self) -> bool:
        return self.access_token is not None

    @property
    def actor(self) -> Actor | None:
        if self.user is None:
            return None
        return Actor(
            id=self.user["id"],
            role=UserRole(self.user.get("role", UserRole.USER.value)),
            email=self.user.get("email"),
        )

    def set_session(
        self,
        user: dict[str, Any],
        access_token: str,
        refresh_token: str | None = None,
    ) -> None:
        self.user = user
        self.access_token = access_token
        if refresh_token is not None:
            self.refresh_token = refresh_token

    def clear(self) -> None:
        self.access_token = None
        self.refresh_token = None
        self.user = None

    def auth_headers(self) -> dict[str, str]:
        if self.access_token is None:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


def can(
    context: AuthContext,
    resource_type: ResourceType,
    action: Action,
    resource: Any = None,
) -> bool:
    """Whether the signed-in user may perform `action`; used to show or hide controls."""
    return evaluate(resource_type, context.actor, action, resource)

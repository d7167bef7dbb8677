"""
Ownership-based permission evaluator.

Pure decision functions shared by the API (enforcement) and the client data
layer (UI gating). Nothing here performs I/O or raises: ambiguous or
unauthenticated cases evaluate to False and the caller decides how to report
the denial.

Three rule families are deliberately kept apart:

- generic ownables (topics): admins do anything; everyone may read and
  create; owners (`created_by` / `author_id`) may also edit and delete.
- sessions: only admins create; admins or the presenter edit and delete.
- interactions: anyone creates; admins or the author edit; only admins
  delete, authors included.

Users get their own rules: admins create and delete; admins or the user
themselves edit.

Resources may be ORM objects, pydantic models or plain mappings. Mapping
lookups accept both snake_case and the camelCase API spelling.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from studygroup.db.models import UserRole


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    EDIT = "edit"
    DELETE = "delete"


class ResourceType(str, Enum):
    TOPIC = "topic"
    SESSION = "session"
    INTERACTION = "interaction"
    USER = "user"

    @property
    def label(self) -> str:
        return self.value.capitalize()


@dataclass(frozen=True)
class Actor:
    """The authenticated user performing a request."""

    id: int
    role: UserRole = UserRole.USER
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


_OPEN_ACTIONS = frozenset({Action.READ, Action.CREATE})

_CAMEL = {
    "created_by": "createdBy",
    "author_id": "authorId",
    "presenter_id": "presenterId",
}


def _field(resource: Any, name: str) -> Any:
    if isinstance(resource, Mapping):
        if name in resource:
            return resource[name]
        return resource.get(_CAMEL.get(name, name))
    return getattr(resource, name, None)


def owner_id(resource: Any) -> int | None:
    """Owner of a generic ownable: `created_by`, else `author_id`."""
    if resource is None:
        return None
    owner = _field(resource, "created_by")
    if owner is None:
        owner = _field(resource, "author_id")
    return owner


def can_perform(actor: Actor | None, action: Action, resource: Any = None) -> bool:
    """Generic ownership rule, used for topics and any other ownable."""
    if actor is None:
        return False
    if actor.is_admin:
        return True
    if resource is None:
        return action in _OPEN_ACTIONS
    owner = owner_id(resource)
    if owner is None:
        return action in _OPEN_ACTIONS
    return owner == actor.id or action in _OPEN_ACTIONS


def can_perform_session_action(actor: Actor | None, action: Action, session: Any = None) -> bool:
    if actor is None:
        return False
    if action == Action.READ:
        return True
    if action == Action.CREATE:
        return actor.is_admin
    if actor.is_admin:
        return True
    if session is None:
        return False
    return _field(session, "presenter_id") == actor.id


def can_perform_interaction_action(
    actor: Actor | None, action: Action, interaction: Any = None
) -> bool:
    if actor is None:
        return False
    if action in _OPEN_ACTIONS:
        return True
    if action == Action.DELETE:
        # Authors cannot remove their own contributions
        return actor.is_admin
    if actor.is_admin:
        return True
    if interaction is None:
        return False
    return _field(interaction, "author_id") == actor.id


def can_perform_user_action(actor: Actor | None, action: Action, target: Any = None) -> bool:
    """
    Account rules.

    Deleting yourself or a user who still owns content is refused later by the
    controller as a business rule; here an admin is simply allowed to delete.
    """
    if actor is None:
        return False
    if action == Action.READ:
        return True
    if actor.is_admin:
        return True
    if action == Action.EDIT and target is not None:
        return _field(target, "id") == actor.id
    return False


_EVALUATORS = {
    ResourceType.TOPIC: can_perform,
    ResourceType.SESSION: can_perform_session_action,
    ResourceType.INTERACTION: can_perform_interaction_action,
    ResourceType.USER: can_perform_user_action,
}


def evaluate(
    resource_type: ResourceType,
    actor: Actor | None,
    action: Action,
    resource: Any = None,
) -> bool:
    """Dispatch to the rule family for `resource_type`."""
    return _EVALUATORS[resource_type](actor, action, resource)

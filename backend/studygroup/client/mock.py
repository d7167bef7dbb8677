"""
In-memory DataService for demos and tests.

Runs the same permission evaluator and business rules as the API (creator
attendance, join/leave, cascading deletes, the user-delete guard) and
validates payloads with the same schemas, so code written against it
behaves the same against the real server.
"""

import copy
import itertools
import secrets
from collections.abc import Callable
from datetime import date, datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from studygroup.client.base import DataService, Record
from studygroup.client.context import AuthContext
from studygroup.core.errors import (
    BusinessRuleError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
    format_validation_errors,
)
from studygroup.db.models import InteractionType, UserRole
from studygroup.permissions import Action, Actor, ResourceType, evaluate
from studygroup.schemas.auth import (
    CompleteProfileRequest,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from studygroup.schemas.base import DATETIME_MINUTES_FORMAT
from studygroup.schemas.interactions import (
    KIND_FIELDS,
    InteractionUpdate,
    interaction_create_adapter,
)
from studygroup.schemas.sessions import SessionCreate, SessionUpdate
from studygroup.schemas.topics import TopicCreate, TopicUpdate, with_creator
from studygroup.schemas.user import UserCreate, UserUpdate

RESET_REQUESTED_MESSAGE = "If this email exists in our system, you will receive a password reset link."

_INTERACTION_KEYS = ("type", "sessionId", "content", "label", "description", "url", "category")


def _validate(validator: Callable[[Any], Any], data: Any) -> Any:
    try:
        return validator(data)
    except PydanticValidationError as e:
        message, fields = format_validation_errors(e.errors())
        raise ValidationError(message, details=fields) from None


def _wire(model: Any, **kwargs: Any) -> Record:
    return model.model_dump(by_alias=True, mode="json", **kwargs)


def _unique(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


def _newest_first(records: list[Record]) -> list[Record]:
    return sorted(records, key=lambda r: (r.get("createdAt", ""), r["id"]), reverse=True)


class MockDataService(DataService):
    """Keeps every record in dicts; nothing is persisted."""

    def __init__(self, context: AuthContext | None = None) -> None:
        super().__init__(context or AuthContext())
        self._users: dict[int, Record] = {}
        self._passwords: dict[int, str | None] = {}
        self._topics: dict[int, Record] = {}
        self._sessions: dict[int, Record] = {}
        self._interactions: dict[int, Record] = {}
        self._reset_tokens: dict[str, int] = {}
        self._ids = {name: itertools.count(1) for name in ("user", "topic", "session", "interaction")}

    @classmethod
    def demo(cls, context: AuthContext | None = None) -> "MockDataService":
        """A service seeded with an admin and a regular user."""
        service = cls(context)
        service.seed_user("Admin", "admin@learning.com", "admin123", role=UserRole.ADMIN)
        service.seed_user("Alice Johnson", "alice@learning.com", "password123")
        return service

    def seed_user(
        self,
        name: str,
        email: str,
        password: str | None = None,
        *,
        role: UserRole = UserRole.USER,
        profile_complete: bool = True,
    ) -> Record:
        """Insert a user directly, bypassing permissions. For fixtures and demos."""
        user_id = next(self._ids["user"])
        self._users[user_id] = {
            "id": user_id,
            "name": name,
            "email": email.lower(),
            "role": UserRole(role).value,
            "isProfileComplete": profile_complete,
            "createdAt": date.today().isoformat(),
        }
        self._passwords[user_id] = password
        return copy.deepcopy(self._users[user_id])

    # =========================================================================
    # ENFORCEMENT
    # =========================================================================

    def _signed_in(self) -> Actor:
        actor = self.context.actor
        if actor is None or not self.context.is_authenticated:
            raise UnauthorizedError("No token provided")
        if actor.id not in self._users:
            raise UnauthorizedError("Invalid token")
        return actor

    def _actor(self) -> Actor:
        actor = self._signed_in()
        if not self._users[actor.id]["isProfileComplete"]:
            raise ForbiddenError("Profile completion required")
        return actor

    def _authorize(self, resource_type: ResourceType, action: Action, resource: Any = None) -> Actor:
        actor = self._actor()
        if not evaluate(resource_type, actor, action, resource):
            raise ForbiddenError("Insufficient permissions")
        return actor

    def _require_admin(self) -> Actor:
        actor = self._actor()
        if not actor.is_admin:
            raise ForbiddenError("Admin access required")
        return actor

    def _lookup(self, store: dict[int, Record], resource_type: ResourceType, resource_id: int) -> Record:
        # Authentication is settled before anything is looked up
        self._actor()
        record = store.get(resource_id)
        if record is None:
            raise NotFoundError(f"{resource_type.label} not found")
        return record

    def _ensure_users_exist(self, user_ids: list[int]) -> None:
        missing = sorted(set(user_ids) - set(self._users))
        if missing:
            raise BusinessRuleError(
                f"Unknown attendee ids: {', '.join(str(i) for i in missing)}",
                details={"missing": missing},
            )

    def _user_by_email(self, email: str) -> Record | None:
        email = email.lower()
        return next((u for u in self._users.values() if u["email"] == email), None)

    # =========================================================================
    # USERS
    # =========================================================================

    async def list_users(self) -> list[Record]:
        self._require_admin()
        return copy.deepcopy(_newest_first(list(self._users.values())))

    async def get_user_names(self) -> list[Record]:
        self._actor()
        users = sorted(self._users.values(), key=lambda u: (u["name"], u["id"]))
        return [{"id": u["id"], "name": u["name"]} for u in users]

    async def create_user(self, data: Record) -> Record:
        self._require_admin()
        payload = _validate(UserCreate.model_validate, data)
        if self._user_by_email(payload.email) is not None:
            raise BusinessRuleError("User already exists")

        temporary_password = secrets.token_urlsafe(9)
        user = self.seed_user(payload.name, payload.email, temporary_password, role=payload.role)
        return {**user, "temporaryPassword": temporary_password}

    async def update_user(self, user_id: int, data: Record) -> Record:
        user = self._lookup(self._users, ResourceType.USER, user_id)
        actor = self._authorize(ResourceType.USER, Action.EDIT, user)
        payload = _validate(UserUpdate.model_validate, data)

        if payload.role is not None and payload.role.value != user["role"]:
            if not actor.is_admin:
                raise ForbiddenError("Only admins can change roles")
            user["role"] = payload.role.value
        if payload.email is not None and payload.email.lower() != user["email"]:
            other = self._user_by_email(payload.email)
            if other is not None and other["id"] != user_id:
                raise BusinessRuleError("Email already in use")
            user["email"] = payload.email.lower()
        if payload.name is not None:
            user["name"] = payload.name

        if actor.id == user_id:
            self.context.user = copy.deepcopy(user)
        return copy.deepcopy(user)

    async def delete_user(self, user_id: int) -> None:
        user = self._lookup(self._users, ResourceType.USER, user_id)
        actor = self._authorize(ResourceType.USER, Action.DELETE, user)
        if user_id == actor.id:
            raise BusinessRuleError("Cannot delete your own account")

        owned = {
            "topics": sum(1 for t in self._topics.values() if t["createdBy"] == user_id),
            "sessions": sum(1 for s in self._sessions.values() if s["presenterId"] == user_id),
            "interactions": sum(1 for i in self._interactions.values() if i["authorId"] == user_id),
        }
        if any(owned.values()):
            raise BusinessRuleError("Cannot delete user with existing content", details=owned)

        for record in itertools.chain(self._topics.values(), self._sessions.values()):
            record["attendees"] = [uid for uid in record["attendees"] if uid != user_id]
        del self._users[user_id]
        self._passwords.pop(user_id, None)

    # =========================================================================
    # TOPICS
    # =========================================================================

    def _topic_view(self, topic: Record) -> Record:
        sessions = sorted(
            (s for s in self._sessions.values() if s["topicId"] == topic["id"]),
            key=lambda s: s["startDateTime"],
        )
        return copy.deepcopy({**topic, "sessions": sessions})

    async def list_topics(self) -> list[Record]:
        self._actor()
        return [self._topic_view(t) for t in _newest_first(list(self._topics.values()))]

    async def get_topic(self, topic_id: int) -> Record:
        topic = self._lookup(self._topics, ResourceType.TOPIC, topic_id)
        self._authorize(ResourceType.TOPIC, Action.READ, topic)
        return self._topic_view(topic)

    async def create_topic(self, data: Record) -> Record:
        actor = self._authorize(ResourceType.TOPIC, Action.CREATE)
        payload = _validate(TopicCreate.model_validate, data)
        attendees = with_creator(actor.id, payload.attendees)
        self._ensure_users_exist(attendees)

        topic_id = next(self._ids["topic"])
        self._topics[topic_id] = {
            **_wire(payload, exclude={"attendees"}),
            "id": topic_id,
            "attendees": attendees,
            "createdBy": actor.id,
            "createdAt": date.today().isoformat(),
        }
        return self._topic_view(self._topics[topic_id])

    async def update_topic(self, topic_id: int, data: Record) -> Record:
        topic = self._lookup(self._topics, ResourceType.TOPIC, topic_id)
        self._authorize(ResourceType.TOPIC, Action.EDIT, topic)
        payload = _validate(TopicUpdate.model_validate, data)

        updated = {**topic, **_wire(payload, exclude_unset=True, exclude_none=True, exclude={"attendees"})}
        # ISO dates compare correctly as strings
        if updated["endDate"] < updated["startDate"]:
            raise BusinessRuleError("endDate must not be before startDate")
        if payload.attendees is not None:
            updated["attendees"] = with_creator(topic["createdBy"], payload.attendees)
            self._ensure_users_exist(updated["attendees"])

        self._topics[topic_id] = updated
        return self._topic_view(updated)

    async def delete_topic(self, topic_id: int) -> None:
        topic = self._lookup(self._topics, ResourceType.TOPIC, topic_id)
        self._authorize(ResourceType.TOPIC, Action.DELETE, topic)
        for session_id in [s["id"] for s in self._sessions.values() if s["topicId"] == topic_id]:
            self._drop_session(session_id)
        del self._topics[topic_id]

    async def join_topic(self, topic_id: int) -> None:
        topic = self._lookup(self._topics, ResourceType.TOPIC, topic_id)
        actor = self._authorize(ResourceType.TOPIC, Action.READ, topic)
        if actor.id in topic["attendees"]:
            raise BusinessRuleError("Already joined this topic")
        topic["attendees"].append(actor.id)

    async def leave_topic(self, topic_id: int) -> None:
        topic = self._lookup(self._topics, ResourceType.TOPIC, topic_id)
        actor = self._authorize(ResourceType.TOPIC, Action.READ, topic)
        if actor.id not in topic["attendees"]:
            raise NotFoundError("Not a member of this topic")
        if topic["createdBy"] == actor.id:
            raise BusinessRuleError("The topic creator cannot leave the topic")
        topic["attendees"].remove(actor.id)

    # =========================================================================
    # SESSIONS
    # =========================================================================

    def _drop_session(self, session_id: int) -> None:
        for interaction_id in [i["id"] for i in self._interactions.values() if i["sessionId"] == session_id]:
            del self._interactions[interaction_id]
        del self._sessions[session_id]

    async def list_sessions(self) -> list[Record]:
        self._actor()
        sessions = sorted(self._sessions.values(), key=lambda s: s["startDateTime"], reverse=True)
        return copy.deepcopy(sessions)

    async def get_session(self, session_id: int) -> Record:
        session = self._lookup(self._sessions, ResourceType.SESSION, session_id)
        self._authorize(ResourceType.SESSION, Action.READ, session)
        return copy.deepcopy(session)

    async def create_session(self, data: Record) -> Record:
        self._authorize(ResourceType.SESSION, Action.CREATE)
        payload = _validate(SessionCreate.model_validate, data)
        if payload.topic_id not in self._topics:
            raise NotFoundError("Topic not found")
        if payload.presenter_id not in self._users:
            raise NotFoundError("Presenter not found")
        attendees = _unique(payload.attendees)
        self._ensure_users_exist(attendees)

        session_id = next(self._ids["session"])
        self._sessions[session_id] = {
            **_wire(payload, exclude={"attendees"}),
            "id": session_id,
            "attendees": attendees,
        }
        return copy.deepcopy(self._sessions[session_id])

    async def update_session(self, session_id: int, data: Record) -> Record:
        session = self._lookup(self._sessions, ResourceType.SESSION, session_id)
        self._authorize(ResourceType.SESSION, Action.EDIT, session)
        payload = _validate(SessionUpdate.model_validate, data)

        if payload.presenter_id is not None and payload.presenter_id != session["presenterId"]:
            raise BusinessRuleError("Session presenter cannot be changed")
        if payload.topic_id is not None and payload.topic_id not in self._topics:
            raise NotFoundError("Topic not found")

        updated = {**session, **_wire(payload, exclude_unset=True, exclude_none=True, exclude={"attendees"})}
        if payload.attendees is not None:
            updated["attendees"] = _unique(payload.attendees)
            self._ensure_users_exist(updated["attendees"])

        self._sessions[session_id] = updated
        return copy.deepcopy(updated)

    async def delete_session(self, session_id: int) -> None:
        session = self._lookup(self._sessions, ResourceType.SESSION, session_id)
        self._authorize(ResourceType.SESSION, Action.DELETE, session)
        self._drop_session(session_id)

    # =========================================================================
    # INTERACTIONS
    # =========================================================================

    def _interaction_record(self, variant: Any, base: Record) -> Record:
        kind = InteractionType(variant.type)
        record = {
            "id": base["id"],
            "type": kind.value,
            "sessionId": variant.session_id,
            "authorId": base["authorId"],
            "createdAt": base["createdAt"],
        }
        wire = _wire(variant)
        for name in KIND_FIELDS[kind]:
            record[name] = wire[name]
        return record

    async def list_interactions(self, session_id: int | None = None) -> list[Record]:
        self._actor()
        interactions = [
            i for i in self._interactions.values() if session_id is None or i["sessionId"] == session_id
        ]
        return copy.deepcopy(_newest_first(interactions))

    async def create_interaction(self, data: Record) -> Record:
        actor = self._authorize(ResourceType.INTERACTION, Action.CREATE)
        variant = _validate(interaction_create_adapter.validate_python, data)
        if variant.session_id not in self._sessions:
            raise NotFoundError("Session not found")

        interaction_id = next(self._ids["interaction"])
        base = {
            "id": interaction_id,
            "authorId": actor.id,
            "createdAt": datetime.now().strftime(DATETIME_MINUTES_FORMAT),
        }
        self._interactions[interaction_id] = self._interaction_record(variant, base)
        return copy.deepcopy(self._interactions[interaction_id])

    async def update_interaction(self, interaction_id: int, data: Record) -> Record:
        interaction = self._lookup(self._interactions, ResourceType.INTERACTION, interaction_id)
        self._authorize(ResourceType.INTERACTION, Action.EDIT, interaction)
        changes = _validate(InteractionUpdate.model_validate, data)

        merged = {key: interaction[key] for key in _INTERACTION_KEYS if key in interaction}
        merged.update(_wire(changes, exclude_unset=True, exclude_none=True))
        variant = _validate(interaction_create_adapter.validate_python, merged)

        self._interactions[interaction_id] = self._interaction_record(variant, interaction)
        return copy.deepcopy(self._interactions[interaction_id])

    async def delete_interaction(self, interaction_id: int) -> None:
        interaction = self._lookup(self._interactions, ResourceType.INTERACTION, interaction_id)
        self._authorize(ResourceType.INTERACTION, Action.DELETE, interaction)
        del self._interactions[interaction_id]

    # =========================================================================
    # AUTHENTICATION
    # =========================================================================

    def _start_session(self, user_id: int) -> Record:
        user = copy.deepcopy(self._users[user_id])
        access_token = f"mock-access-{user_id}-{secrets.token_hex(8)}"
        refresh_token = f"mock-refresh-{user_id}-{secrets.token_hex(8)}"
        self.context.set_session(user, access_token, refresh_token)
        return {"user": user, "accessToken": access_token, "refreshToken": refresh_token}

    async def login(self, email: str, password: str) -> Record:
        credentials = _validate(LoginRequest.model_validate, {"email": email, "password": password})
        user = self._user_by_email(credentials.email)
        if user is None or self._passwords.get(user["id"]) != credentials.password:
            raise UnauthorizedError("Invalid credentials")
        return self._start_session(user["id"])

    async def signup(self, name: str, email: str, password: str) -> Record:
        payload = _validate(
            RegisterRequest.model_validate,
            {"name": name, "email": email, "password": password},
        )
        if self._user_by_email(payload.email) is not None:
            raise BusinessRuleError("User already exists")
        user = self.seed_user(payload.name, payload.email, payload.password)
        return self._start_session(user["id"])

    async def logout(self) -> None:
        self.context.clear()

    async def get_current_user(self) -> Record:
        actor = self._signed_in()
        return copy.deepcopy(self._users[actor.id])

    async def complete_profile(self, name: str, password: str) -> Record:
        actor = self._signed_in()
        payload = _validate(CompleteProfileRequest.model_validate, {"name": name, "password": password})
        user = self._users[actor.id]
        if user["isProfileComplete"]:
            raise BusinessRuleError("Profile is already complete")

        user["name"] = payload.name
        user["isProfileComplete"] = True
        self._passwords[actor.id] = payload.password
        return self._start_session(actor.id)

    async def forgot_password(self, email: str) -> Record:
        payload = _validate(ForgotPasswordRequest.model_validate, {"email": email})
        user = self._user_by_email(payload.email)
        if user is None:
            return {"message": RESET_REQUESTED_MESSAGE}
        token = secrets.token_hex(32)
        self._reset_tokens[token] = user["id"]
        return {"message": RESET_REQUESTED_MESSAGE, "resetToken": token}

    async def reset_password(self, token: str, password: str) -> Record:
        payload = _validate(ResetPasswordRequest.model_validate, {"token": token, "password": password})
        user_id = self._reset_tokens.pop(payload.token, None)
        if user_id is None or user_id not in self._users:
            raise BusinessRuleError("Invalid or expired reset token")
        self._passwords[user_id] = payload.password
        return {"message": "Password has been reset successfully"}

"""
FastAPI Dependencies for Authentication and Authorization.

Key patterns:
1. get_current_actor: Extracts and validates the JWT, returns an Actor
2. require_permission: Loads the target resource and runs the permission
   evaluator before the route body executes
3. No global "current user" state - always pass the actor explicitly

Security model:
- JWT sent as Authorization: Bearer header or HttpOnly cookie
- Token verification is signature + expiry only; no database round-trip
- Permission and existence checks run here, so routes never re-check
  authorization themselves
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Annotated, Any

from fastapi import Cookie, Depends, Header, Request
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.core.errors import (
    BusinessRuleError,
    ForbiddenError,
    NotFoundError,
    UnauthorizedError,
    ValidationError,
)
from studygroup.core.security import decode_token
from studygroup.db.models import Interaction, StudySession, Topic, User
from studygroup.db.session import get_db
from studygroup.permissions import Action, Actor, ResourceType, evaluate

logger = logging.getLogger(__name__)

DbSession = Annotated[AsyncSession, Depends(get_db)]


# =============================================================================
# AUTHENTICATION DEPENDENCIES
# =============================================================================


async def get_token_from_request(
    authorization: Annotated[str | None, Header()] = None,
    access_token: Annotated[str | None, Cookie()] = None,
) -> str:
    """
    Extract JWT token from request.

    Supports two methods (in order of preference):
    1. Authorization header: 'Bearer <token>'
    2. HttpOnly cookie named 'access_token'

    Any other Authorization scheme is ignored and the cookie is tried.
    """
    if authorization:
        parts = authorization.split()
        if len(parts) == 2 and parts[0].lower() == "bearer":
            return parts[1]
        logger.debug("Ignoring non-bearer Authorization header")

    if access_token:
        return access_token

    raise UnauthorizedError("No token provided")


async def get_authenticated_actor(
    token: Annotated[str, Depends(get_token_from_request)],
) -> Actor:
    """
    Validate the access token and return the actor it identifies.

    Accepts accounts whose profile is still incomplete; only the
    profile-completion endpoints should depend on this directly.
    """
    claims = decode_token(token, "access")
    if claims is None:
        raise UnauthorizedError("Invalid token")
    return Actor(id=claims.id, role=claims.role, email=claims.email)


async def get_current_actor(
    token: Annotated[str, Depends(get_token_from_request)],
) -> Actor:
    """
    The primary authentication dependency.

    Raises 401 if the token is missing, invalid or expired, and 403 while a
    Google sign-up has not completed its profile.
    """
    claims = decode_token(token, "access")
    if claims is None:
        raise UnauthorizedError("Invalid token")
    if not claims.profile_complete:
        raise ForbiddenError("Profile completion required")
    return Actor(id=claims.id, role=claims.role, email=claims.email)


async def require_admin(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
    if not actor.is_admin:
        raise ForbiddenError("Admin access required")
    return actor


# Type aliases for dependency injection
CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AuthenticatedActor = Annotated[Actor, Depends(get_authenticated_actor)]
AdminActor = Annotated[Actor, Depends(require_admin)]


# =============================================================================
# PERMISSION ENFORCEMENT
# =============================================================================

RESOURCE_MODELS: dict[ResourceType, type] = {
    ResourceType.TOPIC: Topic,
    ResourceType.SESSION: StudySession,
    ResourceType.INTERACTION: Interaction,
    ResourceType.USER: User,
}


async def load_resource(db: AsyncSession, resource_type: ResourceType, resource_id: int) -> Any:
    """Fetch one resource instance by primary key."""
    return await db.get(RESOURCE_MODELS[resource_type], resource_id)


def require_permission(
    resource_type: ResourceType,
    action: Action,
) -> Callable[..., Awaitable[Any]]:
    """
    Build a dependency enforcing `action` on `resource_type`.

    The resource id is read from the `<resource>_id` path parameter. When it
    is present (and the action is not create) the instance is loaded once;
    a miss is a 404. The evaluator then decides, a denial is a 403. The
    loaded instance is returned so the route can reuse it:

        @router.put("/{topic_id}")
        async def update_topic(
            data: TopicUpdate,
            topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.EDIT))],
            ...
        ):
    """
    id_param = f"{resource_type.value}_id"

    async def dependency(request: Request, actor: CurrentActor, db: DbSession) -> Any:
        resource = None
        raw_id = request.path_params.get(id_param)

        if raw_id is not None and action != Action.CREATE:
            try:
                resource_id = int(raw_id)
            except ValueError:
                raise ValidationError(f"Invalid {resource_type.value} id") from None
            resource = await load_resource(db, resource_type, resource_id)
            if resource is None:
                raise NotFoundError(f"{resource_type.label} not found")

        if not evaluate(resource_type, actor, action, resource):
            logger.info(
                "Denied %s on %s %s for user %s",
                action.value,
                resource_type.value,
                raw_id or "*",
                actor.id,
            )
            raise ForbiddenError("Insufficient permissions")

        return resource

    return dependency


# =============================================================================
# QUERY HELPERS
# =============================================================================


async def ensure_users_exist(db: AsyncSession, user_ids: list[int]) -> None:
    """Reject attendee lists that reference unknown users (400)."""
    wanted = set(user_ids)
    if not wanted:
        return
    result = await db.execute(select(User.id).where(User.id.in_(wanted)))
    missing = sorted(wanted - set(result.scalars()))
    if missing:
        raise BusinessRuleError(
            f"Unknown attendee ids: {', '.join(str(i) for i in missing)}",
            details={"missing": missing},
        )


async def ensure_actor_exists(db: AsyncSession, actor: Actor) -> None:
    """
    Reject tokens whose user has since been deleted (401).

    Tokens are verified without the database, so routes that write the
    actor's id into a foreign key check it first.
    """
    if await db.scalar(select(User.id).where(User.id == actor.id)) is None:
        raise UnauthorizedError("Invalid token")

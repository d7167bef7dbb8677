"""
User management routes.

Endpoints:
- GET    /users/names  - {id, name} for every user (any authenticated user)
- GET    /users        - Full user list (admin)
- POST   /users        - Create an account with a temporary password (admin)
- PUT    /users/{id}   - Update (admin or the user themselves)
- DELETE /users/{id}   - Delete (admin, never yourself, never a content owner)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from studygroup.api.deps import AdminActor, CurrentActor, DbSession, require_permission
from studygroup.core.errors import BusinessRuleError, ForbiddenError
from studygroup.core.security import generate_temporary_password, hash_password
from studygroup.db.models import (
    AuthIdentity,
    Interaction,
    SessionAttendee,
    StudySession,
    Topic,
    TopicAttendee,
    User,
)
from studygroup.permissions import Action, ResourceType
from studygroup.schemas.base import MessageResponse
from studygroup.schemas.user import UserCreate, UserCreated, UserName, UserRead, UserUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def count_owned_content(db: AsyncSession, user_id: int) -> dict[str, int]:
    """How many topics, sessions and interactions a user still owns."""
    topics = await db.scalar(select(func.count()).select_from(Topic).where(Topic.created_by == user_id))
    sessions = await db.scalar(
        select(func.count()).select_from(StudySession).where(StudySession.presenter_id == user_id)
    )
    interactions = await db.scalar(
        select(func.count()).select_from(Interaction).where(Interaction.author_id == user_id)
    )
    return {
        "topics": topics or 0,
        "sessions": sessions or 0,
        "interactions": interactions or 0,
    }


@router.get("/names", response_model=list[UserName])
async def list_user_names(
    current_actor: CurrentActor,
    db: DbSession,
) -> list[UserName]:
    """Names of every user, for attendee pickers and author labels."""
    result = await db.execute(select(User).order_by(User.name.asc(), User.id.asc()))
    return [UserName.model_validate(u) for u in result.scalars()]


@router.get("", response_model=list[UserRead])
async def list_users(
    admin: AdminActor,
    db: DbSession,
) -> list[UserRead]:
    """List all users, newest first."""
    result = await db.execute(select(User).order_by(User.created_at.desc(), User.id.desc()))
    return [UserRead.model_validate(u) for u in result.scalars()]


@router.post("", response_model=UserCreated, status_code=status.HTTP_201_CREATED)
async def create_user(
    data: UserCreate,
    admin: AdminActor,
    db: DbSession,
) -> UserCreated:
    """
    Create an account on someone's behalf.

    The generated password is returned once, in this response only.
    """
    if await get_user_by_email(db, data.email) is not None:
        raise BusinessRuleError("User already exists")

    temporary_password = generate_temporary_password()
    user = User(
        name=data.name,
        email=data.email.lower(),
        role=data.role,
        password_hash=hash_password(temporary_password),
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)

    logger.info("Admin %s created user %s (%s)", admin.id, user.id, user.role.value)
    return UserCreated(
        **dict(UserRead.model_validate(user)),
        temporary_password=temporary_password,
    )


@router.put("/{user_id}", response_model=UserRead)
async def update_user(
    user_id: int,
    data: UserUpdate,
    user: Annotated[User, Depends(require_permission(ResourceType.USER, Action.EDIT))],
    current_actor: CurrentActor,
    db: DbSession,
) -> UserRead:
    """Update a user. Only admins may change roles."""
    if data.role is not None and data.role != user.role and not current_actor.is_admin:
        raise ForbiddenError("Only admins can change roles")
    if data.email is not None and data.email.lower() != user.email:
        other = await get_user_by_email(db, data.email)
        if other is not None and other.id != user.id:
            raise BusinessRuleError("Email already in use")

    if data.role is not None:
        user.role = data.role
    if data.email is not None:
        user.email = data.email.lower()
    if data.name is not None:
        user.name = data.name

    await db.commit()
    await db.refresh(user)
    return UserRead.model_validate(user)


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: int,
    user: Annotated[User, Depends(require_permission(ResourceType.USER, Action.DELETE))],
    current_actor: CurrentActor,
    db: DbSession,
) -> MessageResponse:
    """
    Delete a user account.

    Refused for your own account and for users who still own topics,
    sessions or interactions; their content must be removed or reassigned
    first. Memberships and linked identities go with the account.
    """
    if user.id == current_actor.id:
        raise BusinessRuleError("Cannot delete your own account")

    owned = await count_owned_content(db, user.id)
    if any(owned.values()):
        raise BusinessRuleError("Cannot delete user with existing content", details=owned)

    await db.execute(delete(TopicAttendee).where(TopicAttendee.user_id == user.id))
    await db.execute(delete(SessionAttendee).where(SessionAttendee.user_id == user.id))
    await db.execute(delete(AuthIdentity).where(AuthIdentity.user_id == user.id))
    await db.execute(delete(User).where(User.id == user.id))
    await db.commit()

    logger.info("Admin %s deleted user %s", current_actor.id, user_id)
    return MessageResponse(message="User deleted successfully")

"""
Session CRUD routes.

Only admins schedule sessions. The presenter (or an admin) may edit or
delete a session; everyone authenticated may read.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studygroup.api.deps import CurrentActor, DbSession, ensure_users_exist, require_permission
from studygroup.core.errors import BusinessRuleError, NotFoundError
from studygroup.db.models import Interaction, SessionAttendee, StudySession, Topic, User
from studygroup.permissions import Action, ResourceType
from studygroup.schemas.base import MessageResponse
from studygroup.schemas.interactions import InteractionReadVariant, interaction_to_read
from studygroup.schemas.sessions import SessionCreate, SessionRead, SessionUpdate

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])


def session_load_options() -> tuple:
    return (selectinload(StudySession.attendees),)


async def load_session(db: AsyncSession, session_id: int) -> StudySession | None:
    result = await db.execute(
        select(StudySession)
        .where(StudySession.id == session_id)
        .options(*session_load_options())
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def ensure_topic_exists(db: AsyncSession, topic_id: int) -> None:
    if await db.get(Topic, topic_id) is None:
        raise NotFoundError("Topic not found")


def _unique(ids: list[int]) -> list[int]:
    return list(dict.fromkeys(ids))


@router.get("", response_model=list[SessionRead])
async def list_sessions(
    current_actor: CurrentActor,
    db: DbSession,
) -> list[SessionRead]:
    """List all sessions, latest start first."""
    result = await db.execute(
        select(StudySession)
        .options(*session_load_options())
        .order_by(StudySession.start_date_time.desc())
    )
    return [SessionRead.model_validate(s) for s in result.scalars()]


@router.post(
    "",
    response_model=SessionRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(ResourceType.SESSION, Action.CREATE))],
)
async def create_session(
    data: SessionCreate,
    current_actor: CurrentActor,
    db: DbSession,
) -> SessionRead:
    """Schedule a session. Topic and presenter must exist."""
    await ensure_topic_exists(db, data.topic_id)
    if await db.get(User, data.presenter_id) is None:
        raise NotFoundError("Presenter not found")
    attendee_ids = _unique(data.attendees)
    await ensure_users_exist(db, attendee_ids)

    session = StudySession(
        topic_id=data.topic_id,
        presenter_id=data.presenter_id,
        start_date_time=data.start_date_time,
        scope=data.scope,
        outline=data.outline,
        note_links=data.note_links,
        references=[ref.model_dump(mode="json") for ref in data.references],
    )
    db.add(session)
    await db.flush()
    db.add_all(SessionAttendee(session_id=session.id, user_id=user_id) for user_id in attendee_ids)
    await db.commit()

    logger.info("User %s scheduled session %s in topic %s", current_actor.id, session.id, data.topic_id)
    return SessionRead.model_validate(await load_session(db, session.id))


@router.get("/{session_id}", response_model=SessionRead)
async def get_session(
    session_id: int,
    session: Annotated[StudySession, Depends(require_permission(ResourceType.SESSION, Action.READ))],
    db: DbSession,
) -> SessionRead:
    """Get a specific session by ID."""
    return SessionRead.model_validate(await load_session(db, session.id))


@router.put("/{session_id}", response_model=SessionRead)
async def update_session(
    session_id: int,
    data: SessionUpdate,
    session: Annotated[StudySession, Depends(require_permission(ResourceType.SESSION, Action.EDIT))],
    db: DbSession,
) -> SessionRead:
    """Update a session. The presenter is fixed at creation."""
    if data.presenter_id is not None and data.presenter_id != session.presenter_id:
        raise BusinessRuleError("Session presenter cannot be changed")
    if data.topic_id is not None and data.topic_id != session.topic_id:
        await ensure_topic_exists(db, data.topic_id)
    if data.attendees is not None:
        attendee_ids = _unique(data.attendees)
        await ensure_users_exist(db, attendee_ids)

    if data.topic_id is not None:
        session.topic_id = data.topic_id
    if data.start_date_time is not None:
        session.start_date_time = data.start_date_time
    if data.scope is not None:
        session.scope = data.scope
    if data.outline is not None:
        session.outline = data.outline
    if data.note_links is not None:
        session.note_links = data.note_links
    if data.references is not None:
        session.references = [ref.model_dump(mode="json") for ref in data.references]

    if data.attendees is not None:
        await db.execute(delete(SessionAttendee).where(SessionAttendee.session_id == session.id))
        db.add_all(SessionAttendee(session_id=session.id, user_id=user_id) for user_id in attendee_ids)

    await db.commit()
    return SessionRead.model_validate(await load_session(db, session.id))


@router.delete("/{session_id}", response_model=MessageResponse)
async def delete_session(
    session_id: int,
    session: Annotated[StudySession, Depends(require_permission(ResourceType.SESSION, Action.DELETE))],
    db: DbSession,
) -> MessageResponse:
    """Delete a session with its attendance and interactions."""
    await db.execute(delete(Interaction).where(Interaction.session_id == session.id))
    await db.execute(delete(SessionAttendee).where(SessionAttendee.session_id == session.id))
    await db.execute(delete(StudySession).where(StudySession.id == session.id))
    await db.commit()
    logger.info("Deleted session %s", session_id)
    return MessageResponse(message="Session deleted successfully")


@router.get("/{session_id}/interactions", response_model=list[InteractionReadVariant])
async def list_session_interactions(
    session_id: int,
    session: Annotated[StudySession, Depends(require_permission(ResourceType.SESSION, Action.READ))],
    db: DbSession,
) -> list[InteractionReadVariant]:
    """Interactions on one session, oldest first."""
    result = await db.execute(
        select(Interaction)
        .where(Interaction.session_id == session.id)
        .order_by(Interaction.created_at.asc(), Interaction.id.asc())
    )
    return [interaction_to_read(i) for i in result.scalars()]

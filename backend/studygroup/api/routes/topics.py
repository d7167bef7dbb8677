"""
Topic CRUD and membership routes.

Endpoints:
- GET    /topics                - List topics, newest first
- POST   /topics                - Create a topic (creator becomes an attendee)
- GET    /topics/{id}           - Get one topic with attendees and sessions
- PUT    /topics/{id}           - Update (creator or admin)
- DELETE /topics/{id}           - Delete with sessions and interactions
- POST   /topics/{id}/join      - Join as an attendee
- DELETE /topics/{id}/leave     - Leave
- GET    /topics/{id}/sessions  - Sessions of a topic, earliest first
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from studygroup.api.deps import (
    CurrentActor,
    DbSession,
    ensure_actor_exists,
    ensure_users_exist,
    require_permission,
)
from studygroup.api.routes.sessions import session_load_options
from studygroup.core.errors import BusinessRuleError, NotFoundError
from studygroup.db.models import (
    Interaction,
    SessionAttendee,
    StudySession,
    Topic,
    TopicAttendee,
)
from studygroup.permissions import Action, ResourceType
from studygroup.schemas.base import MessageResponse
from studygroup.schemas.sessions import SessionRead
from studygroup.schemas.topics import TopicCreate, TopicRead, TopicUpdate, with_creator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/topics", tags=["topics"])

ALREADY_JOINED = "Already joined this topic"

TOPIC_LOAD_OPTIONS = (
    selectinload(Topic.attendees),
    selectinload(Topic.sessions).selectinload(StudySession.attendees),
)


async def load_topic(db: AsyncSession, topic_id: int) -> Topic | None:
    """Fetch a topic with attendees and sessions eagerly loaded."""
    result = await db.execute(
        select(Topic)
        .where(Topic.id == topic_id)
        .options(*TOPIC_LOAD_OPTIONS)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def delete_topic_cascade(db: AsyncSession, topic_id: int) -> None:
    """Remove a topic and everything hanging off it, children first."""
    session_ids = select(StudySession.id).where(StudySession.topic_id == topic_id)
    await db.execute(
        delete(Interaction)
        .where(Interaction.session_id.in_(session_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        delete(SessionAttendee)
        .where(SessionAttendee.session_id.in_(session_ids))
        .execution_options(synchronize_session=False)
    )
    await db.execute(delete(StudySession).where(StudySession.topic_id == topic_id))
    await db.execute(delete(TopicAttendee).where(TopicAttendee.topic_id == topic_id))
    await db.execute(delete(Topic).where(Topic.id == topic_id))


@router.get("", response_model=list[TopicRead])
async def list_topics(
    current_actor: CurrentActor,
    db: DbSession,
) -> list[TopicRead]:
    """List all topics, newest first."""
    result = await db.execute(
        select(Topic).options(*TOPIC_LOAD_OPTIONS).order_by(Topic.created_at.desc(), Topic.id.desc())
    )
    return [TopicRead.model_validate(t) for t in result.scalars()]


@router.post(
    "",
    response_model=TopicRead,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(ResourceType.TOPIC, Action.CREATE))],
)
async def create_topic(
    data: TopicCreate,
    current_actor: CurrentActor,
    db: DbSession,
) -> TopicRead:
    """Create a topic owned by the caller. The caller is always an attendee."""
    await ensure_actor_exists(db, current_actor)
    attendee_ids = with_creator(current_actor.id, data.attendees)
    await ensure_users_exist(db, attendee_ids)

    topic = Topic(
        created_by=current_actor.id,  # From auth, NEVER from request
        **data.model_dump(exclude={"attendees"}),
    )
    db.add(topic)
    await db.flush()
    db.add_all(TopicAttendee(topic_id=topic.id, user_id=user_id) for user_id in attendee_ids)
    await db.commit()

    logger.info("User %s created topic %s", current_actor.id, topic.id)
    return TopicRead.model_validate(await load_topic(db, topic.id))


@router.get("/{topic_id}", response_model=TopicRead)
async def get_topic(
    topic_id: int,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.READ))],
    db: DbSession,
) -> TopicRead:
    """Get a specific topic by ID."""
    return TopicRead.model_validate(await load_topic(db, topic.id))


@router.put("/{topic_id}", response_model=TopicRead)
async def update_topic(
    topic_id: int,
    data: TopicUpdate,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.EDIT))],
    db: DbSession,
) -> TopicRead:
    """Update a topic. A supplied attendee list replaces the current one."""
    updates = data.model_dump(exclude_unset=True, exclude_none=True, exclude={"attendees"})
    start_date = updates.get("start_date", topic.start_date)
    end_date = updates.get("end_date", topic.end_date)
    if end_date < start_date:
        raise BusinessRuleError("endDate must not be before startDate")
    if data.attendees is not None:
        attendee_ids = with_creator(topic.created_by, data.attendees)
        await ensure_users_exist(db, attendee_ids)

    for key, value in updates.items():
        setattr(topic, key, value)

    if data.attendees is not None:
        await db.execute(delete(TopicAttendee).where(TopicAttendee.topic_id == topic.id))
        db.add_all(TopicAttendee(topic_id=topic.id, user_id=user_id) for user_id in attendee_ids)

    await db.commit()
    return TopicRead.model_validate(await load_topic(db, topic.id))


@router.delete("/{topic_id}", response_model=MessageResponse)
async def delete_topic(
    topic_id: int,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.DELETE))],
    db: DbSession,
) -> MessageResponse:
    """Delete a topic together with its sessions and their interactions."""
    await delete_topic_cascade(db, topic.id)
    await db.commit()
    logger.info("Deleted topic %s", topic_id)
    return MessageResponse(message="Topic deleted successfully")


@router.post("/{topic_id}/join", response_model=MessageResponse)
async def join_topic(
    topic_id: int,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.READ))],
    current_actor: CurrentActor,
    db: DbSession,
) -> MessageResponse:
    """
    Join a topic as an attendee.

    A concurrent join by the same user loses on the (topic_id, user_id)
    unique constraint and gets the same error as a sequential repeat.
    """
    await ensure_actor_exists(db, current_actor)
    existing = await get_membership(db, topic.id, current_actor.id)
    if existing is not None:
        raise BusinessRuleError(ALREADY_JOINED)

    db.add(TopicAttendee(topic_id=topic.id, user_id=current_actor.id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise BusinessRuleError(ALREADY_JOINED) from None

    return MessageResponse(message="Successfully joined topic")


@router.delete("/{topic_id}/leave", response_model=MessageResponse)
async def leave_topic(
    topic_id: int,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.READ))],
    current_actor: CurrentActor,
    db: DbSession,
) -> MessageResponse:
    """Leave a topic. The creator always stays an attendee."""
    membership = await get_membership(db, topic.id, current_actor.id)
    if membership is None:
        raise NotFoundError("Not a member of this topic")
    if topic.created_by == current_actor.id:
        raise BusinessRuleError("The topic creator cannot leave the topic")

    await db.delete(membership)
    await db.commit()
    return MessageResponse(message="Successfully left topic")


@router.get("/{topic_id}/sessions", response_model=list[SessionRead])
async def list_topic_sessions(
    topic_id: int,
    topic: Annotated[Topic, Depends(require_permission(ResourceType.TOPIC, Action.READ))],
    db: DbSession,
) -> list[SessionRead]:
    """Sessions of one topic, earliest first."""
    result = await db.execute(
        select(StudySession)
        .where(StudySession.topic_id == topic.id)
        .options(*session_load_options())
        .order_by(StudySession.start_date_time.asc())
    )
    return [SessionRead.model_validate(s) for s in result.scalars()]


async def get_membership(db: AsyncSession, topic_id: int, user_id: int) -> TopicAttendee | None:
    result = await db.execute(
        select(TopicAttendee).where(
            TopicAttendee.topic_id == topic_id,
            TopicAttendee.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()

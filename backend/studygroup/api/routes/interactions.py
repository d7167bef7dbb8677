"""
Interaction CRUD routes.

Any authenticated user may add an interaction to a session. Authors may edit
their own; only admins delete (authors included).
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import delete, select

from studygroup.api.deps import CurrentActor, DbSession, ensure_actor_exists, require_permission
from studygroup.core.errors import NotFoundError, ValidationError, format_validation_errors
from studygroup.db.models import Interaction, StudySession
from studygroup.permissions import Action, ResourceType
from studygroup.schemas.base import MessageResponse
from studygroup.schemas.interactions import (
    PAYLOAD_FIELDS,
    InteractionCreateVariant,
    InteractionReadVariant,
    InteractionUpdate,
    interaction_create_adapter,
    interaction_fields,
    interaction_to_read,
)

router = APIRouter(prefix="/interactions", tags=["interactions"])


@router.get("", response_model=list[InteractionReadVariant])
async def list_interactions(
    current_actor: CurrentActor,
    db: DbSession,
    session_id: Annotated[int | None, Query(alias="sessionId")] = None,
) -> list[InteractionReadVariant]:
    """List interactions, newest first, optionally for one session."""
    query = select(Interaction)
    if session_id is not None:
        query = query.where(Interaction.session_id == session_id)
    query = query.order_by(Interaction.created_at.desc(), Interaction.id.desc())

    result = await db.execute(query)
    return [interaction_to_read(i) for i in result.scalars()]


@router.post(
    "",
    response_model=InteractionReadVariant,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_permission(ResourceType.INTERACTION, Action.CREATE))],
)
async def create_interaction(
    data: Annotated[InteractionCreateVariant, Body(discriminator="type")],
    current_actor: CurrentActor,
    db: DbSession,
) -> InteractionReadVariant:
    """Record an interaction authored by the caller."""
    await ensure_actor_exists(db, current_actor)
    if await db.get(StudySession, data.session_id) is None:
        raise NotFoundError("Session not found")

    interaction = Interaction(
        session_id=data.session_id,
        author_id=current_actor.id,  # From auth, NEVER from request
        **interaction_fields(data),
    )
    db.add(interaction)
    await db.commit()
    await db.refresh(interaction)
    return interaction_to_read(interaction)


@router.get("/{interaction_id}", response_model=InteractionReadVariant)
async def get_interaction(
    interaction_id: int,
    interaction: Annotated[
        Interaction, Depends(require_permission(ResourceType.INTERACTION, Action.READ))
    ],
) -> InteractionReadVariant:
    """Get a specific interaction by ID."""
    return interaction_to_read(interaction)


@router.put("/{interaction_id}", response_model=InteractionReadVariant)
async def update_interaction(
    interaction_id: int,
    data: InteractionUpdate,
    interaction: Annotated[
        Interaction, Depends(require_permission(ResourceType.INTERACTION, Action.EDIT))
    ],
    db: DbSession,
) -> InteractionReadVariant:
    """
    Update an interaction.

    The stored fields and the update are merged and validated as a complete
    variant, so the result is always a well-formed interaction.
    """
    merged: dict = {
        "type": interaction.type.value,
        "session_id": interaction.session_id,
    }
    for name in PAYLOAD_FIELDS:
        value = getattr(interaction, name)
        if value is not None:
            merged[name] = value.value if name == "category" else value
    merged.update(data.model_dump(exclude_unset=True, exclude_none=True, mode="json"))

    try:
        variant = interaction_create_adapter.validate_python(merged)
    except PydanticValidationError as e:
        message, fields = format_validation_errors(e.errors())
        raise ValidationError(message, details=fields) from None

    for key, value in interaction_fields(variant).items():
        setattr(interaction, key, value)
    await db.commit()
    await db.refresh(interaction)
    return interaction_to_read(interaction)


@router.delete("/{interaction_id}", response_model=MessageResponse)
async def delete_interaction(
    interaction_id: int,
    interaction: Annotated[
        Interaction, Depends(require_permission(ResourceType.INTERACTION, Action.DELETE))
    ],
    db: DbSession,
) -> MessageResponse:
    """Delete an interaction. Admin only."""
    await db.execute(delete(Interaction).where(Interaction.id == interaction.id))
    await db.commit()
    return MessageResponse(message="Interaction deleted successfully")

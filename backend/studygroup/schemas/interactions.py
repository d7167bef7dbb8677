"""
Interaction schemas.

Interactions are a tagged union on `type`:

- content kinds (question, speakerFeedback, weeklyInsight,
  outlineSuggestion) carry a non-empty `content`
- noteLink carries label, description and url
- reference carries label, description, url and category

Each kind is its own model so a payload missing a kind's fields fails
validation with the missing field names.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from studygroup.db.models import Interaction, InteractionType, ReferenceCategory
from studygroup.schemas.base import BaseSchema, MinuteDateTime, UrlStr

ContentKind = Literal["question", "speakerFeedback", "weeklyInsight", "outlineSuggestion"]

CONTENT_KINDS = frozenset(
    {
        InteractionType.QUESTION,
        InteractionType.SPEAKER_FEEDBACK,
        InteractionType.WEEKLY_INSIGHT,
        InteractionType.OUTLINE_SUGGESTION,
    }
)

# Columns that belong to each kind; everything else is cleared on write
KIND_FIELDS: dict[InteractionType, tuple[str, ...]] = {
    **{kind: ("content",) for kind in CONTENT_KINDS},
    InteractionType.NOTE_LINK: ("label", "description", "url"),
    InteractionType.REFERENCE: ("label", "description", "url", "category"),
}
PAYLOAD_FIELDS = ("content", "label", "description", "url", "category")


# =============================================================================
# CREATE
# =============================================================================


class ContentInteractionCreate(BaseSchema):
    type: ContentKind
    session_id: int
    content: str = Field(..., min_length=1)


class NoteLinkCreate(BaseSchema):
    type: Literal["noteLink"]
    session_id: int
    label: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    url: UrlStr


class ReferenceCreate(BaseSchema):
    type: Literal["reference"]
    session_id: int
    label: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    url: UrlStr
    category: ReferenceCategory


InteractionCreateVariant = Union[ContentInteractionCreate, NoteLinkCreate, ReferenceCreate]
InteractionCreate = Annotated[InteractionCreateVariant, Field(discriminator="type")]
interaction_create_adapter: TypeAdapter[Any] = TypeAdapter(InteractionCreate)


def interaction_fields(data: InteractionCreateVariant) -> dict[str, Any]:
    """Column values for a validated variant, other kinds' columns cleared."""
    kind = InteractionType(data.type)
    values: dict[str, Any] = {name: None for name in PAYLOAD_FIELDS}
    for name in KIND_FIELDS[kind]:
        values[name] = getattr(data, name)
    values["type"] = kind
    return values


# =============================================================================
# UPDATE
# =============================================================================


class InteractionUpdate(BaseSchema):
    """
    Partial update. The merged result must still be a complete variant, so
    switching `type` requires sending the new kind's fields.
    """

    type: InteractionType | None = None
    content: str | None = None
    label: str | None = None
    description: str | None = None
    url: str | None = None
    category: ReferenceCategory | None = None


# =============================================================================
# READ
# =============================================================================


class _InteractionReadBase(BaseSchema):
    id: int
    session_id: int
    author_id: int
    created_at: MinuteDateTime


class ContentInteractionRead(_InteractionReadBase):
    type: ContentKind
    content: str = ""


class NoteLinkRead(_InteractionReadBase):
    type: Literal["noteLink"]
    label: str = ""
    description: str = ""
    url: str = ""


class ReferenceRead(_InteractionReadBase):
    type: Literal["reference"]
    label: str = ""
    description: str = ""
    url: str = ""
    category: ReferenceCategory = ReferenceCategory.WEB


InteractionReadVariant = Union[ContentInteractionRead, NoteLinkRead, ReferenceRead]
InteractionRead = Annotated[InteractionReadVariant, Field(discriminator="type")]
interaction_read_adapter: TypeAdapter[Any] = TypeAdapter(InteractionRead)


def interaction_to_read(interaction: Interaction) -> InteractionReadVariant:
    """Shape a stored interaction into its API variant."""
    kind = InteractionType(interaction.type)
    payload: dict[str, Any] = {
        "id": interaction.id,
        "type": kind.value,
        "session_id": interaction.session_id,
        "author_id": interaction.author_id,
        "created_at": interaction.created_at,
    }
    for name in KIND_FIELDS[kind]:
        value = getattr(interaction, name)
        if value is not None:
            payload[name] = value
    return interaction_read_adapter.validate_python(payload)

"""Base schema configuration and shared field types."""

from datetime import datetime
from typing import Annotated, Any

from pydantic import AfterValidator, AnyUrl, BaseModel, BeforeValidator, ConfigDict, PlainSerializer, TypeAdapter
from pydantic.alias_generators import to_camel

DATE_FORMAT = "%Y-%m-%d"
DATETIME_MINUTES_FORMAT = "%Y-%m-%d %H:%M"


class BaseSchema(BaseModel):
    """Base schema with common configuration.

    Python attributes are snake_case; the JSON wire format is camelCase.
    Both spellings are accepted on input.
    """

    model_config = ConfigDict(
        from_attributes=True,  # Enable ORM mode
        str_strip_whitespace=True,
        validate_assignment=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


class MessageResponse(BaseSchema):
    """Plain acknowledgement body."""

    message: str


_url_adapter = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    url = _url_adapter.validate_python(value)
    if url.scheme not in ("http", "https"):
        raise ValueError("URL must use http or https")
    return value


def _parse_minutes(value: Any) -> Any:
    if isinstance(value, str):
        text = value.strip().replace("T", " ")
        try:
            return datetime.strptime(text[:16], DATETIME_MINUTES_FORMAT)
        except ValueError as e:
            raise ValueError("Invalid datetime format (YYYY-MM-DD HH:MM)") from e
    return value


# A URL kept exactly as submitted (no normalisation), but validated
UrlStr = Annotated[str, AfterValidator(_check_url)]

# "YYYY-MM-DD HH:MM" on the wire, datetime in Python
MinuteDateTime = Annotated[
    datetime,
    BeforeValidator(_parse_minutes),
    PlainSerializer(lambda v: v.strftime(DATETIME_MINUTES_FORMAT), return_type=str),
]

# Timestamp rendered as a calendar day
DayStamp = Annotated[
    datetime,
    PlainSerializer(lambda v: v.strftime(DATE_FORMAT), return_type=str),
]

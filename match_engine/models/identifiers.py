"""Identifier types and helpers shared across models and repositories."""

from __future__ import annotations

from typing import Annotated, Any, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pydantic.functional_serializers import PlainSerializer
from pydantic.functional_validators import BeforeValidator


def _validate_object_id(value: Any) -> ObjectId:
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str):
        parsed = parse_object_id(value)
        if parsed is None:
            raise ValueError("Invalid ObjectId hex string")
        return parsed
    raise TypeError("ObjectId value must be str or ObjectId instance")


def parse_object_id(value: Any) -> Optional[ObjectId]:
    """Return an ObjectId for ``value`` or None when it is not a valid id.

    Path parameters arrive as strings; a malformed id can never reference a
    stored document, so callers treat None as "not found".
    """
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not text:
        return None
    try:
        return ObjectId(text)
    except (InvalidId, TypeError):
        return None


PyObjectId = Annotated[
    ObjectId,
    BeforeValidator(_validate_object_id),
    PlainSerializer(lambda value: str(value), return_type=str),
]

__all__ = ["PyObjectId", "parse_object_id"]

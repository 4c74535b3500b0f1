"""
Turning Pydantic errors into per-field messages.

Both FastAPI's RequestValidationError (request bodies/queries) and a plain
pydantic ValidationError (payloads validated in code) end up as::

    {"title": ["String should have at least 1 character"],
     "metadata.duration_minutes": ["Input should be greater than 0"]}
"""

from typing import Any, Dict, Iterable, List, Type, TypeVar

from pydantic import BaseModel, ValidationError

from kbase.core.errors import PayloadValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)

# Location prefixes FastAPI adds that mean nothing to clients
_REQUEST_PARTS = {"body", "query", "path", "header"}


def errors_by_field(errors: Iterable[dict[str, Any]]) -> Dict[str, List[str]]:
    fields: Dict[str, List[str]] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        if loc and loc[0] in _REQUEST_PARTS:
            loc = loc[1:]
        key = ".".join(loc) or "_schema"
        message = error.get("msg", "Invalid value")
        # "Value error, URL is required for videos" -> "URL is required for videos"
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        fields.setdefault(key, []).append(message)
    return fields


def validate_payload(schema: Type[SchemaT], data: Any) -> SchemaT:
    """Validate ``data`` against ``schema`` or raise PayloadValidationError."""
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise PayloadValidationError(errors_by_field(e.errors())) from e

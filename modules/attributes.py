"""Constrained attribute structs for resource functions.

Every resource function validates the caller's attribute mapping through a
``BaseAttributes`` subclass before anything is synthesized. A subclass is a
flat-to-nested schema: each field has a type, a required/optional marker, a
default and optional constraints; nested mappings are nested subclasses and
cross-field rules live in ``model_validator(mode="after")`` hooks.

Validation is fail-fast: the first failing rule becomes the message of a
``ResourceValidationError`` and the full list is kept on ``errors``.
"""

from collections.abc import Mapping
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from modules.exceptions import ResourceValidationError

_MESSAGE_PREFIXES = ("Value error, ", "Assertion failed, ")


def format_validation_error(exc: ValidationError) -> Tuple[str, List[Dict[str, str]]]:
    """Convert a pydantic ValidationError into a message and an error list.

    Custom rule messages (raised as ValueError inside validators) are used
    verbatim. Built-in constraint messages are prefixed with the field path.

    Args:
        exc: Error raised by pydantic

    Returns:
        Tuple of (first message, list of {"field", "message"} dicts)
    """
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error.get("loc", ()))
        raw = error.get("msg", "")
        custom = raw.startswith(_MESSAGE_PREFIXES)
        message = raw
        for prefix in _MESSAGE_PREFIXES:
            if message.startswith(prefix):
                message = message[len(prefix) :]
        if field and not custom:
            message = f"{field}: {message}"
        errors.append({"field": field, "message": message})
    if not errors:
        return str(exc), []
    return errors[0]["message"], errors


def _compact(value: Any) -> Any:
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            item = _compact(item)
            if item is None or item == {} or item == []:
                continue
            result[key] = item
        return result
    if isinstance(value, list):
        return [_compact(item) for item in value]
    return value


class BaseAttributes(BaseModel):
    """Base class for validated, immutable resource attribute structs."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
    )

    # Terraform type used to label validation errors
    resource_type: ClassVar[Optional[str]] = None

    @classmethod
    def build(cls, attributes: Optional[Mapping] = None):
        """Validate and coerce a raw attribute mapping.

        Args:
            attributes: Caller-supplied mapping (None is treated as empty)

        Returns:
            Immutable instance of the subclass

        Raises:
            ResourceValidationError: If any field or cross-field rule fails
        """
        if attributes is None:
            attributes = {}
        if isinstance(attributes, cls):
            return attributes
        if isinstance(attributes, BaseModel):
            attributes = attributes.model_dump()
        if not isinstance(attributes, Mapping):
            raise ResourceValidationError(
                f"Attributes must be a mapping, got {type(attributes).__name__}",
                resource_type=cls.resource_type,
            )
        try:
            return cls.model_validate(dict(attributes))
        except ValidationError as e:
            message, errors = format_validation_error(e)
            raise ResourceValidationError(
                message, resource_type=cls.resource_type, errors=errors
            ) from e

    def to_dict(self) -> Dict[str, Any]:
        """Return all fields as plain Python data."""
        return self.model_dump()

    def compact_dict(self) -> Dict[str, Any]:
        """Return fields without None values and empty collections."""
        return _compact(self.model_dump())

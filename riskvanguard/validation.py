"""
RiskVanguard - Input validation helpers.

Provides validation functions for document inputs and workflow definitions
before they reach an agent or the workflow engine.
"""

import re
from typing import Any, Optional

from .exceptions import ValidationError as BaseValidationError


class InputValidationError(BaseValidationError):
    """Raised when input validation fails before processing starts."""

    def __init__(self, message: str, field: str = None, value: Any = None):
        super().__init__(message, errors=[{"field": field, "message": message}])
        self.field = field
        self.value = value


ValidationError = InputValidationError

_IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.\-]*$")


def validate_required(value: Any, field_name: str) -> None:
    """Validate that a required field is not None or empty."""
    if value is None:
        raise ValidationError(f"{field_name} is required", field=field_name)
    if isinstance(value, str) and not value.strip():
        raise ValidationError(f"{field_name} cannot be empty", field=field_name, value=value)


def validate_string_length(
    value: str,
    field_name: str,
    min_length: int = None,
    max_length: int = None
) -> None:
    """Validate string length constraints."""
    if value is None:
        return

    if min_length is not None and len(value) < min_length:
        raise ValidationError(
            f"{field_name} must be at least {min_length} characters",
            field=field_name,
            value=value
        )

    if max_length is not None and len(value) > max_length:
        raise ValidationError(
            f"{field_name} must be at most {max_length} characters",
            field=field_name,
            value=value
        )


def validate_in_list(value: Any, field_name: str, allowed_values: list) -> None:
    """Validate that a value is in a list of allowed values."""
    if value is None:
        return

    if value not in allowed_values:
        raise ValidationError(
            f"{field_name} must be one of: {', '.join(str(v) for v in allowed_values)}",
            field=field_name,
            value=value
        )


def validate_dict(value: Any, field_name: str) -> None:
    """Validate that a value is a dictionary."""
    if value is None:
        return

    if not isinstance(value, dict):
        raise ValidationError(
            f"{field_name} must be a dictionary",
            field=field_name,
            value=value
        )


def validate_list(value: Any, field_name: str, item_type: type = None) -> None:
    """Validate that a value is a list with optional item type checking."""
    if value is None:
        return

    if not isinstance(value, (list, tuple)):
        raise ValidationError(
            f"{field_name} must be a list",
            field=field_name,
            value=value
        )

    if item_type is not None:
        for i, item in enumerate(value):
            if not isinstance(item, item_type):
                raise ValidationError(
                    f"{field_name}[{i}] must be of type {item_type.__name__}",
                    field=f"{field_name}[{i}]",
                    value=item
                )


def validate_identifier(value: str, field_name: str = "id") -> None:
    """Validate a step or record identifier (letters, digits, '-', '_', '.')."""
    validate_required(value, field_name)

    if not isinstance(value, str) or not _IDENTIFIER_PATTERN.match(value):
        raise ValidationError(
            f"{field_name} must start with a letter or digit and contain only "
            "letters, digits, '-', '_' or '.'",
            field=field_name,
            value=value
        )

    validate_string_length(value, field_name, max_length=255)


def validate_domain_input(document: Any) -> None:
    """
    Validate a document before it is handed to a domain agent.

    Only a missing input or missing/blank content is fatal. The document type
    is checked by the agent itself, which only warns on unknown types.
    """
    if document is None:
        raise ValidationError("input is required", field="input")

    validate_required(getattr(document, "content", None), "content")
    validate_dict(getattr(document, "metadata", None), "metadata")
    validate_dict(getattr(document, "context", None), "context")


def validate_step_definitions(
    steps: list[dict[str, Any]],
    allowed_types: Optional[list[str]] = None,
) -> None:
    """Validate raw step definitions before building a workflow from them."""
    validate_list(steps, "steps", dict)

    seen: set[str] = set()
    for i, step in enumerate(steps):
        step_id = step.get("id")
        validate_identifier(step_id, f"steps[{i}].id")
        if step_id in seen:
            raise ValidationError(
                f"Duplicate step id '{step_id}'",
                field=f"steps[{i}].id",
                value=step_id
            )
        seen.add(step_id)

        if allowed_types is not None:
            validate_in_list(step.get("type"), f"steps[{i}].type", allowed_types)

        deps = step.get("dependencies", step.get("depends_on"))
        validate_list(deps, f"steps[{i}].dependencies", str)
        validate_dict(step.get("config"), f"steps[{i}].config")

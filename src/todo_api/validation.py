"""Field-level validation reporting.

Field rules are declared as pydantic constraints on the request models in
``schemas``. This module turns the complete list of pydantic errors into one
``ValidationFailed`` carrying every problem as a ``"field: reason"`` string,
in field declaration order, so callers see all violations in one round trip.
"""
from __future__ import annotations

import re
from typing import Any, Dict, List, Mapping, Sequence

from .errors import AppError, BadRequest, ValidationFailed


# Same shape check as most HTML5 email inputs: local@domain.tld, no spaces.
EMAIL_PATTERN = re.compile(
    r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?"
    r"(?:\.[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?)+$"
)
INVALID_BODY_MESSAGE = "Invalid JSON request body"

# Errors with no field component in their location describe the body itself.
_BODY_ERROR_TYPES = {"json_invalid", "model_attributes_type", "dict_type", "model_type"}
# Request parts FastAPI prefixes to error locations; details name only the field.
_LOCATION_PREFIXES = {"body", "query", "path"}


def check_email_shape(value: str) -> str:
    """Pydantic field validator body: accept ``value`` only if it looks like an email."""
    if not EMAIL_PATTERN.match(value):
        raise ValueError("must be a valid email")
    return value


def _field_name(loc: Sequence[Any]) -> str:
    parts = [str(p) for p in loc if p not in _LOCATION_PREFIXES]
    return ".".join(parts).lower()


def _reason(error: Mapping[str, Any]) -> str:
    kind = error.get("type", "")
    ctx: Dict[str, Any] = error.get("ctx") or {}
    if kind == "missing":
        return "is required"
    if kind == "string_too_short":
        min_length = ctx.get("min_length")
        if min_length == 1:
            return "is required"
        return f"must be at least {min_length} characters"
    if kind == "string_too_long":
        return f"must be at most {ctx.get('max_length')} characters"
    if kind in {"bool_type", "bool_parsing"}:
        return "must be a boolean"
    if kind == "string_type":
        return "must be a string"
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return f"failed {kind} validation"


# PUBLIC_INTERFACE
def violations_from_errors(errors: Sequence[Mapping[str, Any]]) -> List[str]:
    """Format pydantic/FastAPI error dicts as ordered ``"field: reason"`` strings."""
    return [f"{_field_name(e.get('loc', ()))}: {_reason(e)}" for e in errors]


def _is_body_error(error: Mapping[str, Any]) -> bool:
    if error.get("type") in _BODY_ERROR_TYPES:
        return True
    return not _field_name(error.get("loc", ()))


# PUBLIC_INTERFACE
def translate_request_errors(errors: Sequence[Mapping[str, Any]]) -> AppError:
    """
    Map the errors of a FastAPI ``RequestValidationError`` to an application error.

    A body that is missing, not JSON, or not a JSON object is a bad request;
    anything else is a validation failure listing every violated rule.
    """
    if any(_is_body_error(e) for e in errors):
        return BadRequest(INVALID_BODY_MESSAGE)
    return ValidationFailed().with_details(*violations_from_errors(errors))


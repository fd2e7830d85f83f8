"""
Validation utilities for the Beltic OAuth flow.

All validation functions raise ValidationError with descriptive
messages when validation fails, making configuration issues easy
to diagnose.

Example:
    >>> validate_port(80, "port")
    ValidationError: Invalid 'port': must be at least 1024 (got 80)
"""

from __future__ import annotations

import re
import urllib.parse
from collections.abc import Iterable

from .constants import ValidationLimits
from .exceptions import ValidationError

# Deliberately loose: one "@", something on each side, a dot in the domain.
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# =============================================================================
# TYPE VALIDATION
# =============================================================================


def validate_type(value: object, expected_type: type | tuple[type, ...], field_name: str) -> None:
    """Validate that value is of expected type.

    Raises:
        ValidationError: If value is not of expected type

    Example:
        >>> validate_type(123, str, "name")
        ValidationError: Invalid 'name': must be str, got int (got 123)
    """
    # bool is an int subclass; never accept it where a number is expected
    if isinstance(value, bool) and expected_type in (int, float, (int, float)):
        raise ValidationError(field_name, value, "must be a number, got bool")

    if not isinstance(value, expected_type):
        type_names = (
            expected_type.__name__
            if isinstance(expected_type, type)
            else " or ".join(t.__name__ for t in expected_type)
        )
        raise ValidationError(
            field_name, value, f"must be {type_names}, got {type(value).__name__}"
        )


def validate_string(value: object, field_name: str, allow_empty: bool = False) -> str:
    """Validate that value is a string (optionally non-empty).

    Returns:
        The validated string

    Raises:
        ValidationError: If value is not a string or is empty when not allowed
    """
    validate_type(value, str, field_name)
    assert isinstance(value, str)  # for type narrowing

    if not allow_empty and not value:
        raise ValidationError(field_name, value, "must be a non-empty string")

    return value


def validate_optional_string(value: object, field_name: str) -> str | None:
    """Validate that value is either None or a string."""
    if value is None:
        return None
    return validate_string(value, field_name, allow_empty=True)


# =============================================================================
# RANGE VALIDATION
# =============================================================================


def validate_range(
    value: float,
    field_name: str,
    min_value: float | None = None,
    max_value: float | None = None,
) -> None:
    """Validate that a number is within the specified range (inclusive).

    Raises:
        ValidationError: If value is outside range
    """
    validate_type(value, (int, float), field_name)

    if min_value is not None and value < min_value:
        raise ValidationError(field_name, value, f"must be at least {min_value}")

    if max_value is not None and value > max_value:
        raise ValidationError(field_name, value, f"must be at most {max_value}")


def validate_port(port: int, field_name: str = "port") -> None:
    """Validate that port number is a non-privileged port (1024-65535)."""
    validate_type(port, int, field_name)
    validate_range(
        port,
        field_name,
        min_value=ValidationLimits.MIN_PORT,
        max_value=ValidationLimits.MAX_PORT,
    )


# =============================================================================
# FORMAT VALIDATION
# =============================================================================


def validate_url(value: str, field_name: str, require_https: bool = False) -> str:
    """Validate that value is a well-formed absolute URL.

    Raises:
        ValidationError: If URL is malformed or has wrong scheme

    Example:
        >>> validate_url("http://example.com", "token_endpoint", require_https=True)
        ValidationError: Invalid 'token_endpoint': URL must use HTTPS scheme (got ...)
    """
    validate_string(value, field_name)

    try:
        parsed = urllib.parse.urlparse(value)
    except ValueError as e:
        raise ValidationError(field_name, value, f"malformed URL: {e}") from e

    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError(field_name, value, "URL must have an http(s) scheme and host")

    if require_https and parsed.scheme != "https":
        raise ValidationError(field_name, value, "URL must use HTTPS scheme")

    return value


def validate_email(value: object, field_name: str = "email") -> str:
    """Validate that value looks like an email address."""
    email = validate_string(value, field_name)
    if not _EMAIL_PATTERN.match(email):
        raise ValidationError(field_name, value, "must be a valid email address")
    return email


def validate_scopes(value: Iterable[str], field_name: str = "scopes") -> tuple[str, ...]:
    """Validate scopes and return them as an ordered, de-duplicated tuple.

    Order of first appearance is preserved; scopes may not contain spaces
    because they are space-joined on the wire.
    """
    if isinstance(value, str):
        raise ValidationError(field_name, value, "must be a sequence of strings, not a string")

    scopes: list[str] = []
    for scope in value:
        validate_string(scope, field_name)
        if any(ch.isspace() for ch in scope):
            raise ValidationError(field_name, scope, "scope must not contain whitespace")
        if scope not in scopes:
            scopes.append(scope)
    return tuple(scopes)


__all__ = [
    "validate_type",
    "validate_string",
    "validate_optional_string",
    "validate_range",
    "validate_port",
    "validate_url",
    "validate_email",
    "validate_scopes",
]

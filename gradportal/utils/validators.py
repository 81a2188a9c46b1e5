"""
Validation utilities
"""

from typing import Any, Optional
from gradportal.utils.exceptions import ValidationError


def validate_required(value: Any, field_name: str) -> None:
    """
    Validate required field

    Args:
        value: Value to validate
        field_name: Name of the field for error message

    Raises:
        ValidationError: If value is empty or None
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field_name.capitalize()} is required", field_name)


def validate_string_length(value: str, min_length: int = 1, max_length: Optional[int] = None,
                          field_name: str = "Field") -> None:
    """
    Validate string length

    Args:
        value: String to validate
        min_length: Minimum length
        max_length: Maximum length
        field_name: Name of the field for error message

    Raises:
        ValidationError: If length is invalid
    """
    if not isinstance(value, str):
        raise ValidationError(f"{field_name.capitalize()} must be a string", field_name)

    if len(value) < min_length:
        raise ValidationError(f"{field_name.capitalize()} must be at least {min_length} characters", field_name)

    if max_length and len(value) > max_length:
        raise ValidationError(f"{field_name.capitalize()} must be no more than {max_length} characters", field_name)


def parse_bool(value: Any) -> bool:
    """Interpret a form/JSON value as a boolean ('1', 'true', 'on', True)"""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ['true', 'on', '1', 'yes']


def validate_login_form(identifier: Any, password: Any) -> None:
    """
    Validate the login form fields

    Raises:
        ValidationError: keyed by the offending field
    """
    validate_required(identifier, 'identifier')
    validate_string_length(identifier, max_length=100, field_name='identifier')
    validate_required(password, 'password')
    if not isinstance(password, str):
        raise ValidationError("Password must be a string", 'password')

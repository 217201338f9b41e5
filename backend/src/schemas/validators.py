"""
Shared validation functions for Pydantic schemas.

Values are validated here but stored trimmed by the service layer, so the
history engine compares trimmed text against trimmed text.
"""


def check_not_blank(value: str, field_name: str) -> str:
    """
    Reject empty or whitespace-only strings.

    Args:
        value: The submitted value.
        field_name: Field name used in the error message.

    Returns:
        The value unchanged.

    Raises:
        ValueError: If the value is empty after trimming.
    """
    if not value or not value.strip():
        raise ValueError(f"{field_name.capitalize()} cannot be empty")
    return value

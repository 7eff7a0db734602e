"""
firedb/models/validator.py

Helpers for validating untyped data (decoded JSON or raw response bytes)
against a pydantic-based type using TypeAdapter.
"""

from typing import Any, Type, TypeVar, Union
from pydantic import ValidationError, TypeAdapter

T = TypeVar("T")


def validate_type(obj: Any, expected_type: Type[T]) -> T:
    """
    Validates that an already-decoded Python object conforms to the expected type.

    Args:
        obj (Any): The object to validate.
        expected_type (Type[T]): The type (pydantic or otherwise) to validate against.

    Returns:
        T: The validated object, cast to the expected type.

    Raises:
        ValueError: If validation fails.
    """
    try:
        return TypeAdapter(expected_type).validate_python(obj)
    except ValidationError as e:
        raise ValueError(f"Validation failed for type {expected_type}: {e}") from e


def validate_json(raw: Union[str, bytes], expected_type: Type[T]) -> T:
    """
    Parses a JSON document and validates it against the expected type in one step.

    Args:
        raw (Union[str, bytes]): The JSON text, e.g. an HTTP response body.
        expected_type (Type[T]): The type to validate against.

    Returns:
        T: The parsed and validated object.

    Raises:
        ValueError: If the text is not valid JSON or does not match the type.
    """
    try:
        return TypeAdapter(expected_type).validate_json(raw)
    except ValidationError as e:
        raise ValueError(f"JSON validation failed for type {expected_type}: {e}") from e

"""Shared parsing helpers for runtime, store, and config value normalization."""

from __future__ import annotations


def normalize_optional_string(value: object) -> str | None:
    """Normalize an optional value to a stripped non-empty string.

    Args:
        value: Arbitrary input value.

    Returns:
        Stripped string value, or `None` when the value is empty after trimming.
    """

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    return text


def parse_positive_int(value: object, field_name: str) -> int:
    """Parse a strictly positive integer from int or textual input.

    Raises:
        ValueError: If the value is not an integer greater than zero.
    """

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive integer.")
    if isinstance(value, int):
        parsed = value
    else:
        normalized = normalize_optional_string(value)
        if normalized is None:
            raise ValueError(f"`{field_name}` must be a positive integer.")
        try:
            parsed = int(normalized)
        except ValueError as exc:
            raise ValueError(f"`{field_name}` must be a positive integer.") from exc
    if parsed <= 0:
        raise ValueError(f"`{field_name}` must be a positive integer.")
    return parsed


def parse_non_negative_int(value: object, field_name: str) -> int:
    """Parse an integer greater than or equal to zero."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a non-negative integer.")
    normalized = normalize_optional_string(value)
    try:
        parsed = int(normalized) if normalized is not None else -1
    except ValueError as exc:
        raise ValueError(f"`{field_name}` must be a non-negative integer.") from exc
    if parsed < 0:
        raise ValueError(f"`{field_name}` must be a non-negative integer.")
    return parsed


def parse_positive_float(value: object, field_name: str) -> float:
    """Parse a strictly positive float from numeric or textual input."""

    if isinstance(value, bool):
        raise ValueError(f"`{field_name}` must be a positive number.")
    try:
        parsed = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"`{field_name}` must be a positive number.") from exc
    if parsed <= 0.0:
        raise ValueError(f"`{field_name}` must be a positive number.")
    return parsed


def coerce_amount(value: object) -> float:
    """Coerce a persisted monetary amount to float, treating missing/invalid as zero."""

    if value is None or isinstance(value, bool):
        return 0.0
    try:
        amount = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return 0.0
    if amount != amount or amount < 0.0:
        return 0.0
    return amount

"""
Input validation layer.

Purpose
-------
Single source of truth for low-level checks on values arriving from outside
the engine: player ids, treasure ids, coordinates, text fields and category
names. Every check either returns a normalized value or raises
`ValidationError` before any unlock or progress logic runs.

Observability
-------------
Each failure is logged at debug level with the field name, the raw value
(repr) and the reason.
"""

from __future__ import annotations

import math
import re
from typing import Any, NoReturn, Optional, Sequence

from src.core.logging.logger import get_logger
from src.modules.shared.constants import PLAYER_ID_MAX_LENGTH, TREASURE_ID_MAX_LENGTH
from src.modules.shared.exceptions import ValidationError

logger = get_logger(__name__)

_TREASURE_ID_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


def _raise_validation_error(field_name: str, value: Any, message: str) -> NoReturn:
    logger.debug(
        "Input validation failed",
        extra={"field_name": field_name, "raw_value": repr(value), "reason": message},
    )
    raise ValidationError(field_name, message)


class InputValidator:
    """
    Stateless validation helpers.

    All methods return the validated (possibly normalized) value and raise
    `ValidationError` on failure.
    """

    # =========================================================================
    # IDENTIFIERS
    # =========================================================================

    @staticmethod
    def validate_player_id(value: Any, field_name: str = "player_id") -> str:
        """Opaque id supplied by the auth layer; non-empty string, trimmed."""
        if not isinstance(value, (str, int)) or isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a string identifier")
        player_id = str(value).strip()
        if not player_id:
            _raise_validation_error(field_name, value, "Value is required")
        if len(player_id) > PLAYER_ID_MAX_LENGTH:
            _raise_validation_error(
                field_name, value, f"Cannot exceed {PLAYER_ID_MAX_LENGTH} characters"
            )
        return player_id

    @staticmethod
    def validate_treasure_id(value: Any, field_name: str = "treasure_id") -> str:
        """Letters, digits, `-` and `_` only; case is preserved."""
        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be a string identifier")
        if not value:
            _raise_validation_error(field_name, value, "Value is required")
        if len(value) > TREASURE_ID_MAX_LENGTH:
            _raise_validation_error(
                field_name, value, f"Cannot exceed {TREASURE_ID_MAX_LENGTH} characters"
            )
        if not _TREASURE_ID_PATTERN.match(value):
            _raise_validation_error(field_name, value, "Contains invalid characters")
        return value

    # =========================================================================
    # NUMBERS
    # =========================================================================

    @staticmethod
    def validate_integer(
        value: Any,
        field_name: str,
        min_value: Optional[int] = None,
        max_value: Optional[int] = None,
    ) -> int:
        if value is None or isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a whole number")
        try:
            int_value = int(value)
        except (TypeError, ValueError):
            _raise_validation_error(field_name, value, f"Must be a whole number, got '{value}'")
        if isinstance(value, float) and value != int_value:
            _raise_validation_error(field_name, value, f"Must be a whole number, got '{value}'")

        if min_value is not None and int_value < min_value:
            _raise_validation_error(
                field_name, int_value, f"Must be at least {min_value}, got {int_value}"
            )
        if max_value is not None and int_value > max_value:
            _raise_validation_error(
                field_name, int_value, f"Cannot exceed {max_value}, got {int_value}"
            )
        return int_value

    @staticmethod
    def validate_positive_integer(value: Any, field_name: str) -> int:
        return InputValidator.validate_integer(value, field_name, min_value=1)

    @staticmethod
    def validate_latitude(value: Any, field_name: str = "latitude") -> float:
        return InputValidator._validate_degrees(value, field_name, 90.0)

    @staticmethod
    def validate_longitude(value: Any, field_name: str = "longitude") -> float:
        return InputValidator._validate_degrees(value, field_name, 180.0)

    @staticmethod
    def _validate_degrees(value: Any, field_name: str, limit: float) -> float:
        if value is None or isinstance(value, bool):
            _raise_validation_error(field_name, value, "Must be a number")
        try:
            degrees = float(value)
        except (TypeError, ValueError):
            _raise_validation_error(field_name, value, "Must be a number")
        if not math.isfinite(degrees):
            _raise_validation_error(field_name, value, "Must be a finite number")
        if not -limit <= degrees <= limit:
            _raise_validation_error(field_name, value, f"Must be between -{limit:g} and {limit:g}")
        return degrees

    # =========================================================================
    # STRINGS & CHOICES
    # =========================================================================

    @staticmethod
    def validate_string(
        value: Any,
        field_name: str,
        min_length: Optional[int] = None,
        max_length: Optional[int] = None,
    ) -> str:
        if value is None:
            _raise_validation_error(field_name, value, "Value is required")
        if not isinstance(value, str):
            _raise_validation_error(field_name, value, "Must be text")

        str_value = value.strip()
        if min_length is not None and len(str_value) < min_length:
            _raise_validation_error(
                field_name, str_value, f"Must be at least {min_length} characters"
            )
        if max_length is not None and len(str_value) > max_length:
            _raise_validation_error(
                field_name, str_value, f"Cannot exceed {max_length} characters"
            )
        return str_value

    @staticmethod
    def validate_optional_string(
        value: Any, field_name: str, max_length: Optional[int] = None
    ) -> Optional[str]:
        """Like `validate_string`, but None and blank text yield None."""
        if value is None:
            return None
        text = InputValidator.validate_string(value, field_name, max_length=max_length)
        return text or None

    @staticmethod
    def validate_choice(value: Any, field_name: str, valid_choices: Sequence[str]) -> str:
        """Case-insensitive membership check; returns the lowercased value."""
        str_value = str(value).strip().lower()
        if str_value not in {choice.lower() for choice in valid_choices}:
            _raise_validation_error(
                field_name,
                value,
                f"Invalid choice '{value}'. Must be one of: {', '.join(sorted(valid_choices))}",
            )
        return str_value

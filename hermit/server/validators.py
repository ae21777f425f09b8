"""Request payload validation.

Everything here runs before any storage call and reports problems as
``InvalidPayload``, which handlers turn into a 400.
"""

import math
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from hermit.lib.exceptions import InvalidPayload
from hermit.lib.reading import Reading
from hermit.lib.records import ConfigUpdate

READING_FIELDS = ("userId", "temperature", "humidity", "light")

# SQLite INTEGER is a signed 64-bit value
_LIGHT_MIN = -(2**63)
_LIGHT_MAX = 2**63 - 1

_MISSING_READING_FIELDS = (
    "Missing required fields: userId, temperature, humidity, and light are required"
)


def _is_missing(value: Any) -> bool:
    """Presence rule for reading fields.

    Absent, null, false, the empty string and numeric zero all count as
    missing. A genuine reading of 0 is therefore rejected; sensor firmware
    in the field already depends on this rule.
    """
    if value is None or value is False or value == "":
        return True
    if isinstance(value, int | float) and not isinstance(value, bool):
        return value == 0 or (isinstance(value, float) and math.isnan(value))
    return False


def _to_float(name: str, value: Any) -> float:
    if isinstance(value, bool):
        raise InvalidPayload(f"{name} must be a number", field=name)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidPayload(f"{name} must be a number", field=name) from None
    except OverflowError:
        raise InvalidPayload(f"{name} is out of range", field=name) from None
    if not math.isfinite(number):
        raise InvalidPayload(f"{name} must be a finite number", field=name)
    return number


def _to_light(value: Any) -> int:
    if isinstance(value, int) and not isinstance(value, bool):
        light = value
    else:
        light = int(_to_float("light", value))
    if not _LIGHT_MIN <= light <= _LIGHT_MAX:
        raise InvalidPayload("light is out of range", field="light")
    return light


def parse_reading(data: Any, recording_time: datetime) -> Reading:
    """Validate an ingestion payload and coerce its values.

    Temperature and humidity become floats; light is truncated to an int.

    Raises:
        InvalidPayload: If a field is missing (see ``_is_missing``), not
            numeric, or light does not fit a stored integer.
    """
    if not isinstance(data, dict):
        raise InvalidPayload("Expected JSON object")

    missing = [name for name in READING_FIELDS if _is_missing(data.get(name))]
    if missing:
        raise InvalidPayload(
            f"{_MISSING_READING_FIELDS} (missing: {', '.join(missing)})",
            field=missing[0],
        )

    user_id = data["userId"]
    if not isinstance(user_id, str):
        raise InvalidPayload("userId must be a string", field="userId")

    return Reading(
        user_id=user_id,
        temperature=_to_float("temperature", data["temperature"]),
        humidity=_to_float("humidity", data["humidity"]),
        light=_to_light(data["light"]),
        recording_time=recording_time,
    )


def parse_config_update(data: Any) -> dict[str, Any]:
    """Validate a sparse configuration update.

    Returns:
        Only the recognized fields that were provided.

    Raises:
        InvalidPayload: If no recognized field is provided, or a field has
            the wrong type, or a light hour is outside 0-23.
    """
    if not isinstance(data, dict):
        raise InvalidPayload("Expected JSON object")

    try:
        update = ConfigUpdate.model_validate(data)
    except ValidationError as e:
        errors = [
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}"
            for err in e.errors()
        ]
        first = e.errors()[0]["loc"]
        raise InvalidPayload(
            "; ".join(errors), field=str(first[0]) if first else None
        ) from None

    fields = update.provided()
    if not fields:
        raise InvalidPayload("No configuration fields provided")
    return fields

"""Configuration record shape, defaults and hydration.

A stored configuration document may carry more than the recognized fields
(``userId``, storage metadata) or fewer (documents written before a field
existed). Everything that leaves the process goes through ``hydrate`` so
that readers always see exactly the recognized field set, with defaults
filling whatever the stored document lacks.
"""

from typing import Annotated, Any, TypedDict

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
)

from hermit.lib.config import (
    DEFAULT_LIGHT_OFF_HOUR,
    DEFAULT_LIGHT_ON_HOUR,
    DEFAULT_MAX_HUMIDITY,
    DEFAULT_MAX_LIGHT,
    DEFAULT_MAX_TEMPERATURE,
    DEFAULT_MIN_HUMIDITY,
    DEFAULT_MIN_LIGHT,
    DEFAULT_MIN_TEMPERATURE,
    HOUR_MAX,
    HOUR_MIN,
)

type Number = int | float

USER_ID_KEY = "userId"

# JSON booleans are not numbers, and NaN/Infinity are not valid JSON values
_Threshold = StrictInt | StrictFloat
_Hour = Annotated[StrictInt, Field(ge=HOUR_MIN, le=HOUR_MAX)]


class ConfigRecord(TypedDict):
    """Per-user configuration as exposed to devices and viewers."""

    minTemperature: Number
    maxTemperature: Number
    minHumidity: Number
    maxHumidity: Number
    minLight: Number
    maxLight: Number
    heaterEnabled: bool
    fanEnabled: bool
    mistEnabled: bool
    lightEnabled: bool
    lightOnHour: int
    lightOffHour: int


DEFAULT_CONFIG: ConfigRecord = {
    "minTemperature": DEFAULT_MIN_TEMPERATURE,
    "maxTemperature": DEFAULT_MAX_TEMPERATURE,
    "minHumidity": DEFAULT_MIN_HUMIDITY,
    "maxHumidity": DEFAULT_MAX_HUMIDITY,
    "minLight": DEFAULT_MIN_LIGHT,
    "maxLight": DEFAULT_MAX_LIGHT,
    "heaterEnabled": True,
    "fanEnabled": True,
    "mistEnabled": True,
    "lightEnabled": True,
    "lightOnHour": DEFAULT_LIGHT_ON_HOUR,
    "lightOffHour": DEFAULT_LIGHT_OFF_HOUR,
}

CONFIG_FIELDS: tuple[str, ...] = tuple(DEFAULT_CONFIG)


class ConfigUpdate(BaseModel):
    """Sparse configuration update.

    Unknown keys are ignored; a key sent as ``null`` counts as not provided.
    Values must already have the right JSON type: no string or boolean
    coercion, and thresholds must be finite.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    minTemperature: _Threshold | None = None
    maxTemperature: _Threshold | None = None
    minHumidity: _Threshold | None = None
    maxHumidity: _Threshold | None = None
    minLight: _Threshold | None = None
    maxLight: _Threshold | None = None
    heaterEnabled: StrictBool | None = None
    fanEnabled: StrictBool | None = None
    mistEnabled: StrictBool | None = None
    lightEnabled: StrictBool | None = None
    lightOnHour: _Hour | None = None
    lightOffHour: _Hour | None = None

    def provided(self) -> dict[str, Any]:
        """Return only the fields the client actually set."""
        return self.model_dump(exclude_none=True)


def hydrate(document: dict[str, Any] | None) -> ConfigRecord:
    """Project a stored document onto the recognized field set.

    Fields missing from ``document`` (or stored as null) fall back to their
    defaults; anything that is not a recognized field is dropped.
    """
    document = document or {}
    record = dict(DEFAULT_CONFIG)
    for field in CONFIG_FIELDS:
        value = document.get(field)
        if value is not None:
            record[field] = value
    return record  # type: ignore[return-value]


def seed_document(user_id: str, fields: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a brand-new stored document: defaults overlaid with ``fields``."""
    return {USER_ID_KEY: user_id, **DEFAULT_CONFIG, **(fields or {})}

"""Domain model for sensor node readings."""

from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True, slots=True)
class Reading:
    user_id: str
    temperature: float
    humidity: float
    light: int
    recording_time: datetime

    def as_params(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id,
            "temperature": self.temperature,
            "humidity": self.humidity,
            "light": self.light,
        }

"""Value types shared across the run sync scheduler.

Runs are read-only snapshots owned by an external store; the scheduler never
mutates them.  ``FlightStatus`` and ``TrafficData`` are the payloads returned
by the flight and traffic collaborators and are passed through untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Literal


class RunStatus(StrEnum):
    """Lifecycle status of a run."""

    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RunType(StrEnum):
    """Whether the driver picks a passenger up or drops them off."""

    PICKUP = "pickup"
    DROPOFF = "dropoff"


# Cache namespaces reported through data invalidation
InvalidationType = Literal["flight", "traffic"]

VALID_RUN_STATUSES = frozenset(s.value for s in RunStatus)

# camelCase keys used by the web client's runs payload -> Run field names
_CAMEL_TO_FIELD = {
    "flightNumber": "flight_number",
    "pickupLocation": "pickup_location",
    "dropoffLocation": "dropoff_location",
    "scheduledTime": "scheduled_time",
}


@dataclass(frozen=True)
class Run:
    """Snapshot of an airport pickup or dropoff run."""

    id: str
    status: RunStatus
    flight_number: str
    pickup_location: str
    dropoff_location: str
    airline: str = ""
    departure: str = ""
    arrival: str = ""
    scheduled_time: str = ""
    type: RunType = RunType.PICKUP
    notes: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == RunStatus.ACTIVE

    @property
    def route_key(self) -> str:
        """Single-string traffic cache key, ``"<pickup>-<dropoff>"``."""
        return f"{self.pickup_location}-{self.dropoff_location}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Run:
        """Create a Run from a stored payload.

        Accepts both camelCase keys (as persisted by the web client) and
        snake_case keys.

        Args:
            data: Raw run mapping.

        Returns:
            Run instance.

        Raises:
            KeyError: If a required field is missing.
            ValueError: If ``status`` or ``type`` is not a known value.
        """
        normalized = {_CAMEL_TO_FIELD.get(key, key): value for key, value in data.items()}
        return cls(
            id=str(normalized["id"]),
            status=RunStatus(normalized["status"]),
            flight_number=normalized["flight_number"],
            pickup_location=normalized["pickup_location"],
            dropoff_location=normalized["dropoff_location"],
            airline=normalized.get("airline", ""),
            departure=normalized.get("departure", ""),
            arrival=normalized.get("arrival", ""),
            scheduled_time=normalized.get("scheduled_time", ""),
            type=RunType(normalized.get("type", RunType.PICKUP.value)),
            notes=normalized.get("notes"),
        )


@dataclass(frozen=True)
class FlightStatus:
    """Flight status as reported by the flight data provider.

    ``status`` is the provider's raw status string.
    """

    flight_number: str
    status: str
    scheduled_departure: str | None = None
    actual_departure: str | None = None
    scheduled_arrival: str | None = None
    actual_arrival: str | None = None
    delay: int | None = None
    gate: str | None = None
    terminal: str | None = None
    last_updated: datetime | None = None


@dataclass(frozen=True)
class TrafficData:
    """Route summary as reported by the routing provider."""

    route: str
    travel_time_seconds: int
    traffic_delay_seconds: int
    length_meters: int
    last_updated: datetime | None = None
    raw: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from enum import Enum
from typing import Any, Dict, Optional


# Reading source tags
SOURCE_LOCAL = "local"
SOURCE_FHIR = "fhir"
SOURCE_SMART = "smart-ehr"
SOURCE_DEMO = "demo"
SOURCE_SMARTWATCH = "smartwatch"


class ConnectionMode(str, Enum):
    DISCONNECTED = "disconnected"
    DEMO = "demo"
    FHIR = "fhir"
    SMART = "smart-ehr"


def parse_instant(value: str, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO-8601 string into an aware datetime.

    Naive values (no offset) are interpreted in `tz`, or in the machine's
    local timezone when `tz` is None. Date-only strings mean midnight.
    """
    dt = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz) if tz is not None else dt.astimezone()
    return dt


def to_canonical(dt: datetime) -> str:
    """UTC, millisecond precision, `Z` suffix: 2024-10-16T10:15:00.000Z"""
    if dt.tzinfo is None:
        dt = dt.astimezone()
    utc = dt.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def canonical_timestamp(value: str, tz: Optional[tzinfo] = None) -> str:
    return to_canonical(parse_instant(value, tz))


@dataclass
class Reading:
    systolic: Optional[int]   # mmHg
    diastolic: Optional[int]  # mmHg
    date_time: str            # canonical UTC string
    source: str = SOURCE_LOCAL

    @property
    def is_complete(self) -> bool:
        return bool(self.systolic) and bool(self.diastolic) and bool(self.date_time)

    @property
    def instant(self) -> datetime:
        return parse_instant(self.date_time, timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "systolic": self.systolic,
            "diastolic": self.diastolic,
            "dateTime": self.date_time,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reading":
        """Build a reading from its persisted shape, normalising the timestamp.

        Raises ValueError / TypeError / KeyError for records that cannot be
        normalised.
        """
        return cls(
            systolic=int(data["systolic"]),
            diastolic=int(data["diastolic"]),
            date_time=canonical_timestamp(str(data["dateTime"]), timezone.utc),
            source=str(data.get("source") or SOURCE_LOCAL),
        )


@dataclass
class Cutoffs:
    systolic: int
    diastolic: int


@dataclass
class ThresholdSet:
    red: Cutoffs
    yellow: Cutoffs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "red": {"systolic": self.red.systolic, "diastolic": self.red.diastolic},
            "yellow": {"systolic": self.yellow.systolic, "diastolic": self.yellow.diastolic},
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdSet":
        return cls(
            red=Cutoffs(int(data["red"]["systolic"]), int(data["red"]["diastolic"])),
            yellow=Cutoffs(int(data["yellow"]["systolic"]), int(data["yellow"]["diastolic"])),
        )


@dataclass
class ThresholdLock:
    locked: bool = False
    password: Optional[str] = None  # argon2 hash, present only when locked

    def to_dict(self) -> Dict[str, Any]:
        return {"locked": self.locked, "password": self.password}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThresholdLock":
        locked = bool(data.get("locked"))
        return cls(locked=locked, password=data.get("password") if locked else None)


@dataclass
class Classification:
    level: str  # red | yellow | green
    label: str
    description: str
    icon: str
    css_class: str


@dataclass
class SessionContext:
    mode: ConnectionMode = ConnectionMode.DISCONNECTED
    patient_id: Optional[str] = None
    patient_name: Optional[str] = None
    fhir_base_url: Optional[str] = None
    smart_client: Any = None  # owned by the SMART launch, referenced here

@dataclass
class AppState:
    """Everything one dashboard session reads and writes.

    Readings and thresholds are the persisted source of truth; the rest is
    rebuilt on load.
    """
    readings: list = field(default_factory=list)
    thresholds: Optional[ThresholdSet] = None
    lock: ThresholdLock = field(default_factory=ThresholdLock)
    session: SessionContext = field(default_factory=SessionContext)
    chart: Any = None

"""
Smartwatch export import.

The watch app exports one JSON document:
    {"bp": [{"time": "2024-10-16 10:15:00", "sys": 150, "dia": 95}, ...],
     "hb": [...], "spo2": [...]}
Only `bp` is imported; the sibling series are counted for display.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from typing import IO, Any, Iterable, List, Optional, Union

import structlog

from bplight.models.app_types import Reading, SOURCE_SMARTWATCH, canonical_timestamp
from bplight.models.errors import ImportFormatError
from bplight.sync.reconciler import new_timestamps

log = structlog.get_logger(__name__)

REQUIRED_FIELDS = ("time", "sys", "dia")


@dataclass
class ImportResult:
    readings: List[Reading] = field(default_factory=list)  # new readings only
    imported: int = 0
    duplicates: int = 0
    invalid: int = 0
    total_records: int = 0
    heart_rate_records: int = 0
    spo2_records: int = 0

    @property
    def valid(self) -> int:
        return self.imported + self.duplicates


@dataclass
class ReadOutcome:
    text: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def read_import_file(source: Union[str, Path, IO[bytes], IO[str]]) -> ReadOutcome:
    """Read an export from a path or an open/uploaded file; never raises."""
    try:
        if isinstance(source, (str, Path)):
            data = Path(source).read_bytes()
        else:
            data = source.read()
        if isinstance(data, bytes):
            data = data.decode("utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        log.warning("import_read_failed", error=str(e))
        return ReadOutcome(error=f"Could not read file: {e}")
    return ReadOutcome(text=data)


def _decode(raw: Union[str, bytes, dict]) -> dict:
    if isinstance(raw, dict):
        return raw
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ImportFormatError(f"File is not valid JSON: {e}")
    if not isinstance(data, dict):
        raise ImportFormatError("File format error: expected a JSON object with a 'bp' array")
    return data


def _series_len(data: dict, key: str) -> int:
    value = data.get(key)
    return len(value) if isinstance(value, list) else 0


def record_to_reading(record: Any, tz: Optional[tzinfo] = None) -> Reading:
    """Raises ValueError for records that cannot be imported."""
    if not isinstance(record, dict):
        raise ValueError("record is not an object")
    missing = [f for f in REQUIRED_FIELDS if not record.get(f)]
    if missing:
        raise ValueError(f"missing required fields: {', '.join(missing)}")
    try:
        systolic = int(record["sys"])
        diastolic = int(record["dia"])
    except (TypeError, ValueError):
        raise ValueError(f"non-numeric values sys={record['sys']!r} dia={record['dia']!r}")
    # "YYYY-MM-DD HH:MM:SS" -> ISO form, local wall-clock time
    date_time = canonical_timestamp(str(record["time"]).replace(" ", "T", 1), tz)
    return Reading(systolic=systolic, diastolic=diastolic, date_time=date_time, source=SOURCE_SMARTWATCH)


def parse_smartwatch(
    raw: Union[str, bytes, dict],
    existing: Iterable[Reading] = (),
    tz: Optional[tzinfo] = None,
) -> ImportResult:
    data = _decode(raw)
    records = data.get("bp")
    if not isinstance(records, list):
        raise ImportFormatError("File format error: no 'bp' array found")

    parsed: List[Reading] = []
    skipped = []
    for idx, record in enumerate(records):
        try:
            parsed.append(record_to_reading(record, tz))
        except ValueError as e:
            skipped.append((idx, str(e)))

    if skipped:
        log.warning("import_records_skipped", count=len(skipped), first=skipped[:5])

    new = new_timestamps(existing, parsed)
    return ImportResult(
        readings=new,
        imported=len(new),
        duplicates=len(parsed) - len(new),
        invalid=len(skipped),
        total_records=len(records),
        heart_rate_records=_series_len(data, "hb"),
        spo2_records=_series_len(data, "spo2"),
    )

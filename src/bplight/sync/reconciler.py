"""Merging readings from several sources into the canonical collection.

Remote syncs (`fhir`, `smart-ehr`) always re-pull the full remote set, so an
incoming batch replaces everything previously stored from that source.
File imports and local/demo batches only add readings whose timestamp is not
already present.
"""
from __future__ import annotations

from typing import Iterable, List

import structlog

from bplight.models.app_types import Reading, SOURCE_FHIR, SOURCE_SMART

log = structlog.get_logger(__name__)

REPLACING_SOURCES = frozenset({SOURCE_FHIR, SOURCE_SMART})


def sort_readings(readings: Iterable[Reading]) -> List[Reading]:
    """Newest first. Python's sort stays stable with reverse=True, so exact
    timestamp ties keep their insertion order."""
    return sorted(readings, key=lambda r: r.instant, reverse=True)


def drop_incomplete(readings: Iterable[Reading]) -> List[Reading]:
    return [r for r in readings if r.is_complete]


def merge(
    existing: List[Reading],
    incoming: Iterable[Reading],
    precedence: str,
) -> List[Reading]:
    """Return a new canonical collection; neither input is modified."""
    batch = drop_incomplete(incoming)

    if precedence in REPLACING_SOURCES:
        incoming_times = {r.date_time for r in batch}
        survivors = [
            r for r in existing
            if r.source != precedence and r.date_time not in incoming_times
        ]
        added = batch
    else:
        survivors = list(existing)
        added = new_timestamps(existing, batch)

    log.debug(
        "readings_merged",
        precedence=precedence,
        kept=len(survivors),
        added=len(added),
    )
    return sort_readings(survivors + added)


def new_timestamps(existing: Iterable[Reading], incoming: Iterable[Reading]) -> List[Reading]:
    """Incoming readings whose timestamp is absent from `existing`."""
    seen = {r.date_time for r in existing}
    out = []
    for r in incoming:
        if r.date_time not in seen:
            seen.add(r.date_time)
            out.append(r)
    return out


def add_reading(existing: List[Reading], reading: Reading) -> List[Reading]:
    """Insert one manually submitted reading; it goes ahead of any reading
    sharing its exact timestamp."""
    return sort_readings([reading] + list(existing))

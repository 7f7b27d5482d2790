"""Views derived from the canonical (newest-first) reading collection.

Everything here is a pure function of the readings and the thresholds, except
ChartHost, which owns the single live chart rendering.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Any, Callable, Dict, List, Optional, Sequence

from bplight.config.thresholds import CHART_LIMIT, HISTORY_LIMIT
from bplight.models.app_types import Classification, Reading, ThresholdSet
from bplight.scoring.classifier import LEVELS, classify


@dataclass
class LatestStatus:
    reading: Optional[Reading] = None
    classification: Optional[Classification] = None

    @property
    def has_data(self) -> bool:
        return self.reading is not None

    @property
    def summary(self) -> str:
        if not self.has_data:
            return "No data"
        r, c = self.reading, self.classification
        return f"{r.systolic}/{r.diastolic} mmHg - {c.description}"


@dataclass
class Distribution:
    total: int
    counts: Dict[str, int]
    percents: Dict[str, int]


@dataclass
class HistoryRow:
    reading: Reading
    classification: Classification
    when: str


@dataclass
class ChartSeries:
    labels: List[str] = field(default_factory=list)
    systolic: List[int] = field(default_factory=list)
    diastolic: List[int] = field(default_factory=list)
    date_times: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.labels)


def format_timestamp(reading: Reading, tz: Optional[tzinfo] = None) -> str:
    return reading.instant.astimezone(tz).strftime("%Y/%m/%d %H:%M")


def format_chart_label(reading: Reading, tz: Optional[tzinfo] = None) -> str:
    return reading.instant.astimezone(tz).strftime("%m/%d")


def latest_status(readings: Sequence[Reading], thresholds: ThresholdSet) -> LatestStatus:
    if not readings:
        return LatestStatus()
    latest = readings[0]
    return LatestStatus(latest, classify(latest.systolic, latest.diastolic, thresholds))


def distribution(readings: Sequence[Reading], thresholds: ThresholdSet) -> Distribution:
    counts = {lvl: 0 for lvl in LEVELS}
    for r in readings:
        counts[classify(r.systolic, r.diastolic, thresholds).level] += 1

    total = len(readings)
    percents = {
        lvl: (round(n / total * 100) if total > 0 else 0)
        for lvl, n in counts.items()
    }
    return Distribution(total=total, counts=counts, percents=percents)


def history_view(
    readings: Sequence[Reading],
    thresholds: ThresholdSet,
    tz: Optional[tzinfo] = None,
    limit: int = HISTORY_LIMIT,
) -> List[HistoryRow]:
    return [
        HistoryRow(
            reading=r,
            classification=classify(r.systolic, r.diastolic, thresholds),
            when=format_timestamp(r, tz),
        )
        for r in readings[:limit]
    ]


def chart_series(
    readings: Sequence[Reading],
    tz: Optional[tzinfo] = None,
    limit: int = CHART_LIMIT,
) -> ChartSeries:
    window = list(readings[:limit])
    window.reverse()  # oldest first
    return ChartSeries(
        labels=[format_chart_label(r, tz) for r in window],
        systolic=[int(r.systolic) for r in window],
        diastolic=[int(r.diastolic) for r in window],
        date_times=[r.date_time for r in window],
    )


class ChartHost:
    """Holds at most one live chart.

    `publish` discards the previous rendering (calling `on_discard` with it)
    before building a new one with `factory`.
    """

    def __init__(
        self,
        factory: Callable[[ChartSeries], Any],
        on_discard: Optional[Callable[[Any], None]] = None,
    ):
        self.factory = factory
        self.on_discard = on_discard
        self.current: Any = None
        self.series: Optional[ChartSeries] = None

    def publish(self, series: ChartSeries) -> Any:
        self.discard()
        self.series = series
        self.current = self.factory(series)
        return self.current

    def discard(self) -> None:
        if self.current is not None and self.on_discard is not None:
            self.on_discard(self.current)
        self.current = None
        self.series = None

from __future__ import annotations

from typing import Dict

from bplight.models.app_types import Classification, ThresholdSet

LEVELS = ("red", "yellow", "green")

_CLASSIFICATIONS: Dict[str, Classification] = {
    "red": Classification(
        level="red",
        label="Red light",
        description="Blood pressure too high! See a doctor promptly.",
        icon="🔴",
        css_class="light-red",
    ),
    "yellow": Classification(
        level="yellow",
        label="Yellow light",
        description="Blood pressure elevated, keep monitoring.",
        icon="🟡",
        css_class="light-yellow",
    ),
    "green": Classification(
        level="green",
        label="Green light",
        description="Blood pressure normal, keep it up.",
        icon="🟢",
        css_class="light-green",
    ),
}


def bp_level(systolic: float, diastolic: float, t: ThresholdSet) -> str:
    # Cutoffs are inclusive; red is checked first.
    if systolic >= t.red.systolic or diastolic >= t.red.diastolic:
        return "red"
    if systolic >= t.yellow.systolic or diastolic >= t.yellow.diastolic:
        return "yellow"
    return "green"


def classify(systolic: float, diastolic: float, thresholds: ThresholdSet) -> Classification:
    return _CLASSIFICATIONS[bp_level(systolic, diastolic, thresholds)]

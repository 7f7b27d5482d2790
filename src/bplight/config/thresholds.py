from __future__ import annotations

from typing import Dict, Tuple

from bplight.models.app_types import Cutoffs, ThresholdSet


def default_thresholds() -> ThresholdSet:
    return ThresholdSet(red=Cutoffs(160, 100), yellow=Cutoffs(140, 90))


# Accepted range for manually entered readings (mmHg)
ENTRY_RANGES: Dict[str, Tuple[int, int]] = {
    "systolic": (60, 250),
    "diastolic": (40, 150),
}

# Dashboard caps
HISTORY_LIMIT: int = 50
CHART_LIMIT: int = 30

# FHIR page sizes
SMART_PAGE_SIZE: int = 100
FHIR_PAGE_SIZE: int = 50

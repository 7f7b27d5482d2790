from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

import numpy as np

from bplight.models.app_types import Reading, SOURCE_DEMO, to_canonical


def generate_demo_readings(
    days: int = 30,
    now: Optional[datetime] = None,
    rng: Optional[np.random.Generator] = None,
) -> List[Reading]:
    """One reading per day going back `days` days, newest first.

    Systolic 110-149, diastolic 65-94 mmHg, so all three light levels show
    up under the default thresholds.
    """
    now = now or datetime.now(timezone.utc)
    rng = rng or np.random.default_rng()

    systolic = 120 + rng.integers(0, 40, size=days) - 10
    diastolic = 70 + rng.integers(0, 30, size=days) - 5

    return [
        Reading(
            systolic=int(systolic[i]),
            diastolic=int(diastolic[i]),
            date_time=to_canonical(now - timedelta(days=i)),
            source=SOURCE_DEMO,
        )
        for i in range(days)
    ]

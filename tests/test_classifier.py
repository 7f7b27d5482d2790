import pytest

from bplight.config.thresholds import default_thresholds
from bplight.models.app_types import Cutoffs, ThresholdSet
from bplight.scoring.classifier import bp_level, classify


def thresholds(red=(160, 100), yellow=(140, 90)):
    return ThresholdSet(red=Cutoffs(*red), yellow=Cutoffs(*yellow))


# 1) Worked examples
@pytest.mark.parametrize("sys_, dia, expected", [
    (160, 85, "red"),
    (145, 85, "yellow"),
    (130, 85, "green"),
])
def test_classify_examples(sys_, dia, expected):
    assert classify(sys_, dia, thresholds()).level == expected


# 2) Inclusive boundaries, either component triggers
@pytest.mark.parametrize("sys_, dia, expected", [
    (160, 0, "red"), (159, 99, "yellow"),
    (0, 100, "red"), (100, 99, "yellow"),
    (140, 0, "yellow"), (139, 89, "green"),
    (0, 90, "yellow"), (120, 89, "green"),
    (200, 120, "red"),
])
def test_classify_boundaries(sys_, dia, expected):
    assert bp_level(sys_, dia, thresholds()) == expected


def test_classify_returns_display_fields():
    c = classify(170, 80, default_thresholds())
    assert c.level == "red"
    assert c.label
    assert c.description
    assert c.css_class == "light-red"


def test_classify_is_deterministic():
    t = thresholds()
    assert classify(150, 95, t) == classify(150, 95, t)


def test_misordered_thresholds_red_checked_first():
    # yellow above red: anything reaching the red cutoff is red
    t = thresholds(red=(130, 80), yellow=(150, 95))
    assert bp_level(135, 70, t) == "red"
    assert bp_level(125, 75, t) == "green"

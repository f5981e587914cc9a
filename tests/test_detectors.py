"""
test_detectors.py — Each detector in isolation, plus the pipeline's failure isolation.

Common examples:
  pytest -q tests/test_detectors.py
  pytest -k link_drop -q
"""

from datetime import datetime, timedelta

import pytest

from content_integrity.core.config import DetectionConfig
from content_integrity.core.models import DocumentSettings, Severity, WarningType
from content_integrity.services.baseline import rolling_average, select_baseline
from content_integrity.services.detectors import (
    DetectionContext,
    detect_link_drop,
    detect_missing_h1,
    detect_multiple_h1,
    detect_skipped_level,
    detect_word_count_drop,
    find_skipped_level,
    run_pipeline,
)

NOW = datetime(2024, 6, 1, 12, 0, 0)


def ctx(**overrides):
    settings = overrides.pop("settings", DocumentSettings())
    history = overrides.pop("history", ())
    published_at = overrides.pop("published_at", NOW - timedelta(days=365))
    return DetectionContext(
        config=DetectionConfig(**overrides),
        settings=settings,
        history=tuple(history),
        published_at=published_at,
        now=NOW,
    )


# -----------------------
# Link drop
# -----------------------
@pytest.mark.parametrize(
    "after, fires",
    [
        (8, False),  # 20% and 2 links: neither threshold
        (7, True),   # 30% reaches the percentage threshold
        (6, True),
    ],
)
def test_link_drop_thresholds(make_metrics, after, fires):
    base = make_metrics(links=10, content_hash="a")
    cur = make_metrics(links=after, content_hash="b")
    out = detect_link_drop(cur, base, ctx())
    assert bool(out) is fires
    if fires:
        w = out[0]
        assert w.type == WarningType.link_drop
        assert w.severity == Severity.warning
        assert (w.before, w.after) == (10, after)
        assert w.baseline_timestamp == base.timestamp


def test_link_drop_absolute_threshold_alone(make_metrics):
    # 100 -> 97 is 3%, but 3 links meets the absolute threshold
    base = make_metrics(links=100, content_hash="a")
    cur = make_metrics(links=97, content_hash="b")
    out = detect_link_drop(cur, base, ctx())
    assert len(out) == 1
    assert out[0].details["drop"] == 3


def test_link_drop_zero_baseline_never_fires(make_metrics):
    base = make_metrics(links=0, content_hash="a")
    cur = make_metrics(links=0, content_hash="b")
    assert detect_link_drop(cur, base, ctx()) == []
    assert detect_link_drop(make_metrics(links=5), base, ctx()) == []


def test_link_drop_needs_baseline_and_enabled(make_metrics):
    cur = make_metrics(links=0)
    base = make_metrics(links=10, content_hash="a")
    assert detect_link_drop(cur, None, ctx()) == []
    assert detect_link_drop(cur, base, ctx(link_drop_enabled=False)) == []


def test_link_increase_is_not_a_regression(make_metrics):
    base = make_metrics(links=5, content_hash="a")
    cur = make_metrics(links=9, content_hash="b")
    assert detect_link_drop(cur, base, ctx()) == []


# -----------------------
# Word count drop
# -----------------------
def test_word_count_drop_fires_at_threshold(make_metrics):
    base = make_metrics(words=1000, content_hash="a")
    cur = make_metrics(words=650, content_hash="b")
    out = detect_word_count_drop(cur, base, ctx())
    assert len(out) == 1
    assert out[0].type == WarningType.word_count_drop
    assert out[0].details["drop_percent"] == 35
    assert "35% shorter" in out[0].message

    assert detect_word_count_drop(make_metrics(words=700), base, ctx()) == []


def test_word_count_age_gate(make_metrics):
    base = make_metrics(words=1000, content_hash="a")
    cur = make_metrics(words=500, content_hash="b")
    young = ctx(published_at=NOW - timedelta(days=10))
    old = ctx(published_at=NOW - timedelta(days=31))
    assert detect_word_count_drop(cur, base, young) == []
    assert len(detect_word_count_drop(cur, base, old)) == 1


def test_word_count_unknown_publish_date_is_not_gated(make_metrics):
    base = make_metrics(words=1000, content_hash="a")
    cur = make_metrics(words=500, content_hash="b")
    assert len(detect_word_count_drop(cur, base, ctx(published_at=None))) == 1


def test_word_count_skipped_for_short_form(make_metrics):
    base = make_metrics(words=1000, content_hash="a")
    cur = make_metrics(words=100, content_hash="b")
    short = ctx(settings=DocumentSettings(is_short_form=True))
    assert detect_word_count_drop(cur, base, short) == []


def test_word_count_compare_average(make_metrics):
    history = [
        make_metrics(words=1000, content_hash="a"),
        make_metrics(words=400, content_hash="b"),
        make_metrics(words=400, content_hash="c"),
    ]
    cur = make_metrics(words=390, content_hash="d")
    # vs. oldest (1000): 61% drop; vs. average (600): 35% drop
    plain = detect_word_count_drop(cur, history[0], ctx(history=history))
    averaged = detect_word_count_drop(
        cur, history[0], ctx(history=history, word_count_compare_average=True)
    )
    assert plain[0].details["drop_percent"] == 61
    assert averaged[0].details["drop_percent"] == 35
    assert averaged[0].before == 600
    assert "average" in averaged[0].message


# -----------------------
# Headings
# -----------------------
def test_missing_h1(make_metrics):
    out = detect_missing_h1(make_metrics(outline=(2, 3)), None, ctx())
    assert [w.type for w in out] == [WarningType.heading_missing_h1]
    assert out[0].severity == Severity.notice
    assert detect_missing_h1(make_metrics(outline=(1, 2)), None, ctx()) == []
    assert detect_missing_h1(make_metrics(outline=()), None, ctx()) == []


def test_multiple_h1(make_metrics):
    out = detect_multiple_h1(make_metrics(outline=(1, 2, 1, 3)), None, ctx())
    assert len(out) == 1
    assert out[0].severity == Severity.warning
    assert out[0].details == {"count": 2}
    assert "2 found" in out[0].message


@pytest.mark.parametrize(
    "outline, expected",
    [
        ((1, 2, 4), (2, 4)),
        ((1, 2, 3, 4), None),
        ((1, 3, 2, 4), (1, 3)),
        ((2, 3, 2, 1), None),
        ((), None),
    ],
)
def test_find_skipped_level(outline, expected):
    assert find_skipped_level(outline) == expected


def test_skipped_level_warning_details(make_metrics):
    out = detect_skipped_level(make_metrics(outline=(1, 2, 4)), None, ctx())
    assert len(out) == 1
    assert out[0].details == {"from": 2, "to": 4}
    assert "H2 followed by H4" in out[0].message


def test_heading_checks_respect_toggles(make_metrics):
    m = make_metrics(outline=(2, 4, 1, 1))
    off = ctx(heading_enabled=False)
    assert detect_missing_h1(m, None, off) == []
    assert detect_multiple_h1(m, None, off) == []
    assert detect_skipped_level(m, None, off) == []
    assert detect_skipped_level(m, None, ctx(detect_skipped_levels=False)) == []


# -----------------------
# Pipeline / baseline helpers
# -----------------------
def test_crashing_detector_is_isolated(make_metrics):
    def broken(current, baseline, ctx):
        raise ZeroDivisionError("boom")

    base = make_metrics(links=10, content_hash="a")
    cur = make_metrics(links=0, outline=(1, 1), content_hash="b")
    out = run_pipeline(cur, base, ctx(), [broken, detect_link_drop, detect_multiple_h1])
    assert [w.type for w in out] == [WarningType.link_drop, WarningType.heading_multiple_h1]


def test_select_baseline_picks_oldest_other_version(make_metrics):
    a = make_metrics(content_hash="a")
    b = make_metrics(content_hash="b")
    c = make_metrics(content_hash="c")
    assert select_baseline([a, b, c], c) is a
    assert select_baseline([c], c) is None
    assert select_baseline([], c) is None


def test_select_baseline_skips_failed_analyses(make_metrics):
    failed = make_metrics(content_hash="x", failed=True, links=0)
    good = make_metrics(content_hash="y")
    assert select_baseline([failed, good], make_metrics(content_hash="z")) is good


def test_rolling_average(make_metrics):
    avg = rolling_average([make_metrics(words=100, links=2), make_metrics(words=300, links=4)])
    assert avg["word_count"] == 200
    assert avg["internal_link_count"] == 3
    assert rolling_average([]) == {}

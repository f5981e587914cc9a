"""
test_config.py — DetectionConfig defaults, clamping, and Settings wiring.

Common examples:
  pytest -q tests/test_config.py
"""

import pytest

from content_integrity.core.config import DetectionConfig
from content_integrity.core.errors import InvalidConfig
from content_integrity.core.settings import Settings


def test_defaults():
    cfg = DetectionConfig()
    assert cfg.enabled
    assert cfg.document_types == ("post", "page")
    assert cfg.link_drop_percent == 30
    assert cfg.link_drop_absolute == 3
    assert cfg.word_count_drop_percent == 35
    assert cfg.word_count_min_age_days == 30
    assert cfg.snapshot_rolling_count == 5
    assert not cfg.word_count_compare_average


@pytest.mark.parametrize(
    "field, given, expected",
    [
        ("link_drop_percent", 0, 1),
        ("link_drop_percent", 250, 100),
        ("word_count_drop_percent", -5, 1),
        ("link_drop_absolute", 0, 1),
        ("word_count_min_age_days", -3, 0),
        ("snapshot_rolling_count", 0, 1),
        ("snapshot_rolling_count", 500, 50),
    ],
)
def test_out_of_range_values_are_clamped(field, given, expected):
    cfg = DetectionConfig.from_mapping({field: given})
    assert getattr(cfg, field) == expected


def test_garbage_value_raises_invalid_config():
    with pytest.raises(InvalidConfig) as exc:
        DetectionConfig.from_mapping({"link_drop_percent": "lots"})
    assert exc.value.key == "link_drop_percent"
    assert "link_drop_percent" in str(exc.value)


def test_document_types_accept_csv():
    cfg = DetectionConfig(document_types="post, page ,product,")
    assert cfg.document_types == ("post", "page", "product")
    assert cfg.accepts_type("product")
    assert not cfg.accepts_type("attachment")
    assert not cfg.accepts_type(None)


def test_site_host_parsing():
    assert DetectionConfig(site_url="https://Example.com/blog").site_host == "example.com"
    assert DetectionConfig(site_url="example.org").site_host == "example.org"


def test_settings_build_detection_config():
    s = Settings(
        _env_file=None,
        document_types="post,guide",
        link_drop_percent=150,
        site_url="https://docs.example.com",
        exclude_shortcodes=True,
    )
    cfg = s.detection_config()
    assert cfg.document_types == ("post", "guide")
    assert cfg.link_drop_percent == 100
    assert cfg.analyzer.site_host == "docs.example.com"
    assert cfg.analyzer.exclude_shortcodes


def test_settings_reject_non_positive_workers():
    with pytest.raises(ValueError):
        Settings(_env_file=None, batch_max_workers=0)


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("WORD_COUNT_MIN_AGE_DAYS", "14")
    monkeypatch.setenv("CORS_ALLOWED_ORIGINS", "https://a.example, https://b.example")
    s = Settings(_env_file=None)
    assert s.detection_config().word_count_min_age_days == 14
    assert s.cors_origins == ["https://a.example", "https://b.example"]

"""Detection configuration consumed by the engine.

The engine never reads settings on its own: callers build a DetectionConfig
(usually via Settings.detection_config()) and pass it into every call.
Out-of-range numbers are clamped here, at the boundary, so detectors can
trust the thresholds they receive.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Tuple
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, ValidationError, ValidationInfo, field_validator

from content_integrity.core.errors import InvalidConfig

logger = logging.getLogger(__name__)

PERCENT_BOUNDS = (1.0, 100.0)
ROLLING_COUNT_BOUNDS = (1, 50)


def _clamp(name: str, value, low, high=None):
    clamped = max(low, value)
    if high is not None:
        clamped = min(high, clamped)
    if clamped != value:
        logger.warning(
            "Config value out of range; clamped",
            extra={"extra": {"key": name, "value": value, "clamped": clamped}},
        )
    return clamped


@dataclass(frozen=True)
class AnalyzerConfig:
    site_host: str
    exclude_shortcodes: bool = False
    exclude_nofollow_links: bool = False


class DetectionConfig(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    # Module
    enabled: bool = True
    document_types: Tuple[str, ...] = ("post", "page")
    site_url: str = "http://localhost"

    # Internal link detection
    link_drop_enabled: bool = True
    link_drop_percent: float = 30
    link_drop_absolute: int = 3
    exclude_nofollow_links: bool = False

    # Word count detection
    word_count_enabled: bool = True
    word_count_drop_percent: float = 35
    word_count_min_age_days: int = 30
    word_count_compare_average: bool = False
    exclude_shortcodes: bool = False

    # Heading detection
    heading_enabled: bool = True
    detect_missing_h1: bool = True
    detect_multiple_h1: bool = True
    detect_skipped_levels: bool = True

    # Snapshots
    snapshot_rolling_count: int = 5

    # ---------- Validators ----------

    @field_validator("document_types", mode="before")
    @classmethod
    def _split_csv(cls, v: Any) -> Tuple[str, ...]:
        if v is None:
            return ()
        if isinstance(v, str):
            v = v.split(",")
        return tuple(str(s).strip() for s in v if s and str(s).strip())

    @field_validator("link_drop_percent", "word_count_drop_percent")
    @classmethod
    def _clamp_percent(cls, v: float, info: ValidationInfo) -> float:
        return _clamp(info.field_name, v, *PERCENT_BOUNDS)

    @field_validator("link_drop_absolute")
    @classmethod
    def _clamp_absolute(cls, v: int, info: ValidationInfo) -> int:
        return _clamp(info.field_name, v, 1)

    @field_validator("word_count_min_age_days")
    @classmethod
    def _clamp_age(cls, v: int, info: ValidationInfo) -> int:
        return _clamp(info.field_name, v, 0)

    @field_validator("snapshot_rolling_count")
    @classmethod
    def _clamp_rolling(cls, v: int, info: ValidationInfo) -> int:
        return _clamp(info.field_name, v, *ROLLING_COUNT_BOUNDS)

    # ---------- Accessors ----------

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "DetectionConfig":
        """Build a config from untyped input, raising InvalidConfig on garbage."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as e:
            err = e.errors()[0]
            key = ".".join(str(p) for p in err.get("loc", ())) or "config"
            raise InvalidConfig(key, err.get("input"), err.get("msg", "invalid")) from e

    @property
    def site_host(self) -> str:
        url = self.site_url.strip()
        if "//" not in url:
            url = f"//{url}"
        return (urlparse(url).hostname or "").lower()

    @property
    def analyzer(self) -> AnalyzerConfig:
        return AnalyzerConfig(
            site_host=self.site_host,
            exclude_shortcodes=self.exclude_shortcodes,
            exclude_nofollow_links=self.exclude_nofollow_links,
        )

    def accepts_type(self, doc_type: str | None) -> bool:
        return bool(doc_type) and doc_type in self.document_types

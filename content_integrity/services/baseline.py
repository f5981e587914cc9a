"""Baseline selection over a document's retained snapshot window.

The comparison point is the oldest snapshot still remembered, not the
immediately preceding edit, so gradual shrinkage across many small edits
shows up as one drop.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from content_integrity.core.models import Metrics


def select_baseline(history: Sequence[Metrics], current: Metrics) -> Optional[Metrics]:
    """
    Return the oldest snapshot of `history` other than `current`, or None.

    `history` is oldest-first. Entries carrying the current content hash at the
    tail (the just-appended current snapshot) are not candidates.
    """
    candidates = list(history)
    while candidates and candidates[-1].content_hash == current.content_hash:
        candidates.pop()
    # failed analyses are zeroed and would read as a total loss
    candidates = [m for m in candidates if not m.analysis_failed]
    return candidates[0] if candidates else None


def rolling_average(history: Sequence[Metrics]) -> Dict[str, float]:
    """Mean word/link counts across a window; empty dict for an empty window."""
    usable = [m for m in history if not m.analysis_failed]
    if not usable:
        return {}
    n = len(usable)
    return {
        "word_count": sum(m.word_count for m in usable) / n,
        "internal_link_count": sum(m.internal_link_count for m in usable) / n,
        "external_link_count": sum(m.external_link_count for m in usable) / n,
    }

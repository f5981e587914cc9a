#!/usr/bin/env python3
"""
analyzer.py — Turn raw document markup into a structural Metrics snapshot.

Place at: content_integrity/services/analyzer.py
Used by: the regression evaluator (on save, on preview, in batch runs).

What this does:
  - Normalizes markup and computes a stable SHA-1 content hash.
  - Counts words (letter runs) after stripping tags, scripts/styles and,
    optionally, shortcode spans like [gallery ids="1"]...[/gallery].
  - Counts internal vs external links. Links inside nav/footer/menu regions,
    fragment-only links and mailto:/tel:/javascript: links are ignored;
    rel="nofollow" links are optionally ignored.
  - Records the heading outline (h1..h6 levels) in document order, verbatim.

Key function:
  - analyze(document_id, raw_markup, config, timestamp=...) -> Metrics

Notes:
  - Pure: same markup + config always yields the same Metrics (the timestamp
    is supplied by the caller).
  - Never raises on bad markup. html.parser treats unparseable spans as text;
    anything worse yields zeroed Metrics with analysis_failed=True.
"""

from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime
from typing import List, Optional, Tuple
from urllib.parse import urlparse

from bs4 import BeautifulSoup
from bs4.element import Comment, Tag

from content_integrity.core.config import AnalyzerConfig
from content_integrity.core.errors import AnalysisDegraded
from content_integrity.core.models import Metrics, utcnow

logger = logging.getLogger(__name__)

HEADING_RE = re.compile(r"^h[1-6]$")
WORD_RE = re.compile(r"[^\W\d_]+(?:['’-][^\W\d_]+)*")
SHORTCODE_PAIR_RE = re.compile(r"\[([A-Za-z][\w-]*)\b[^\]]*\].*?\[/\1\]", re.S)
SHORTCODE_TAG_RE = re.compile(r"\[/?[A-Za-z][\w-]*\b[^\]]*\]")

NON_CONTENT_TAGS = ["script", "style", "noscript", "template"]
EXCLUDED_REGION_TAGS = {"nav", "footer"}
EXCLUDED_CLASS_MARKERS = ("navigation", "nav-", "menu", "footer")
SKIPPED_SCHEMES = ("mailto:", "tel:", "javascript:")


# -----------------------
# Utilities
# -----------------------
def normalize_markup(s: Optional[str]) -> str:
    """Normalize markup before hashing."""
    if not s:
        return ""
    s = s.replace("\r\n", "\n").replace("\r", "\n")
    return s.strip()


def compute_hash(text: str) -> str:
    return hashlib.sha1(text.encode("utf-8", "ignore")).hexdigest()


def strip_shortcodes(markup: str) -> str:
    """Remove [tag ...]...[/tag] spans (innermost first) and lone [tag] markers."""
    prev = None
    while prev != markup:
        prev = markup
        markup = SHORTCODE_PAIR_RE.sub(" ", markup)
    return SHORTCODE_TAG_RE.sub(" ", markup)


def is_internal_url(href: str, site_host: str) -> bool:
    href = href.strip()
    lower = href.lower()

    # relative URLs are internal
    if not lower.startswith(("http://", "https://", "//")):
        return True

    test = f"http:{href}" if href.startswith("//") else href
    try:
        host = urlparse(test).hostname
    except ValueError:
        return False
    if not host:
        return True
    return host == site_host.lower()


def _soup(markup: str) -> BeautifulSoup:
    try:
        soup = BeautifulSoup(markup, "html.parser")
    except Exception as e:
        raise AnalysisDegraded(f"{type(e).__name__}: {e}") from e
    for node in soup(NON_CONTENT_TAGS):
        node.decompose()
    # block-editor delimiters live in comments
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return soup


def _in_excluded_region(a: Tag) -> bool:
    for parent in a.parents:
        if parent.name in EXCLUDED_REGION_TAGS:
            return True
        classes = parent.get("class") or []
        if isinstance(classes, str):
            classes = classes.split()
        joined = " ".join(classes).lower()
        if any(marker in joined for marker in EXCLUDED_CLASS_MARKERS):
            return True
    return False


def _is_nofollow(a: Tag) -> bool:
    rel = a.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any("nofollow" in r.lower() for r in rel)


# -----------------------
# Extractors
# -----------------------
def count_links(soup: BeautifulSoup, config: AnalyzerConfig) -> Tuple[int, int]:
    """Return (internal, external) link counts."""
    internal = external = 0
    for a in soup.find_all("a", href=True):
        href = (a.get("href") or "").strip()
        if not href or href.startswith("#"):
            continue
        if href.lower().startswith(SKIPPED_SCHEMES):
            continue
        if _in_excluded_region(a):
            continue
        if config.exclude_nofollow_links and _is_nofollow(a):
            continue
        if is_internal_url(href, config.site_host):
            internal += 1
        else:
            external += 1
    return internal, external


def count_words(soup: BeautifulSoup) -> int:
    text = soup.get_text(" ")
    return len(WORD_RE.findall(text))


def heading_outline(soup: BeautifulSoup) -> List[int]:
    return [int(tag.name[1]) for tag in soup.find_all(HEADING_RE)]


# -----------------------
# Core: analyze
# -----------------------
def analyze(
    document_id: str,
    raw_markup: Optional[str],
    config: AnalyzerConfig,
    *,
    timestamp: Optional[datetime] = None,
) -> Metrics:
    """
    Produce a Metrics snapshot for one document version.
    Returns zeroed Metrics flagged analysis_failed when markup cannot be analyzed.
    """
    timestamp = timestamp or utcnow()
    if isinstance(raw_markup, bytes):
        raw_markup = raw_markup.decode("utf-8", "replace")
    markup = normalize_markup(raw_markup)
    content_hash = compute_hash(markup)

    try:
        soup = _soup(markup)
        internal, external = count_links(soup, config)
        outline = heading_outline(soup)
        word_soup = _soup(strip_shortcodes(markup)) if config.exclude_shortcodes else soup
        words = count_words(word_soup)
    except Exception as e:
        reason = e.reason if isinstance(e, AnalysisDegraded) else f"{type(e).__name__}: {e}"
        logger.warning(
            "Content analysis degraded",
            extra={"extra": {"document_id": document_id, "reason": reason}},
        )
        return Metrics(
            document_id=document_id,
            timestamp=timestamp,
            word_count=0,
            internal_link_count=0,
            heading_outline=(),
            content_hash=content_hash,
            external_link_count=0,
            analysis_failed=True,
        )

    return Metrics(
        document_id=document_id,
        timestamp=timestamp,
        word_count=words,
        internal_link_count=internal,
        heading_outline=tuple(outline),
        content_hash=content_hash,
        external_link_count=external,
    )

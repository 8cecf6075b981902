"""Engine configuration.

Everything the extractors and the scoring engine treat as a constant lives
here: archive entry names, parse thresholds, Core Web Vitals limits and the
weight tables. All structures are frozen; override per run or per test with
``dataclasses.replace``::

    cfg = replace(DEFAULT_CONFIG, cwv=CwvThresholds(lcp_ms=4000))
"""
from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

__all__ = [
    "ZIP_MAGIC",
    "TableConfig",
    "ArchiveLayout",
    "CwvThresholds",
    "ScoringConfig",
    "EtlConfig",
    "DEFAULT_CONFIG",
]

# Every ZIP local file header starts with "PK"
ZIP_MAGIC = b"PK"


def _frozen(mapping: dict) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class TableConfig:
    """Primary/fallback decoding for delimited exports."""

    max_row_errors: int = 5
    primary_encoding: str = "utf-8"
    primary_delimiter: str = ","
    fallback_encoding: str = "utf-16-le"
    fallback_delimiter: str = "\t"


# ---------- Archive layout ----------

SITE_AUDIT_ISSUES = {
    "4xx": ("Error-4XX_page.csv", "Error-404_page.csv"),
    "5xx": ("Error-5XX_page.csv",),
    "redirect_chains": ("Error-Redirect_chain.csv", "Warning-3XX_redirect.csv"),
    "canonical": ("Error-indexable-Canonical_chain.csv", "Warning-Canonical_to_redirected_URL.csv"),
    "duplicate_titles": ("Warning-indexable-Title_tag_duplicate.csv",),
    "thin": ("Warning-indexable-Content_thin.csv",),
    "orphan_pages": ("Error-indexable-Orphan_page.csv",),
}

# filename -> provenance key it can flip to "present" (None: tracked only)
ACCESS_PLACEHOLDERS = {
    "surfer_page_queue.csv": None,
    "gsc_queries_28d.csv": "gsc",
    "gsc_pages_28d.csv": "gsc",
    "ga4_pages.csv": "ga4",
    "ga4_conversions.csv": "ga4",
    "ga4_channels.csv": "ga4",
    "leadsnap_leads.csv": "leadsnap",
    "leadsnap_calls.csv": "leadsnap",
    "leadsnap_reviews.csv": "leadsnap",
}


@dataclass(frozen=True)
class ArchiveLayout:
    """Entry names expected inside the client archive. All are optional."""

    ahrefs_keywords: str = "ahrefs_keywords.csv"
    ahrefs_top_pages: str = "ahrefs_top_pages.csv"
    ahrefs_backlinks: str = "ahrefs_backlinks.csv"
    ahrefs_site_audit: str = "ahrefs_site_audit.zip"
    sf_internal_all: str = "sf_internal_all.csv"
    sf_structured_data: str = "sf_structured_data.csv"
    sf_duplicates: str = "sf_duplicates.csv"
    sf_images: str = "sf_images.csv"
    lighthouse_reports: Tuple[str, ...] = (
        "lighthouse_home.json",
        "lighthouse_service.json",
        "lighthouse_city.json",
    )
    brightlocal_ranks: str = "brightlocal_ranks.csv"
    brightlocal_citations: str = "brightlocal_citations.csv"
    brightlocal_reviews: str = "brightlocal_reviews.csv"
    brightlocal_gbp_insights: str = "brightlocal_gbp_insights.csv"
    gbp_categories: str = "gbp_categories.csv"
    gbp_photos: str = "gbp_photos.csv"
    site_audit_issues: Mapping[str, Tuple[str, ...]] = field(
        default_factory=lambda: _frozen(SITE_AUDIT_ISSUES)
    )
    access_placeholders: Mapping[str, Optional[str]] = field(
        default_factory=lambda: _frozen(ACCESS_PLACEHOLDERS)
    )


@dataclass(frozen=True)
class CwvThresholds:
    """Limits for a passing page, in the units Lighthouse reports (ms / unitless)."""

    lcp_ms: float = 2500
    cls: float = 0.10
    inp_ms: float = 200
    percentile: float = 0.75


# ---------- Scoring ----------

ONSITE_WEIGHTS = {
    "gsc_clicks": 30,
    "kw_top10": 20,
    "site_health": 20,
    "cwv_pass": 15,
    "indexed_valid": 15,
}

LOCAL_WEIGHTS = {
    "avg_local_rank": 40,
    "pct_top3": 25,
    "citations": 15,
    "reviews": 10,
    "gbp_actions": 10,
}


@dataclass(frozen=True)
class ScoringConfig:
    onsite_weights: Mapping[str, float] = field(default_factory=lambda: _frozen(ONSITE_WEIGHTS))
    local_weights: Mapping[str, float] = field(default_factory=lambda: _frozen(LOCAL_WEIGHTS))
    # error density per page that scores 0 for site health
    bad_errors_per_page: float = 0.5
    default_pages: int = 100
    worst_local_rank: float = 20
    review_floor: float = 3.5
    review_span: float = 1.5


@dataclass(frozen=True)
class EtlConfig:
    tables: TableConfig = field(default_factory=TableConfig)
    layout: ArchiveLayout = field(default_factory=ArchiveLayout)
    cwv: CwvThresholds = field(default_factory=CwvThresholds)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)


DEFAULT_CONFIG = EtlConfig()

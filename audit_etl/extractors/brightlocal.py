"""BrightLocal exports: local ranks, citations, reviews, public GBP listing."""
from __future__ import annotations

import logging
from typing import Optional

from audit_etl.extractors.common import load_rows
from audit_etl.lib.archive import EntryReader
from audit_etl.lib.config import EtlConfig
from audit_etl.lib.manifest import PARTIAL
from audit_etl.lib.schema import Contribution
from audit_etl.lib.tables import half_up, normalize_percent, numeric_values, resolve_column

log = logging.getLogger(__name__)

POSITION_COLS = ["position", "rank", "serp position", "pos"]
CONSISTENCY_COLS = [
    "consistency", "nap consistency", "consistency %", "consistency%",
    "accuracy", "accuracy %", "score", "citation score", "overall score",
]
REVIEW_COUNT_COLS = ["review count", "reviews", "reviews_total"]
RATING_COLS = ["star rating", "rating", "reviews_average_rating"]
PHOTO_COLS = ["photos", "photos_total"]


def _max(df, col) -> Optional[float]:
    nums = numeric_values(df[col])
    if not nums:
        return None
    top = max(nums)
    return int(top) if top.is_integer() else top


def extract_ranks(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.brightlocal_ranks)
    if df is None:
        return None

    out = Contribution("brightlocal_ranks").set("provenance.brightlocal", True)
    pos_col = resolve_column(df, POSITION_COLS)
    log.info("BL ranks: position column %r", pos_col)
    if not pos_col:
        return out

    positions = [p for p in numeric_values(df[pos_col]) if p > 0]
    if not positions:
        return out.set("local.rank.keywords_tracked", len(df))
    avg = sum(positions) / len(positions)
    return (
        out.set("local.rank.avg_pos", half_up(avg * 10) / 10)
        .set("local.rank.pct_top3", sum(1 for p in positions if p <= 3) / len(positions))
        .set("local.rank.keywords_tracked", len(positions))
    )


def extract_citations(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.brightlocal_citations)
    if df is None:
        return None

    out = Contribution("brightlocal_citations").set("provenance.brightlocal", True)
    c_col = resolve_column(df, CONSISTENCY_COLS)
    log.info("BL citations: consistency column %r", c_col)
    if c_col:
        nums = numeric_values(df[c_col])
        if nums:
            out.set("local.citations.consistency", normalize_percent(sum(nums) / len(nums)))
    return out


def extract_reviews(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.brightlocal_reviews, placeholder_note="login_required")
    if df is None:
        return None
    return Contribution("brightlocal_reviews").set("provenance.brightlocal", True)


def extract_gbp_insights(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    """Public listing numbers only; the true GBP Insights need owner access."""
    name = config.layout.brightlocal_gbp_insights
    df = load_rows(reader, name)
    if df is None:
        return None

    out = Contribution("brightlocal_gbp_insights")
    col_reviews = resolve_column(df, REVIEW_COUNT_COLS)
    col_rating = resolve_column(df, RATING_COLS)
    col_photos = resolve_column(df, PHOTO_COLS)
    if col_reviews:
        out.set("local.reviews.count_total", _max(df, col_reviews))
    if col_rating:
        out.set("local.reviews.avg_rating", _max(df, col_rating))
    if col_photos:
        out.set("local.gbp.photos_total", _max(df, col_photos))
    reader.manifest.amend(name, status=PARTIAL, note="public listing only; true Insights missing")
    return out.set("provenance.brightlocal", True)

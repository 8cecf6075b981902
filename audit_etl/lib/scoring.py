"""Proportional composite scores over the normalized audit.

Two weighted indices (on-site and local). Each metric has an availability
predicate and a raw 0..1 value; only available metrics count, and the share
of weight they carry is reported as ``coverage``. Missing data lowers
coverage instead of raising.

avg_local_rank and pct_top3 are always treated as available: with no rank
data they score as the worst case (position 20, no top-3 share) so a client
without local tracking is penalised rather than excluded. Every other metric
is simply left out when its input is missing.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from audit_etl.lib.config import ScoringConfig
from audit_etl.lib.tables import half_up

__all__ = ["CompositeScore", "Scores", "compute_scores", "aggregate"]


@dataclass
class CompositeScore:
    score: float
    coverage: float
    weight_used: float
    weight_total: float
    raw: Dict[str, Optional[float]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "coverage": self.coverage,
            "weight_used": self.weight_used,
            "weight_total": self.weight_total,
            "raw": dict(self.raw),
        }


@dataclass
class Scores:
    onsite: CompositeScore
    local: CompositeScore

    def to_dict(self) -> Dict[str, Any]:
        return {"onsite": self.onsite.to_dict(), "local": self.local.to_dict()}


# ---------- Helpers ----------

def _num(value: Any) -> Optional[float]:
    """Finite number or None ("missing", null, strings, bools all count as absent)."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def _clamp(x: float, lo: float = 0.0, hi: float = 1.0) -> float:
    return max(lo, min(hi, x))


def _error_total(doc: dict) -> int:
    errors = doc["onsite"]["errors"]
    return sum(v for v in errors.values() if isinstance(v, int) and not isinstance(v, bool))


# ---------- On-site metrics ----------

def _kw_top10(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    kw = doc["onsite"]["keywords"]
    top10 = _num(kw["top10"])
    if top10 is None:
        return None
    top100 = max(_num(kw["top100"]) or 0.0, 1.0)
    return min(top10 / top100, 1.0)


def _site_health(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    pages = _num(doc["onsite"]["content"]["pages_total"])
    total = _error_total(doc)
    if pages is None and total == 0:
        return None
    epp = total / (pages or cfg.default_pages)
    return _clamp(1 - epp / cfg.bad_errors_per_page)


def _cwv_pass(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    return _num(doc["onsite"]["cwv"]["pass_rate"])


def _unavailable(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    # reserved for sources no extractor covers yet (GSC clicks, index coverage, GBP actions)
    return None


# ---------- Local metrics ----------

def _avg_local_rank(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    avg_pos = _num(doc["local"]["rank"]["avg_pos"]) or cfg.worst_local_rank
    return _clamp(1 - (avg_pos - 1) / (cfg.worst_local_rank - 1))


def _pct_top3(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    return _num(doc["local"]["rank"]["pct_top3"]) or 0.0


def _citations(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    return _num(doc["local"]["citations"]["consistency"])


def _reviews(doc: dict, cfg: ScoringConfig) -> Optional[float]:
    rating = _num(doc["local"]["reviews"]["avg_rating"])
    if rating is None:
        return None
    return _clamp((rating - cfg.review_floor) / cfg.review_span)


MetricFn = Callable[[dict, ScoringConfig], Optional[float]]

# A metric is available exactly when its function returns a number.
METRICS: Mapping[str, MetricFn] = {
    "gsc_clicks": _unavailable,
    "kw_top10": _kw_top10,
    "site_health": _site_health,
    "cwv_pass": _cwv_pass,
    "indexed_valid": _unavailable,
    "avg_local_rank": _avg_local_rank,
    "pct_top3": _pct_top3,
    "citations": _citations,
    "reviews": _reviews,
    "gbp_actions": _unavailable,
}


# ---------- Aggregation ----------

def aggregate(weights: Mapping[str, float], raw: Mapping[str, Optional[float]]) -> Tuple[float, float, float]:
    """Weighted mean over metrics with a raw value. Returns (score, used, total)."""
    total = sum(weights.values())
    used = 0
    acc = 0.0
    for name, w in weights.items():
        value = raw.get(name)
        if value is None:
            continue
        used += w
        acc += w * value
    score = half_up(acc / used * 1000) / 10 if used else 0
    return score, used, total


def _composite(doc: dict, weights: Mapping[str, float], cfg: ScoringConfig) -> CompositeScore:
    raw: Dict[str, Optional[float]] = {}
    for name in weights:
        fn = METRICS.get(name, _unavailable)
        try:
            raw[name] = fn(doc, cfg)
        except (KeyError, TypeError, ZeroDivisionError):
            raw[name] = None
    score, used, total = aggregate(weights, raw)
    coverage = half_up(used / total * 100) / 100 if total else 0
    return CompositeScore(score=score, coverage=coverage, weight_used=used, weight_total=total, raw=raw)


def compute_scores(doc: dict, config: Optional[ScoringConfig] = None) -> Scores:
    """Score a finished normalized audit. Read-only over ``doc``."""
    cfg = config or ScoringConfig()
    return Scores(
        onsite=_composite(doc, cfg.onsite_weights, cfg),
        local=_composite(doc, cfg.local_weights, cfg),
    )

"""
Tests for the proportional composite scores.
"""

import json
from dataclasses import replace

import pytest

from audit_etl.lib.config import ScoringConfig
from audit_etl.lib.schema import empty_document
from audit_etl.lib.scoring import aggregate, compute_scores


@pytest.fixture
def doc(meta):
    return empty_document(meta)


class TestEmptyDocument:
    """Nothing recoverable."""

    def test_onsite_zero_without_coverage(self, doc):
        onsite = compute_scores(doc).onsite
        assert onsite.score == 0
        assert onsite.coverage == 0
        assert onsite.weight_used == 0
        assert onsite.weight_total == 100

    def test_local_scored_from_conservative_defaults(self, doc):
        """Rank and top-3 share still count, as worst case."""
        local = compute_scores(doc).local
        assert local.score == 0
        assert local.weight_used == 65
        assert local.coverage == 0.65
        assert local.raw["avg_local_rank"] == 0
        assert local.raw["pct_top3"] == 0

    def test_excluded_metrics_reported_as_null(self, doc):
        scores = compute_scores(doc)
        assert scores.onsite.raw == {
            "gsc_clicks": None,
            "kw_top10": None,
            "site_health": None,
            "cwv_pass": None,
            "indexed_valid": None,
        }
        assert scores.local.raw["citations"] is None
        assert scores.local.raw["gbp_actions"] is None

    def test_does_not_mutate(self, doc, meta):
        compute_scores(doc)
        assert doc == empty_document(meta)


class TestOnsite:
    """On-site metrics."""

    def test_keyword_share(self, doc):
        doc["onsite"]["keywords"].update(top3=2, top10=10, top100=40)
        onsite = compute_scores(doc).onsite
        assert onsite.raw["kw_top10"] == 0.25
        assert onsite.score == 25.0
        assert onsite.coverage == 0.2

    def test_score_rounds_half_up(self, doc):
        """41 of 80 keywords: 51.25 -> 51.3."""
        doc["onsite"]["keywords"].update(top3=0, top10=41, top100=80)
        assert compute_scores(doc).onsite.score == 51.3

    def test_keyword_share_clamped(self, doc):
        doc["onsite"]["keywords"].update(top10=5, top100=0)
        assert compute_scores(doc).onsite.raw["kw_top10"] == 1.0

    def test_site_health_from_error_density(self, doc):
        doc["onsite"]["content"]["pages_total"] = 200
        doc["onsite"]["errors"]["4xx"] = 30
        doc["onsite"]["errors"]["thin"] = 20
        # 50 errors / 200 pages = 0.25 -> half of the 0.5 floor
        assert compute_scores(doc).onsite.raw["site_health"] == pytest.approx(0.5)

    def test_site_health_defaults_to_100_pages(self, doc):
        doc["onsite"]["errors"]["5xx"] = 10
        assert compute_scores(doc).onsite.raw["site_health"] == pytest.approx(0.8)

    def test_site_health_floor(self, doc):
        doc["onsite"]["content"]["pages_total"] = 10
        doc["onsite"]["errors"]["4xx"] = 50
        assert compute_scores(doc).onsite.raw["site_health"] == 0

    def test_site_health_clean_site(self, doc):
        doc["onsite"]["content"]["pages_total"] = 80
        assert compute_scores(doc).onsite.raw["site_health"] == 1

    def test_cwv_pass_rate(self, doc):
        doc["onsite"]["cwv"]["pass_rate"] = 0.5
        onsite = compute_scores(doc).onsite
        assert onsite.raw["cwv_pass"] == 0.5
        assert onsite.weight_used == 15

    def test_weighted_mean(self, doc):
        doc["onsite"]["keywords"].update(top10=10, top100=20)   # 0.5 x 20
        doc["onsite"]["content"]["pages_total"] = 100          # 1.0 x 20
        doc["onsite"]["cwv"]["pass_rate"] = 1.0                # 1.0 x 15
        onsite = compute_scores(doc).onsite
        assert onsite.weight_used == 55
        assert onsite.score == round(100 * (10 + 20 + 15) / 55, 1)
        assert onsite.coverage == 0.55


class TestLocal:
    """Local metrics."""

    def test_rank_position_one_is_perfect(self, doc):
        doc["local"]["rank"].update(avg_pos=1, pct_top3=1.0)
        local = compute_scores(doc).local
        assert local.raw["avg_local_rank"] == 1
        assert local.score == 100.0

    def test_rank_scale(self, doc):
        doc["local"]["rank"]["avg_pos"] = 10.5
        assert compute_scores(doc).local.raw["avg_local_rank"] == pytest.approx(0.5)

    def test_reviews(self, doc):
        doc["local"]["reviews"]["avg_rating"] = 4.25
        local = compute_scores(doc).local
        assert local.raw["reviews"] == pytest.approx(0.5)
        assert local.weight_used == 75

    def test_reviews_clamped(self, doc):
        doc["local"]["reviews"]["avg_rating"] = 2.0
        assert compute_scores(doc).local.raw["reviews"] == 0

    def test_review_count_alone_is_not_enough(self, doc):
        doc["local"]["reviews"]["count_total"] = 40
        assert compute_scores(doc).local.raw["reviews"] is None

    def test_citations(self, doc):
        doc["local"]["citations"]["consistency"] = 0.8
        local = compute_scores(doc).local
        assert local.raw["citations"] == 0.8
        assert local.score == round(100 * (15 * 0.8) / 80, 1)


class TestRobustness:
    """The engine never raises on document content."""

    def test_garbage_values_count_as_missing(self, doc):
        doc["onsite"]["keywords"]["top10"] = "lots"
        doc["onsite"]["cwv"]["pass_rate"] = True
        doc["local"]["citations"]["consistency"] = "missing"
        scores = compute_scores(doc)
        assert scores.onsite.raw["kw_top10"] is None
        assert scores.onsite.raw["cwv_pass"] is None
        assert scores.local.raw["citations"] is None

    def test_unknown_weighted_metric_is_unavailable(self, doc):
        cfg = replace(ScoringConfig(), onsite_weights={"kw_top10": 20, "brand_mentions": 10})
        doc["onsite"]["keywords"].update(top10=1, top100=1)
        onsite = compute_scores(doc, cfg).onsite
        assert onsite.raw["brand_mentions"] is None
        assert onsite.coverage == round(20 / 30, 2)

    def test_to_dict_shape(self, doc):
        out = compute_scores(doc).to_dict()
        assert set(out) == {"onsite", "local"}
        assert set(out["local"]) == {"score", "coverage", "weight_used", "weight_total", "raw"}

    def test_weights_stay_integers(self, doc):
        out = compute_scores(doc).to_dict()
        assert json.dumps(out["local"]["weight_used"]) == "65"
        assert json.dumps(out["onsite"]["weight_total"]) == "100"


class TestAggregate:
    def test_no_available_metrics(self):
        assert aggregate({"a": 10}, {"a": None}) == (0, 0, 10)

    def test_empty_weights(self):
        assert aggregate({}, {}) == (0, 0, 0)

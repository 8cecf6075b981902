"""Canonical normalized-audit document.

``empty_document`` returns the full tree with every leaf pre-populated, so
consumers can walk it without existence checks. Extractors never touch the
tree directly: they return a ``Contribution`` naming dotted paths, and
``AuditBuilder`` folds contributions onto a fresh tree in a fixed order.

Merge rules per contribution:

- ``values``      overwrite the target leaf
- ``counters``    add to an integer counter
- ``first_wins``  set only while the target is still null
"""
from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

__all__ = ["AuditMeta", "Contribution", "AuditBuilder", "empty_document", "get_path"]

MISSING = "missing"
PRESENT = "present"


@dataclass(frozen=True)
class AuditMeta:
    client: str
    domain: str
    run_date: str


def empty_document(meta: AuditMeta) -> Dict[str, Any]:
    return {
        "meta": {"client": meta.client, "domain": meta.domain, "run_date": meta.run_date},
        "onsite": {
            "site_health": None,
            "errors": {
                "4xx": 0,
                "5xx": 0,
                "redirect_chains": 0,
                "canonical": 0,
                "thin": 0,
                "duplicate_titles": 0,
                "orphan_pages": 0,
            },
            "meta": {"missing_title": 0, "missing_description": 0, "weak_title": 0},
            "schema": {
                "organization": False,
                "localbusiness": False,
                "service": False,
                "faq": False,
                "review": False,
            },
            "cwv": {"lcp_p75": MISSING, "cls_p75": MISSING, "inp_p75": MISSING, "pass_rate": MISSING},
            "content": {
                "pages_total": None,
                "service_pages": None,
                "location_pages": None,
                "blog_posts": None,
                "content_gap_terms": None,
            },
            "keywords": {"top3": None, "top10": None, "top100": None},
        },
        "local": {
            "rank": {"avg_pos": None, "pct_top3": None, "keywords_tracked": None},
            "citations": {"consistency": None, "dupes": None, "top_dirs_ok": None, "top_dirs_total": None},
            "reviews": {"avg_rating": None, "count_total": None, "count_90d": None, "response_rate": None},
            "gbp": {
                "primary_category": None,
                "secondary_categories": [],
                "photos_total": None,
                # no extractor feeds these yet
                "insights_calls": MISSING,
                "insights_directions": MISSING,
                "insights_website_clicks": MISSING,
            },
        },
        "backlinks": {"ref_domains": None, "new_90d": None, "lost_90d": None, "dr": None, "anchor_brand_pct": None},
        "provenance": {
            "ahrefs": False,
            "screamingfrog": False,
            "lighthouse": False,
            "brightlocal": False,
            "gbp_public": False,
            "gsc": MISSING,
            "ga4": MISSING,
            "leadsnap": MISSING,
        },
    }


@dataclass
class Contribution:
    """Fields one extractor observed, keyed by dotted document path."""

    source: str
    values: Dict[str, Any] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)
    first_wins: Dict[str, Any] = field(default_factory=dict)

    def set(self, path: str, value: Any) -> "Contribution":
        self.values[path] = value
        return self

    def add(self, path: str, count: int) -> "Contribution":
        self.counters[path] = self.counters.get(path, 0) + int(count)
        return self

    def set_if_unset(self, path: str, value: Any) -> "Contribution":
        self.first_wins[path] = value
        return self


def _parent(doc: Dict[str, Any], path: str):
    *parents, leaf = path.split(".")
    node = doc
    for key in parents:
        node = node[key]
    if not isinstance(node, dict) or leaf not in node:
        raise KeyError(f"{path!r} is not a field of the normalized audit")
    return node, leaf


def get_path(doc: Dict[str, Any], path: str) -> Any:
    node, leaf = _parent(doc, path)
    return node[leaf]


class AuditBuilder:
    """Accumulates contributions and folds them in ``order``.

    Applying a second contribution from the same source replaces the first,
    so re-running an extractor never double-counts.
    """

    def __init__(self, meta: AuditMeta, order: Iterable[str]):
        self.meta = meta
        self.order: List[str] = list(order)
        self._contributions: Dict[str, Contribution] = {}

    def apply(self, contribution: Optional[Contribution]) -> None:
        if contribution is None:
            return
        if contribution.source not in self.order:
            raise ValueError(f"unknown extractor source: {contribution.source!r}")
        self._contributions[contribution.source] = contribution

    def build(self) -> Dict[str, Any]:
        doc = empty_document(self.meta)
        for source in self.order:
            c = self._contributions.get(source)
            if c is None:
                continue
            for path, value in c.values.items():
                node, leaf = _parent(doc, path)
                node[leaf] = copy.deepcopy(value)
            for path, count in c.counters.items():
                node, leaf = _parent(doc, path)
                node[leaf] += count
            for path, value in c.first_wins.items():
                node, leaf = _parent(doc, path)
                if node[leaf] is None:
                    node[leaf] = copy.deepcopy(value)
        return doc

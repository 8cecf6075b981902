"""Archive -> normalized audit + scores + manifest.

Extractors run sequentially in ``EXTRACTORS`` order, and the builder folds
their contributions in that same order. The order decides "first writer
wins" fields: Ahrefs top pages sets ``onsite.content.pages_total`` before the
Screaming Frog crawl gets a chance to.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import requests

from audit_etl.extractors import access_placeholders, ahrefs, brightlocal, gbp, lighthouse, screamingfrog
from audit_etl.lib.archive import EntryReader, open_archive
from audit_etl.lib.config import DEFAULT_CONFIG, EtlConfig
from audit_etl.lib.errors import ArchiveDownloadError
from audit_etl.lib.manifest import Manifest
from audit_etl.lib.schema import AuditBuilder, AuditMeta, Contribution
from audit_etl.lib.scoring import compute_scores

__all__ = ["EXTRACTORS", "EXTRACTOR_ORDER", "AuditResult", "fetch_archive", "process_archive", "process_zip_url"]

log = logging.getLogger(__name__)

Extractor = Callable[[EntryReader, EtlConfig], Optional[Contribution]]

EXTRACTORS: Tuple[Tuple[str, Extractor], ...] = (
    ("ahrefs_keywords", ahrefs.extract_keywords),
    ("ahrefs_top_pages", ahrefs.extract_top_pages),
    ("ahrefs_backlinks", ahrefs.extract_backlinks),
    ("ahrefs_site_audit", ahrefs.extract_site_audit),
    ("sf_internal_all", screamingfrog.extract_internal_all),
    ("sf_structured_data", screamingfrog.extract_structured_data),
    ("sf_duplicates", screamingfrog.extract_duplicates),
    ("sf_images", screamingfrog.extract_images),
    ("lighthouse", lighthouse.extract_cwv),
    ("brightlocal_ranks", brightlocal.extract_ranks),
    ("brightlocal_citations", brightlocal.extract_citations),
    ("brightlocal_reviews", brightlocal.extract_reviews),
    ("brightlocal_gbp_insights", brightlocal.extract_gbp_insights),
    ("gbp_categories", gbp.extract_categories),
    ("gbp_photos", gbp.extract_photos),
    ("access_placeholders", access_placeholders.extract_access_placeholders),
)

EXTRACTOR_ORDER: Tuple[str, ...] = tuple(name for name, _ in EXTRACTORS)


@dataclass
class AuditResult:
    normalized_audit: Dict[str, Any]
    scores: Dict[str, Any]
    manifest: Dict[str, Dict[str, Any]]


def fetch_archive(url: str, session: Optional[requests.Session] = None, timeout: float = 60) -> bytes:
    """Download the whole archive. Any failure is fatal for the run."""
    http = session or requests
    try:
        r = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise ArchiveDownloadError(f"Download failed: {e}") from e
    if not r.ok:
        raise ArchiveDownloadError(f"Download failed: {r.status_code}", status_code=r.status_code)
    return r.content


def process_archive(data: bytes, meta: AuditMeta, config: EtlConfig = DEFAULT_CONFIG) -> AuditResult:
    """Run every extractor over ``data`` and score the result.

    Raises ArchiveFormatError when ``data`` is not a ZIP; every other problem
    is recorded in the manifest.
    """
    archive = open_archive(data)
    manifest = Manifest()
    reader = EntryReader(archive, manifest, config.tables)
    builder = AuditBuilder(meta, EXTRACTOR_ORDER)

    for name, extractor in EXTRACTORS:
        contribution = extractor(reader, config)
        if contribution is not None and contribution.source != name:
            raise ValueError(f"extractor {name!r} returned a contribution for {contribution.source!r}")
        builder.apply(contribution)
        log.debug("%s: %s", name, "contributed" if contribution else "nothing usable")

    doc = builder.build()
    scores = compute_scores(doc, config.scoring)
    log.info(
        "scores: onsite=%s (coverage %s), local=%s (coverage %s)",
        scores.onsite.score, scores.onsite.coverage, scores.local.score, scores.local.coverage,
    )
    return AuditResult(normalized_audit=doc, scores=scores.to_dict(), manifest=manifest.to_dict())


def process_zip_url(
    url: str,
    meta: AuditMeta,
    config: EtlConfig = DEFAULT_CONFIG,
    session: Optional[requests.Session] = None,
    timeout: float = 60,
) -> AuditResult:
    return process_archive(fetch_archive(url, session=session, timeout=timeout), meta, config)

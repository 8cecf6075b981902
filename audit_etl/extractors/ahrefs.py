"""Ahrefs exports: organic keywords, top pages, referring domains, site audit.

Keyword exports carry both "Current position" and "Previous position"; the
current one wins when both are present. The site audit ships as a nested ZIP
with one CSV per issue, and the same issue may be named differently across
Ahrefs versions, so every candidate file for a category is counted.
"""
from __future__ import annotations

import logging
from typing import Optional

from audit_etl.extractors.common import load_rows
from audit_etl.lib.archive import ENTRY_ERRORS, EntryReader, open_archive
from audit_etl.lib.config import EtlConfig
from audit_etl.lib.errors import ArchiveFormatError
from audit_etl.lib.manifest import FULL, PARTIAL
from audit_etl.lib.schema import Contribution
from audit_etl.lib.tables import numeric_values, parse_table, resolve_column

log = logging.getLogger(__name__)

POSITION_COLS = ["current position", "previous position"]
URL_COLS = ["current url", "url", "page url", "address"]
DR_COLS = ["dr", "domain rating"]


def extract_keywords(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    name = config.layout.ahrefs_keywords
    df = load_rows(reader, name)
    if df is None:
        return None

    out = Contribution("ahrefs_keywords").set("provenance.ahrefs", True)
    pos_col = resolve_column(df, POSITION_COLS)
    log.info("Ahrefs keywords: position column %r", pos_col)
    if not pos_col:
        log.warning('Ahrefs keywords: no usable "current position"/"previous position" column found.')
        return out

    positions = [p for p in numeric_values(df[pos_col]) if p > 0]
    out.set("onsite.keywords.top3", sum(1 for p in positions if p <= 3))
    out.set("onsite.keywords.top10", sum(1 for p in positions if p <= 10))
    out.set("onsite.keywords.top100", sum(1 for p in positions if p <= 100))
    return out


def extract_top_pages(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    name = config.layout.ahrefs_top_pages
    df = load_rows(reader, name)
    if df is None:
        return None

    url_col = resolve_column(df, URL_COLS)
    log.info("Ahrefs top pages: URL column %r", url_col)
    pages = len(set(df[url_col])) if url_col else len(df)
    return (
        Contribution("ahrefs_top_pages")
        .set_if_unset("onsite.content.pages_total", pages)
        .set("provenance.ahrefs", True)
    )


def extract_backlinks(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    name = config.layout.ahrefs_backlinks
    df = load_rows(reader, name)
    if df is None:
        return None

    out = Contribution("ahrefs_backlinks")
    out.set("backlinks.ref_domains", len(df))
    dr_col = resolve_column(df, DR_COLS)
    if dr_col:
        dr = numeric_values(df[dr_col])
        if dr:
            out.set("backlinks.dr", sum(dr) / len(dr))
    return out.set("provenance.ahrefs", True)


def extract_site_audit(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    name = config.layout.ahrefs_site_audit
    data = reader.read(name)
    if data is None:
        return None

    out = Contribution("ahrefs_site_audit")
    try:
        inner = open_archive(data)
        for category, files in config.layout.site_audit_issues.items():
            count = 0
            for f in files:
                raw = inner.lookup(f)
                if raw is None:
                    continue
                count += len(parse_table(raw, reader.table_config))
            out.add(f"onsite.errors.{category}", count)
    except (ArchiveFormatError,) + ENTRY_ERRORS as e:
        log.warning("%s: nested audit unreadable: %s", name, e)
        reader.manifest.amend(name, status=PARTIAL, note=str(e))
        return None

    reader.manifest.amend(name, status=FULL)
    return out.set("provenance.ahrefs", True)

"""Screaming Frog exports: Internal:All, Structured Data, Duplicates, Images."""
from __future__ import annotations

import logging
from typing import Optional

from audit_etl.extractors.common import load_rows
from audit_etl.lib.archive import EntryReader
from audit_etl.lib.config import EtlConfig
from audit_etl.lib.manifest import PARTIAL
from audit_etl.lib.schema import Contribution
from audit_etl.lib.tables import numeric_values, resolve_column

log = logging.getLogger(__name__)

STATUS_COLS = ["status code", "status"]
ELEMENT_COLS = ["element", "type", "schema type", "schema_type", "schema"]

# schema flag -> substring looked for in the lower-cased element/type values
SCHEMA_MARKERS = {
    "organization": "organization",
    "localbusiness": "localbusiness",
    "service": "service",
    "faq": "faq",
    "review": "review",
}


def extract_internal_all(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.sf_internal_all)
    if df is None:
        return None

    out = Contribution("sf_internal_all").set("provenance.screamingfrog", True)
    sc_col = resolve_column(df, STATUS_COLS)
    if sc_col:
        codes = numeric_values(df[sc_col])
        out.add("onsite.errors.4xx", sum(1 for n in codes if 400 <= n < 500))
        out.add("onsite.errors.5xx", sum(1 for n in codes if n >= 500))
    else:
        log.warning("SF internal: no status code column")
    return out.set_if_unset("onsite.content.pages_total", len(df))


def extract_structured_data(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    name = config.layout.sf_structured_data
    df = load_rows(reader, name)
    if df is None:
        return None

    el_col = resolve_column(df, ELEMENT_COLS)
    log.info("SF structured data: element column %r", el_col)
    if not el_col:
        reader.manifest.amend(name, status=PARTIAL, note="no element/type column")
        return None

    elements = df[el_col].astype(str).str.lower()
    out = Contribution("sf_structured_data")
    for flag, marker in SCHEMA_MARKERS.items():
        out.set(f"onsite.schema.{flag}", bool(elements.str.contains(marker, regex=False).any()))
    return out.set("provenance.screamingfrog", True)


def extract_duplicates(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    # informational: row count lands in the manifest only
    load_rows(reader, config.layout.sf_duplicates)
    return None


def extract_images(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    load_rows(reader, config.layout.sf_images)
    return None

"""Google Business Profile public exports: categories and photo totals."""
from __future__ import annotations

import math
from typing import Optional

from audit_etl.extractors.common import load_rows
from audit_etl.lib.archive import EntryReader
from audit_etl.lib.config import EtlConfig
from audit_etl.lib.schema import Contribution
from audit_etl.lib.tables import resolve_column, to_number


def extract_categories(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.gbp_categories)
    if df is None:
        return None

    type_col = resolve_column(df, ["category_type"])
    name_col = resolve_column(df, ["category_name"])
    primary, secondary = [], []
    if type_col and name_col:
        for kind, cat in zip(df[type_col], df[name_col]):
            kind = str(kind).strip().lower()
            if not cat:
                continue
            if kind == "primary":
                primary.append(str(cat))
            elif kind == "secondary":
                secondary.append(str(cat))

    return (
        Contribution("gbp_categories")
        .set("local.gbp.primary_category", primary[0] if primary else None)
        .set("local.gbp.secondary_categories", secondary)
        .set("provenance.gbp_public", True)
    )


def extract_photos(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    df = load_rows(reader, config.layout.gbp_photos)
    if df is None:
        return None

    out = Contribution("gbp_photos").set("provenance.gbp_public", True)
    type_col = resolve_column(df, ["photo_type"])
    count_col = resolve_column(df, ["count"])
    if not (type_col and count_col):
        return out
    totals = df[df[type_col].astype(str).str.strip().str.lower() == "total"]
    if totals.empty:
        return out
    n = to_number(totals.iloc[0][count_col])
    if not math.isfinite(n):
        return out.set("local.gbp.photos_total", None)
    return out.set("local.gbp.photos_total", int(n) if n.is_integer() else n)

"""Table loading shared by the per-tool extractors."""
from __future__ import annotations

import logging
from typing import Optional

import pandas as pd

from audit_etl.lib.archive import EntryReader
from audit_etl.lib.manifest import PARTIAL, PLACEHOLDER
from audit_etl.lib.tables import is_placeholder

log = logging.getLogger(__name__)


def load_rows(reader: EntryReader, name: str, placeholder_note: str = "access_required") -> Optional[pd.DataFrame]:
    """Parsed rows of ``name`` when it holds real data, else None.

    The manifest is updated on the way: ``placeholder`` for access-denied
    stubs, ``partial`` for empty tables, ``rows`` otherwise. Missing entries
    were already recorded by the reader.
    """
    df = reader.table(name)
    if df is None:
        return None
    if is_placeholder(df):
        log.warning("%s: access-denied placeholder", name)
        reader.manifest.amend(name, status=PLACEHOLDER, note=placeholder_note)
        return None
    if df.empty:
        log.warning("%s: no rows parsed", name)
        reader.manifest.amend(name, status=PARTIAL, rows=0)
        return None
    reader.manifest.amend(name, rows=len(df))
    return df

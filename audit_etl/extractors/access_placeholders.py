"""Exports that need a login we usually do not have (Surfer, GSC, GA4, LeadSnap).

They are only tracked: the manifest says whether a real table, a
login-required stub, or nothing arrived. A real GSC/GA4/LeadSnap table flips
the matching provenance marker to "present".
"""
from __future__ import annotations

from typing import Optional

from audit_etl.extractors.common import load_rows
from audit_etl.lib.archive import EntryReader
from audit_etl.lib.config import EtlConfig
from audit_etl.lib.manifest import FULL
from audit_etl.lib.schema import PRESENT, Contribution


def extract_access_placeholders(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    out = Contribution("access_placeholders")
    for name, tool in config.layout.access_placeholders.items():
        df = load_rows(reader, name)
        if df is None:
            continue
        reader.manifest.amend(name, status=FULL)
        if tool:
            out.set(f"provenance.{tool}", PRESENT)
    return out if out.values else None

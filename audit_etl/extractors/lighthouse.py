"""Lighthouse JSON reports -> Core Web Vitals p75 and pass rate.

Each report is one sampled URL (home, service page, city page). Audits used:

- largest-contentful-paint   LCP (ms)
- cumulative-layout-shift    CLS (unitless)
- interactive                lab stand-in for INP (ms)

p75 is rank-based (sorted sample, index floor(0.75 * (n - 1))), no
interpolation. A report counts toward the pass rate only when all three
values are present.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from audit_etl.lib.archive import EntryReader
from audit_etl.lib.config import CwvThresholds, EtlConfig
from audit_etl.lib.manifest import FULL, PARTIAL
from audit_etl.lib.schema import MISSING, Contribution

log = logging.getLogger(__name__)

LCP_AUDIT = "largest-contentful-paint"
CLS_AUDIT = "cumulative-layout-shift"
INP_AUDIT = "interactive"


@dataclass
class LighthouseSample:
    lcp_ms: Optional[float] = None
    cls: Optional[float] = None
    inp_ms: Optional[float] = None
    perf_score: Optional[float] = None


def _dig(obj: Any, *path: str) -> Any:
    """Walk nested dicts; None as soon as a key is missing."""
    cur = obj
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def parse_report(report: Any) -> LighthouseSample:
    def audit(key: str) -> Optional[float]:
        return _number(_dig(report, "audits", key, "numericValue"))

    return LighthouseSample(
        lcp_ms=audit(LCP_AUDIT),
        cls=audit(CLS_AUDIT),
        inp_ms=audit(INP_AUDIT),
        perf_score=_number(_dig(report, "categories", "performance", "score")),
    )


def percentile(values: Sequence[float], q: float = 0.75) -> Union[float, str]:
    """Rank-based percentile; "missing" for an empty sample."""
    if not values:
        return MISSING
    ordered = sorted(values)
    return ordered[math.floor(q * (len(ordered) - 1))]


def pass_rate(samples: Sequence[LighthouseSample], limits: CwvThresholds) -> Union[float, str]:
    passed = evaluated = 0
    for s in samples:
        if s.lcp_ms is None or s.cls is None or s.inp_ms is None:
            continue
        evaluated += 1
        if s.lcp_ms <= limits.lcp_ms and s.cls <= limits.cls and s.inp_ms <= limits.inp_ms:
            passed += 1
    return passed / evaluated if evaluated else MISSING


def extract_cwv(reader: EntryReader, config: EtlConfig) -> Optional[Contribution]:
    samples: List[LighthouseSample] = []
    for name in config.layout.lighthouse_reports:
        data = reader.read(name)
        if data is None:
            continue
        try:
            report = json.loads(data.decode("utf-8-sig"))
        except (UnicodeDecodeError, ValueError) as e:
            log.warning("%s: unreadable Lighthouse report: %s", name, e)
            reader.manifest.amend(name, status=PARTIAL, note=str(e))
            continue
        sample = parse_report(report)
        log.info("%s: performance score %s", name, sample.perf_score)
        samples.append(sample)
        reader.manifest.amend(name, status=FULL)

    if not samples:
        return None

    q = config.cwv.percentile
    return (
        Contribution("lighthouse")
        .set("onsite.cwv.lcp_p75", percentile([s.lcp_ms for s in samples if s.lcp_ms is not None], q))
        .set("onsite.cwv.cls_p75", percentile([s.cls for s in samples if s.cls is not None], q))
        .set("onsite.cwv.inp_p75", percentile([s.inp_ms for s in samples if s.inp_ms is not None], q))
        .set("onsite.cwv.pass_rate", pass_rate(samples, config.cwv))
        .set("provenance.lighthouse", True)
    )

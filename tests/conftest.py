"""
Test configuration: puts the repo root on sys.path and provides in-memory
archive builders so no test touches the network or the filesystem outside
tmp_path.
"""

import io
import json
import sys
import zipfile
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from audit_etl.lib.archive import EntryReader, open_archive  # noqa: E402
from audit_etl.lib.config import DEFAULT_CONFIG  # noqa: E402
from audit_etl.lib.manifest import Manifest  # noqa: E402
from audit_etl.lib.schema import AuditMeta  # noqa: E402


def build_zip(entries):
    """ZIP bytes from {name: bytes | str | dict}; dicts are written as JSON."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, content in entries.items():
            if isinstance(content, dict):
                content = json.dumps(content)
            if isinstance(content, str):
                content = content.encode("utf-8")
            zf.writestr(name, content)
    return buf.getvalue()


def mark_encrypted(data):
    """Set the "encrypted" flag on every central-directory record of ``data``."""
    buf = bytearray(data)
    pos = buf.find(b"PK\x01\x02")
    while pos != -1:
        buf[pos + 8] |= 0x01
        pos = buf.find(b"PK\x01\x02", pos + 4)
    return bytes(buf)


def lighthouse_report(lcp=None, cls=None, inp=None, perf=None):
    audits = {}
    if lcp is not None:
        audits["largest-contentful-paint"] = {"numericValue": lcp}
    if cls is not None:
        audits["cumulative-layout-shift"] = {"numericValue": cls}
    if inp is not None:
        audits["interactive"] = {"numericValue": inp}
    report = {"audits": audits}
    if perf is not None:
        report["categories"] = {"performance": {"score": perf}}
    return report


@pytest.fixture
def meta():
    return AuditMeta(client="Acme Plumbing", domain="acme.example", run_date="2026-10-01")


@pytest.fixture
def config():
    return DEFAULT_CONFIG


@pytest.fixture
def make_reader():
    """Factory: EntryReader over an archive built from ``entries``."""

    def _make(entries):
        return EntryReader(open_archive(build_zip(entries)), Manifest(), DEFAULT_CONFIG.tables)

    return _make

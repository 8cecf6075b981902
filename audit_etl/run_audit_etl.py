#!/usr/bin/env python3
r"""One-click runner for the client audit ETL.

Downloads the client's export ZIP (or reads a local copy), normalizes every
known export into one audit document, scores it, and writes:

  normalized_audit.json   canonical metrics document
  scores.json             on-site / local composite scores
  etl_manifest.json       per-file ingestion status
  OUTPUT.json             summary naming the three files above

Usage (PowerShell):
  python -m audit_etl.run_audit_etl `
    --job .\data\inputs\audit\job.json `
    --out-dir .\data\outputs\audit

The job file (JSON or YAML) holds client, domain, runDate and zipUrl;
snake_case keys (run_date, zip_url) work too. Any CLI flag overrides the file.
If the download is not a ZIP the raw bytes are kept as ZIP_DEBUG.bin.
"""
from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from audit_etl.lib.config import DEFAULT_CONFIG
from audit_etl.lib.errors import ArchiveFormatError, AuditEtlError
from audit_etl.lib.pipeline import AuditResult, process_archive, process_zip_url
from audit_etl.lib.schema import AuditMeta

OUTPUT_FILES = {
    "normalized": "normalized_audit.json",
    "scores": "scores.json",
    "etl_manifest": "etl_manifest.json",
}
DEBUG_DUMP = "ZIP_DEBUG.bin"

# job-file key -> JobConfig field
_JOB_KEYS = {
    "client": "client",
    "domain": "domain",
    "runDate": "run_date",
    "run_date": "run_date",
    "zipUrl": "zip_url",
    "zip_url": "zip_url",
    "zipFile": "zip_file",
    "zip_file": "zip_file",
}


@dataclass
class JobConfig:
    client: str = ""
    domain: str = ""
    run_date: str = ""
    zip_url: str = ""
    zip_file: str = ""

    @property
    def meta(self) -> AuditMeta:
        return AuditMeta(client=self.client, domain=self.domain, run_date=self.run_date)

    def missing_fields(self) -> List[str]:
        missing = [f for f in ("client", "domain", "run_date") if not getattr(self, f)]
        if not (self.zip_url or self.zip_file):
            missing.append("zip_url")
        return missing


def load_job_file(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() in (".yml", ".yaml"):
        import yaml  # optional; install with: python -m pip install pyyaml
        data = yaml.safe_load(text) or {}
    else:
        data = json.loads(text)
    if not isinstance(data, dict):
        raise SystemExit(f"Job file {path} must hold a mapping of input fields.")
    return data


def build_job(args: argparse.Namespace) -> JobConfig:
    job = JobConfig()
    if args.job:
        for key, value in load_job_file(Path(args.job)).items():
            attr = _JOB_KEYS.get(key)
            if attr and value is not None:
                setattr(job, attr, str(value))
    for attr in ("client", "domain", "run_date", "zip_url", "zip_file"):
        value = getattr(args, attr)
        if value:
            setattr(job, attr, value)
    missing = job.missing_fields()
    if missing:
        raise SystemExit(f"Missing required input fields: {', '.join(missing)}")
    return job


def write_json(path: Path, payload: Any) -> None:
    with open(path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, ensure_ascii=False, allow_nan=False)


def write_outputs(result: AuditResult, out_dir: Path) -> None:
    out_dir.mkdir(parents=True, exist_ok=True)
    write_json(out_dir / OUTPUT_FILES["normalized"], result.normalized_audit)
    write_json(out_dir / OUTPUT_FILES["scores"], result.scores)
    write_json(out_dir / OUTPUT_FILES["etl_manifest"], result.manifest)
    write_json(out_dir / "OUTPUT.json", OUTPUT_FILES)


def run(job: JobConfig, out_dir: Path, timeout: float = 60) -> AuditResult:
    try:
        if job.zip_file:
            result = process_archive(Path(job.zip_file).read_bytes(), job.meta, DEFAULT_CONFIG)
        else:
            result = process_zip_url(job.zip_url, job.meta, DEFAULT_CONFIG, timeout=timeout)
    except ArchiveFormatError as e:
        if e.payload is not None:
            out_dir.mkdir(parents=True, exist_ok=True)
            (out_dir / DEBUG_DUMP).write_bytes(e.payload)
            print(f"[warn] Saved downloaded bytes to {out_dir / DEBUG_DUMP}", file=sys.stderr)
        raise
    write_outputs(result, out_dir)
    return result


def main(argv: Optional[List[str]] = None) -> int:
    ap = argparse.ArgumentParser(description="Normalize a client export ZIP into audit metrics + scores.")
    ap.add_argument("--job", help="JSON/YAML job file with client, domain, runDate, zipUrl")
    ap.add_argument("--client")
    ap.add_argument("--domain")
    ap.add_argument("--run-date", dest="run_date")
    ap.add_argument("--zip-url", dest="zip_url", help="Direct-download URL of the export ZIP")
    ap.add_argument("--zip-file", dest="zip_file", help="Local export ZIP (skips the download)")
    ap.add_argument("--out-dir", type=Path, default=Path("data/outputs/audit"))
    ap.add_argument("--timeout", type=float, default=60, help="Download timeout in seconds")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    job = build_job(args)
    try:
        result = run(job, args.out_dir, timeout=args.timeout)
    except AuditEtlError as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        return 1

    scores = result.scores
    print(f"[OK] Wrote {', '.join(OUTPUT_FILES.values())} → {args.out_dir}")
    print(f"[info] OSS={scores['onsite']['score']} (coverage {scores['onsite']['coverage']}), "
          f"LSS={scores['local']['score']} (coverage {scores['local']['coverage']})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

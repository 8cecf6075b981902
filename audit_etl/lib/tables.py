"""Tolerant readers for third-party tabular exports.

Helpers shared by every extractor:

- ``parse_table``      decode + parse a delimited export, falling back from
                       UTF-8/comma to UTF-16/tab when the first parse looks wrong.
- ``resolve_column``   pick the first header matching an ordered alias list.
- ``to_number``        coerce "1,234", "$9.50", "92%" style strings to floats.
- ``numeric_values``   coerce a column and drop the NaN sentinel.
- ``normalize_percent`` scale 0..100 percentages down to 0..1.
- ``half_up``          integer rounding with halves rounded up.
"""
from __future__ import annotations

import csv
import io
import logging
import math
import re
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

import pandas as pd

from audit_etl.lib.config import TableConfig

__all__ = [
    "parse_table",
    "resolve_column",
    "to_number",
    "numeric_values",
    "normalize_percent",
    "half_up",
    "is_placeholder",
]

log = logging.getLogger(__name__)

_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_BOM = "\ufeff"


# ---------- Parsing ----------

def _decode(data: bytes, encoding: str) -> str:
    text = data.decode(encoding, errors="replace")
    if text.startswith(_BOM):
        text = text[1:]
    return text


def _read_delimited(text: str, sep: str) -> Tuple[pd.DataFrame, int]:
    """Parse ``text`` with a header row. Returns (frame, malformed row count)."""
    bad_lines: List[List[str]] = []

    def _skip(line: List[str]) -> None:
        bad_lines.append(line)
        return None

    try:
        df = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            engine="python",
            on_bad_lines=_skip,
        )
    except pd.errors.EmptyDataError:
        return pd.DataFrame(), 0
    except (pd.errors.ParserError, csv.Error, ValueError) as e:
        log.debug("delimited parse failed (sep=%r): %s", sep, e)
        return pd.DataFrame(), len(bad_lines) + 1
    return df.fillna(""), len(bad_lines)


def parse_table(data: bytes, config: Optional[TableConfig] = None) -> pd.DataFrame:
    """Parse an export into a frame of string cells, one row per record.

    Some exporters ship UTF-8/comma files, others UTF-16/tab depending on the
    locale they ran under. The primary parse is rejected when it has more than
    ``config.max_row_errors`` malformed rows, yields no records, or contains
    NUL characters (UTF-16 read as UTF-8); the fallback result is returned in
    that case even if it is just as bad. Never raises on malformed input.
    """
    config = config or TableConfig()

    text = _decode(data, config.primary_encoding)
    df, errors = _read_delimited(text, config.primary_delimiter)
    bad = errors > config.max_row_errors or df.empty or "\x00" in text
    if not bad:
        return df

    log.debug(
        "primary parse rejected (errors=%d, rows=%d); retrying as %s/%r",
        errors, len(df), config.fallback_encoding, config.fallback_delimiter,
    )
    text = _decode(data, config.fallback_encoding)
    df, _ = _read_delimited(text, config.fallback_delimiter)
    return df


# ---------- Column aliases ----------

def resolve_column(
    columns: Union[pd.DataFrame, Mapping[str, Any], Iterable[Any], None],
    candidates: Sequence[str],
) -> Optional[str]:
    """Return the actual column name matching the first usable alias.

    Matching is case-insensitive and exact (after trimming). ``candidates`` are
    tried in order, so callers list the preferred header first.
    """
    if columns is None:
        return None
    if isinstance(columns, pd.DataFrame):
        names = list(columns.columns)
    elif isinstance(columns, Mapping):
        names = list(columns.keys())
    else:
        names = list(columns)

    lookup = {}
    for name in names:
        lookup.setdefault(str(name).strip().lower(), name)
    for want in candidates:
        hit = lookup.get(want.strip().lower())
        if hit is not None:
            return hit
    return None


# ---------- Numbers ----------

def to_number(value: Any) -> float:
    """Coerce a messy numeric cell; NaN when nothing usable remains."""
    if value is None or isinstance(value, bool):
        return math.nan
    if isinstance(value, (int, float)):
        return float(value) if math.isfinite(value) else math.nan
    s = _NON_NUMERIC.sub("", str(value))
    try:
        n = float(s)
    except ValueError:
        return math.nan
    return n if math.isfinite(n) else math.nan


def numeric_values(values: Iterable[Any]) -> List[float]:
    return [n for n in (to_number(v) for v in values) if math.isfinite(n)]


def half_up(value: float) -> int:
    """Nearest integer, exact halves rounded up (2.5 -> 3, -2.5 -> -2)."""
    return math.floor(value + 0.5)


def normalize_percent(value: float) -> float:
    # exports mix "92" and "0.92" for the same percentage
    return value / 100.0 if value > 1 else value


# ---------- Placeholders ----------

def is_placeholder(df: pd.DataFrame) -> bool:
    """True for access-denied stubs: first row carries both status and message."""
    if df is None or df.empty:
        return False
    status_col = resolve_column(df, ["status"])
    message_col = resolve_column(df, ["message"])
    if not (status_col and message_col):
        return False
    first = df.iloc[0]
    return bool(str(first[status_col]).strip()) and bool(str(first[message_col]).strip())

"""ZIP archive access with manifest bookkeeping."""
from __future__ import annotations

import io
import logging
import zipfile
import zlib
from typing import Dict, List, Optional

import pandas as pd

from audit_etl.lib.config import ZIP_MAGIC, TableConfig
from audit_etl.lib.errors import ArchiveFormatError
from audit_etl.lib.manifest import MISSING, PARTIAL, PRESENT, Manifest
from audit_etl.lib.tables import parse_table

__all__ = ["Archive", "EntryReader", "open_archive", "looks_like_zip", "ENTRY_ERRORS"]

log = logging.getLogger(__name__)

# raised while decompressing a single member of an otherwise valid archive
# (RuntimeError: encrypted member, no password)
ENTRY_ERRORS = (zipfile.BadZipFile, zlib.error, NotImplementedError, RuntimeError, EOFError, OSError)


def looks_like_zip(data: bytes) -> bool:
    return len(data) >= len(ZIP_MAGIC) and data[: len(ZIP_MAGIC)] == ZIP_MAGIC


class Archive:
    """Read-only view over an opened ZIP container."""

    def __init__(self, zf: zipfile.ZipFile):
        self._zip = zf

    def names(self) -> List[str]:
        return self._zip.namelist()

    def lookup(self, name: str) -> Optional[bytes]:
        """Bytes of entry ``name`` (exact match), or None when absent."""
        try:
            info = self._zip.getinfo(name)
        except KeyError:
            return None
        return self._zip.read(info)


def open_archive(data: bytes) -> Archive:
    """Open ``data`` as a ZIP container.

    Checks the "PK" signature before touching the decompressor; raises
    ArchiveFormatError for anything that is not a readable archive.
    """
    if not looks_like_zip(data):
        raise ArchiveFormatError(
            "Downloaded file does not look like a ZIP. "
            "Double-check the URL is a direct-download link.",
            payload=data,
        )
    try:
        zf = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zlib.error, EOFError, OSError) as e:
        raise ArchiveFormatError(f"Unreadable ZIP archive: {e}", payload=data) from e
    return Archive(zf)


class EntryReader:
    """Looks up archive entries and records every lookup in the manifest.

    Bytes and parsed tables are cached per name, so a second lookup of the same
    entry neither re-reads the archive nor adds a second manifest record.
    """

    def __init__(self, archive: Archive, manifest: Manifest, table_config: Optional[TableConfig] = None):
        self.archive = archive
        self.manifest = manifest
        self.table_config = table_config or TableConfig()
        self._bytes: Dict[str, Optional[bytes]] = {}
        self._tables: Dict[str, pd.DataFrame] = {}

    def read(self, name: str) -> Optional[bytes]:
        if name in self._bytes:
            return self._bytes[name]
        try:
            data = self.archive.lookup(name)
        except ENTRY_ERRORS as e:
            log.warning("%s: unreadable archive member: %s", name, e)
            self.manifest.record(name, PARTIAL, note=str(e))
            data = None
        else:
            if data is None:
                self.manifest.record(name, MISSING)
            else:
                self.manifest.record(name, PRESENT, size=len(data))
        self._bytes[name] = data
        return data

    def table(self, name: str) -> Optional[pd.DataFrame]:
        """Parsed table for ``name``; None when the entry is absent or unreadable."""
        if name in self._tables:
            return self._tables[name]
        data = self.read(name)
        if data is None:
            return None
        df = parse_table(data, self.table_config)
        self._tables[name] = df
        return df

"""
Bulk postal-code dataset — CSV with ``pincode,state,district,city`` columns.

The index is built once, on first lookup, and kept for the process lifetime.
"""

from __future__ import annotations

import asyncio
import csv
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from orderflow.districts._types import is_postal_code

log = structlog.get_logger(__name__)


@dataclass(slots=True)
class DatasetEntry:
    state: str
    postal_district: str
    cities: list[str] = field(default_factory=list)


def build_index(rows: Iterable[Mapping[str, str | None]]) -> dict[str, DatasetEntry]:
    """
    Fold CSV rows into a postal-code index.

    Rows without a valid code, state or district are skipped. Repeated codes
    only contribute additional cities; the first row's state/district wins.
    """
    index: dict[str, DatasetEntry] = {}
    for row in rows:
        code = (row.get("pincode") or "").strip()
        if not is_postal_code(code):
            continue
        state = (row.get("state") or "").strip()
        district = (row.get("district") or "").strip()
        city = (row.get("city") or "").strip()
        if not state or not district:
            continue

        entry = index.get(code)
        if entry is None:
            entry = DatasetEntry(state=state, postal_district=district)
            index[code] = entry
        if city and city not in entry.cities:
            entry.cities.append(city)
    return index


class PincodeDataset:
    """
    Lazily loaded, file-backed postal-code index.

    A missing or unreadable file yields an empty index; lookups then fall
    through to the persisted source.
    """

    def __init__(self, path: Path | str | None) -> None:
        self._path = Path(path) if path is not None else None
        self._index: dict[str, DatasetEntry] | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_entries(cls, index: dict[str, DatasetEntry]) -> PincodeDataset:
        dataset = cls(None)
        dataset._index = index
        return dataset

    @property
    def loaded(self) -> bool:
        return self._index is not None

    def _read(self) -> dict[str, DatasetEntry]:
        if self._path is None or not self._path.is_file():
            log.info("pincode_dataset_missing", path=str(self._path))
            return {}
        try:
            with self._path.open(newline="", encoding="utf-8") as fh:
                index = build_index(csv.DictReader(fh))
        except (OSError, csv.Error, UnicodeDecodeError) as e:
            log.warning("pincode_dataset_unreadable", path=str(self._path), error=str(e))
            return {}
        log.info("pincode_dataset_loaded", path=str(self._path), codes=len(index))
        return index

    async def _ensure(self) -> dict[str, DatasetEntry]:
        if self._index is not None:
            return self._index
        async with self._lock:
            if self._index is None:
                self._index = await asyncio.to_thread(self._read)
        return self._index

    async def lookup(self, postal_code: str) -> DatasetEntry | None:
        index = await self._ensure()
        return index.get(postal_code)


__all__ = ("DatasetEntry", "build_index", "PincodeDataset")

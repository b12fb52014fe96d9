"""
Revenue record stores.

Layout of the file store::

    <root>/<fund_key>/<period_label>.json

Each file holds one canonical RevenueRecord produced by the ingestion
pipeline. Files are never written here.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Iterable

from pydantic import ValidationError

from revenue_settlement.core.domain.errors import DataValidationError
from revenue_settlement.core.domain.types import RevenueRecord

LOGGER = logging.getLogger(__name__)


class FileRevenueStore:
    """Reads revenue records from per-fund JSON files."""

    def __init__(self, root: str | Path) -> None:
        self._root = Path(root)

    def records_for(self, fund_key: str) -> list[RevenueRecord]:
        fund_dir = self._root / fund_key
        if not fund_dir.is_dir():
            return []

        records: list[RevenueRecord] = []
        for path in sorted(fund_dir.glob("*.json")):
            records.append(self._load(path))
        return records

    @staticmethod
    def _load(path: Path) -> RevenueRecord:
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise DataValidationError(f"revenue file {path} is not valid JSON: {exc}") from exc

        try:
            record = RevenueRecord.model_validate(raw)
        except ValidationError as exc:
            raise DataValidationError(f"revenue file {path} is malformed: {exc}") from exc

        if record.period_label != path.stem:
            LOGGER.warning(
                "Revenue file name does not match its period label",
                extra={"path": str(path), "period_label": record.period_label},
            )
        return record


class InMemoryRevenueStore:
    """Revenue store backed by a list, for tests and embedding."""

    def __init__(self, records: Iterable[RevenueRecord] = ()) -> None:
        self._records: dict[tuple[str, str], RevenueRecord] = {}
        for record in records:
            self.add(record)

    def add(self, record: RevenueRecord) -> None:
        """Add a record; one record per (fund_key, period_label)."""
        key = (record.fund_key, record.period_label)
        if key in self._records:
            raise DataValidationError(
                f"revenue record for fund {record.fund_key} period {record.period_label} already exists"
            )
        self._records[key] = record

    def records_for(self, fund_key: str) -> list[RevenueRecord]:
        return [r for (fk, _), r in self._records.items() if fk == fund_key]

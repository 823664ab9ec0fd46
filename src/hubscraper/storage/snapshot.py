# src/hubscraper/storage/snapshot.py
import logging
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Tuple
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from .database import HubDatabase
from .models import ModelRow
from ..constants import ModelCategory

logger = logging.getLogger(__name__)


def blended_cost(input_price: float, output_price: float) -> float:
    """Typical 3:1 input-to-output token mix, per 1M tokens."""
    return (input_price + 3 * output_price) / 4


def value_score(quality_score: float, blended: float) -> int:
    if blended <= 0:
        return 0
    return round(quality_score / blended * 10)


class SnapshotEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    model: ModelRow
    blended_cost: float
    value_score: int


class CatalogSnapshot:
    """
    Read-only view of the active catalog, built once from the store and passed to
    whatever renders it. Later writes to the store never show up in an existing snapshot.
    """

    def __init__(self, entries: Mapping[str, Tuple[SnapshotEntry, ...]], built_at: datetime):
        self._entries = MappingProxyType(dict(entries))
        self.built_at = built_at

    @classmethod
    def build(cls, db: HubDatabase, categories: Optional[List[str]] = None) -> "CatalogSnapshot":
        categories = categories or [c.value for c in ModelCategory]
        entries: Dict[str, Tuple[SnapshotEntry, ...]] = {}
        for category in categories:
            rows = db.get_active_models(category)
            entries[category] = tuple(
                SnapshotEntry(
                    model=row,
                    blended_cost=blended_cost(row.input_price, row.output_price),
                    value_score=value_score(row.quality_score, blended_cost(row.input_price, row.output_price)),
                )
                for row in rows
            )
        snapshot = cls(entries, built_at=datetime.now(timezone.utc))
        logger.info(f"Catalog snapshot built: {snapshot.total} active models across {len(entries)} categories.")
        return snapshot

    @property
    def categories(self) -> List[str]:
        return list(self._entries.keys())

    @property
    def total(self) -> int:
        return sum(len(v) for v in self._entries.values())

    def models(self, category: str = "llm") -> Tuple[SnapshotEntry, ...]:
        return self._entries.get(category, ())

    def get(self, model_id: str) -> Optional[SnapshotEntry]:
        for entries in self._entries.values():
            for entry in entries:
                if entry.model.id == model_id:
                    return entry
        return None

    def best_value(self, category: str = "llm", limit: int = 10) -> List[SnapshotEntry]:
        return sorted(self.models(category), key=lambda e: e.value_score, reverse=True)[:limit]

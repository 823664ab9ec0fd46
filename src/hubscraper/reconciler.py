# src/hubscraper/reconciler.py
import logging
from typing import List

from .storage.database import HubDatabase
from .types import NormalizedModel, NormalizedScore

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """
    Writes normalized source output into the store. Each call is one transaction: either
    every record of the batch lands or, on a store error, none does.
    """

    def __init__(self, db: HubDatabase):
        self.db = db

    def apply(self, records: List[NormalizedModel]) -> int:
        """
        Upserts model pricing and appends one price-history row per record, unconditionally.
        Existing models keep their descriptive fields; only pricing columns change.
        Returns the number of records applied.
        """
        if not records:
            return 0

        applied = 0
        with self.db.transaction():
            for record in records:
                self.db.upsert_model_pricing(record)
                self.db.append_price_history(record.id, record.input_price, record.output_price,
                                             record.pricing_source)
                applied += 1

        logger.debug(f"Applied pricing for {applied} models.")
        return applied

    def apply_scores(self, records: List[NormalizedScore]) -> int:
        """
        Upserts benchmark scores, last write wins. Scores for models the store does not know
        are skipped and not counted.
        """
        if not records:
            return 0

        applied = 0
        with self.db.transaction():
            known_models = self.db.existing_model_ids()
            for record in records:
                if record.model_id not in known_models:
                    logger.debug(f"Skipping score for unknown model '{record.model_id}' ({record.benchmark_id}).")
                    continue
                self.db.upsert_benchmark_score(record)
                applied += 1

        skipped = len(records) - applied
        logger.debug(f"Applied {applied} benchmark scores ({skipped} for unknown models skipped).")
        return applied

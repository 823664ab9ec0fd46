# src/hubscraper/seed.py
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel

from .exceptions import ConfigurationError, NormalizationError
from .sources.base import load_catalog
from .storage.database import HubDatabase
from .storage.models import ProviderRecord, BenchmarkRecord
from .utils.validation import validate_record, validate_model_data, validate_score_data

logger = logging.getLogger(__name__)

SEED_PRICE_SOURCE = "seed"


class SeedSummary(BaseModel):
    providers: int = 0
    models: int = 0
    benchmarks: int = 0
    scores: int = 0


def seed_database(db: HubDatabase, catalog: Optional[Dict[str, Any]] = None,
                  catalog_dir: Optional[Path] = None) -> SeedSummary:
    """
    Loads reference providers, models, benchmarks and scores. Only rows that are not in the
    store yet are inserted, so seeding twice changes nothing. Each newly inserted model gets
    its initial price-history row.
    """
    if catalog is None:
        catalog = load_catalog("seed.yaml", catalog_dir)

    summary = SeedSummary()
    try:
        providers = [validate_record(ProviderRecord, p) for p in catalog.get("providers") or []]
        models = [validate_model_data(m) for m in catalog.get("models") or []]
        benchmarks = [validate_record(BenchmarkRecord, b) for b in catalog.get("benchmarks") or []]
        scores = [validate_score_data(_score_row(s)) for s in catalog.get("scores") or []]
    except NormalizationError as e:
        raise ConfigurationError(f"Invalid seed catalog: {e}") from e

    with db.transaction():
        for provider in providers:
            summary.providers += db.insert_provider(provider)
        for model in models:
            if db.insert_model(model):
                db.append_price_history(model.id, model.input_price, model.output_price,
                                        model.pricing_source or SEED_PRICE_SOURCE)
                summary.models += 1
        for benchmark in benchmarks:
            summary.benchmarks += db.insert_benchmark(benchmark)
        for score in scores:
            summary.scores += db.insert_benchmark_score(score)

    logger.info(
        f"Seeded {summary.providers} providers, {summary.models} models, "
        f"{summary.benchmarks} benchmarks and {summary.scores} scores."
    )
    return summary


def _score_row(row: Any) -> Dict[str, Any]:
    # [model_id, benchmark_id, score, source, measured_at]
    if isinstance(row, dict):
        return row
    if not isinstance(row, (list, tuple)) or len(row) < 3:
        raise NormalizationError(f"Malformed score row {row!r}")
    keys = ("model_id", "benchmark_id", "score", "source", "measured_at")
    data = dict(zip(keys, row))
    data.setdefault("source", "seed")
    return data

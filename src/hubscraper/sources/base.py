# src/hubscraper/sources/base.py
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from ..config import read_yaml_mapping
from ..types import Config, NormalizedRecords, RawPayload
from ..extractors.request_manager import RequestManager
from .aggregator import AggregatorSource
from .manual_tables import ManualPricingSource
from .leaderboard import LeaderboardSource

logger = logging.getLogger(__name__)

DEFAULT_CATALOG_DIR = Path(__file__).resolve().parent.parent / "catalog"


@runtime_checkable
class Source(Protocol):
    """
    One external data source. ``fetch_raw`` does all network I/O; ``normalize`` is pure and
    turns the payload into records in the hub's common shape.
    """
    name: str

    def fetch_raw(self) -> RawPayload:
        ...

    def normalize(self, raw: RawPayload) -> NormalizedRecords:
        ...


def load_catalog(filename: str, catalog_dir: Optional[Path] = None) -> Dict[str, Any]:
    """Reads one catalog YAML file. Raises ConfigurationError if it is missing or malformed."""
    path = Path(catalog_dir or DEFAULT_CATALOG_DIR) / filename
    logger.debug(f"Loading catalog {path}")
    return read_yaml_mapping(path)


def build_sources(config: Config, client: RequestManager, catalog_dir: Optional[Path] = None) -> List[Source]:
    """
    Every known source, in run order: the aggregator feed first, then the curated vendor
    price tables, then the leaderboards.
    """
    pipeline_config = config.get("pipeline", {})
    catalog_dir = catalog_dir or pipeline_config.get("catalog_dir")

    sources: List[Source] = []

    aggregator_catalog = load_catalog("aggregator.yaml", catalog_dir)
    sources.append(AggregatorSource(client, aggregator_catalog, url=pipeline_config.get("aggregator_url")))

    pricing_catalog = load_catalog("pricing.yaml", catalog_dir)
    for vendor, entry in (pricing_catalog.get("vendors") or {}).items():
        sources.append(ManualPricingSource(client, vendor, entry))

    leaderboard_catalog = load_catalog("leaderboards.yaml", catalog_dir)
    for board, entry in (leaderboard_catalog.get("leaderboards") or {}).items():
        sources.append(LeaderboardSource(client, board, entry))

    logger.debug(f"Built {len(sources)} sources: {[s.name for s in sources]}")
    return sources

# src/hubscraper/main.py
import logging
import time
from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from .types import Config, NormalizedModel, NormalizedScore, NormalizedRecords, RunSummary, SourceResult
from .constants import RunStatus
from .extractors.request_manager import RequestManager
from .reconciler import ReconciliationEngine
from .sources.base import Source, build_sources
from .storage.database import HubDatabase
from .storage.models import ScrapeLogEntry
from .exceptions import PipelineError, NormalizationError, StoreError
from .utils.concurrency import run_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 120  # seconds


class ScrapePipeline:
    """
    Runs every source in order: fetch, normalize, reconcile, then one scrape-log entry.
    A failing source is logged and recorded; the sources after it still run.
    """

    def __init__(self, config: Config, db: Optional[HubDatabase] = None,
                 client: Optional[RequestManager] = None, sources: Optional[Sequence[Source]] = None):
        self.config: Config = config
        self.pipeline_config = config.get("pipeline", {})
        self.source_timeout = self.pipeline_config.get("source_timeout", DEFAULT_SOURCE_TIMEOUT)

        self.client = client or RequestManager(config)
        self.db = db or HubDatabase(config["database"]["path"], config=config)
        self.db.init_db()
        self.reconciler = ReconciliationEngine(self.db)
        self.sources: List[Source] = list(sources) if sources is not None else build_sources(config, self.client)

        logger.info(f"ScrapePipeline initialized with {len(self.sources)} sources.")

    def _is_enabled(self, source: Source) -> bool:
        source_config = self.pipeline_config.get("sources", {}).get(source.name, {})
        return source_config.get("enabled", True)

    def _select_sources(self, only: Optional[List[str]]) -> List[Source]:
        selected = []
        known = {s.name for s in self.sources}
        if only:
            for name in only:
                if name not in known:
                    logger.warning(f"Source '{name}' is not known. Skipping.")
        for source in self.sources:
            if only and source.name not in only:
                continue
            if not self._is_enabled(source):
                logger.info(f"Source '{source.name}' is disabled in config. Skipping.")
                continue
            selected.append(source)
        return selected

    def _fetch_and_normalize(self, source: Source) -> NormalizedRecords:
        raw = source.fetch_raw()
        return source.normalize(raw)

    @staticmethod
    def _split_records(records: NormalizedRecords) -> Tuple[List[NormalizedModel], List[NormalizedScore]]:
        models: List[NormalizedModel] = []
        scores: List[NormalizedScore] = []
        for record in records:
            if isinstance(record, NormalizedModel):
                models.append(record)
            elif isinstance(record, NormalizedScore):
                scores.append(record)
            else:
                raise NormalizationError(f"Unexpected record type {type(record).__name__}")
        return models, scores

    def run_source(self, source: Source) -> SourceResult:
        """Runs one source end to end and records the outcome in the scrape log."""
        started_at = datetime.now(timezone.utc)
        logger.info(f"Running source: {source.name}")
        try:
            records = run_with_timeout(lambda: self._fetch_and_normalize(source),
                                       self.source_timeout, label=source.name)
            models, scores = self._split_records(records)
            # Models and scores of one source commit together
            with self.db.transaction():
                count = self.reconciler.apply(models) + self.reconciler.apply_scores(scores)
        except Exception as e:
            if isinstance(e, PipelineError):
                logger.error(f"Source {source.name} failed: {e}")
            else:
                logger.error(f"Source {source.name} raised an unexpected error: {e}", exc_info=True)
            self._log_run(source.name, RunStatus.ERROR, 0, started_at, error_message=str(e))
            return SourceResult(name=source.name, status=RunStatus.ERROR.value, count=0, error=str(e))

        self._log_run(source.name, RunStatus.SUCCESS, count, started_at)
        logger.info(f"  ✓ {source.name}: {count} records updated")
        return SourceResult(name=source.name, status=RunStatus.SUCCESS.value, count=count)

    def _log_run(self, scraper: str, status: RunStatus, count: int, started_at: datetime,
                 error_message: Optional[str] = None):
        entry = ScrapeLogEntry(
            scraper=scraper,
            status=status,
            models_updated=count,
            error_message=error_message,
            started_at=started_at,
            finished_at=datetime.now(timezone.utc),
        )
        try:
            self.db.append_scrape_log(entry)
        except StoreError as e:
            logger.error(f"Could not write scrape log entry for {scraper} ({status.value}): {e}")

    def run(self, only: Optional[List[str]] = None) -> RunSummary:
        """
        Runs the selected sources strictly one after another.

        :param only: Restrict the run to these source names (e.g. ["pricing:openai"]).
        """
        logger.info(f"Starting scrape run... Target sources: {only or 'all enabled'}")
        start_time = time.monotonic()

        summary = RunSummary()
        for source in self._select_sources(only):
            summary.results.append(self.run_source(source))

        duration = time.monotonic() - start_time
        self._log_summary(summary, duration)
        return summary

    def _log_summary(self, summary: RunSummary, duration: float):
        for result in summary.results:
            if result.error is None:
                logger.info(f"  {result.name}: {result.count}")
            else:
                logger.info(f"  {result.name}: FAILED ({result.error})")
        logger.info(
            f"Scrape run completed in {duration:.2f} seconds. {len(summary.results)} sources, "
            f"{len(summary.failed)} failed, {summary.total} records updated."
        )

    def close(self):
        """Cleans up resources like database connections and HTTP sessions."""
        logger.info("Closing ScrapePipeline resources...")
        if self.client:
            self.client.close()
        if self.db:
            self.db.close_connection()

# src/hubscraper/storage/database.py
import sqlite3
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import List, Dict, Any, Optional, Set, Iterator
from datetime import datetime, timezone

from .schema import SCHEMA_DEFINITIONS, INDICES, PRAGMAS, TRIGGERS
from .query_builder import SQLQueryBuilder
from .models import ProviderRecord, BenchmarkRecord, ModelRow, PriceHistoryEntry, ScrapeLogEntry
from ..types import NormalizedModel, NormalizedScore, NewsItem
from ..constants import ModelStatus
from ..exceptions import StoreError

logger = logging.getLogger(__name__)

# Same shape as SQLite's datetime('now') so stored timestamps sort consistently
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Columns a pricing refresh may overwrite on an existing model
PRICING_COLUMNS = ("input_price", "output_price", "pricing_source", "pricing_updated")


def format_timestamp(value: Optional[datetime] = None) -> str:
    if value is None:
        value = datetime.now(timezone.utc)
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime(TIMESTAMP_FORMAT)


class HubDatabase:
    """
    Manages the hub's SQLite store: providers, models, price history, benchmarks,
    benchmark scores, the scrape log and news.

    Write methods join an enclosing ``transaction()`` when one is open on the
    current thread, and commit on their own otherwise.
    """

    def __init__(self, db_path: str, config: Optional[Dict[str, Any]] = None):
        self.db_path = Path(db_path)
        self.db_config = config.get("database", {}) if config else {}
        # Per instance, so two databases in one thread never share a connection
        self._thread_local = threading.local()
        self._ensure_db_directory()

    def _ensure_db_directory(self):
        """Ensure the directory for the SQLite database file exists."""
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a thread-local database connection."""
        if getattr(self._thread_local, 'connection', None) is None:
            try:
                logger.debug(f"Attempting to connect to database: {self.db_path}")
                conn_timeout = self.db_config.get("timeout", 5.0)  # seconds
                conn = sqlite3.connect(str(self.db_path), timeout=conn_timeout)
                conn.row_factory = sqlite3.Row
                self._thread_local.connection = conn
                self._thread_local.depth = 0
                logger.debug(f"New SQLite connection established for thread {threading.get_ident()}.")
                self._apply_pragmas(conn)
                self._create_schema_if_needed(conn)
            except sqlite3.Error as e:
                self._thread_local.connection = None
                logger.error(f"Failed to connect to database {self.db_path}: {e}")
                raise StoreError(f"Database connection failed: {e}") from e
        return self._thread_local.connection

    def close_connection(self):
        """Closes the thread-local database connection if it exists."""
        conn = getattr(self._thread_local, 'connection', None)
        if conn is not None:
            logger.debug(f"Closing SQLite connection for thread {threading.get_ident()}.")
            conn.close()
            self._thread_local.connection = None

    def _apply_pragmas(self, conn: sqlite3.Connection):
        logger.debug("Applying PRAGMA settings...")
        for pragma in PRAGMAS:
            try:
                conn.execute(pragma)
                logger.debug(f"Executed PRAGMA: {pragma}")
            except sqlite3.Error as e:
                logger.warning(f"Failed to execute PRAGMA {pragma}: {e}")
        conn.commit()

    def _create_schema_if_needed(self, conn: sqlite3.Connection):
        """Creates database schema, indices and triggers if they don't exist."""
        try:
            with conn:
                cursor = conn.cursor()
                for table_name, ddl_statement in SCHEMA_DEFINITIONS.items():
                    logger.debug(f"Ensuring table '{table_name}' exists...")
                    cursor.execute(ddl_statement)

                for index_statement in INDICES:
                    cursor.execute(index_statement)

                for trigger_name, trigger_ddl in TRIGGERS.items():
                    logger.debug(f"Ensuring trigger '{trigger_name}' exists...")
                    cursor.execute(trigger_ddl)

            logger.debug("Database schema and indices verified/created successfully.")
        except sqlite3.Error as e:
            logger.error(f"Error during schema creation: {e}")
            raise StoreError(f"Schema creation failed: {e}") from e

    def init_db(self):
        """Opens the connection for this thread, which creates the schema."""
        self._get_connection()

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Commits everything written inside the block at once, or nothing.
        Nested blocks join the outermost transaction.
        """
        conn = self._get_connection()
        if self._thread_local.depth > 0:
            yield conn
            return

        self._thread_local.depth += 1
        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            logger.error(f"Transaction rolled back: {e}")
            raise StoreError(f"Transaction failed: {e}") from e
        finally:
            self._thread_local.depth -= 1

    def _execute_write(self, query: str, values: List[Any]) -> sqlite3.Cursor:
        with self.transaction() as conn:
            try:
                return conn.execute(query, values)
            except sqlite3.Error as e:
                raise StoreError(f"Write failed: {e}") from e

    def _fetch_all(self, query: str, values: Optional[List[Any]] = None) -> List[sqlite3.Row]:
        conn = self._get_connection()
        try:
            return conn.execute(query, values or []).fetchall()
        except sqlite3.Error as e:
            logger.error(f"Database error running query '{query}': {e}")
            raise StoreError(f"Query failed: {e}") from e

    # --- Pipeline writes ---

    def upsert_model_pricing(self, record: NormalizedModel, recorded_at: Optional[datetime] = None) -> None:
        """
        Inserts the model with all of its fields when absent. When present, only the
        pricing columns (and updated_at) change; descriptive fields keep their stored values.
        """
        data = self._model_to_row(record, ModelStatus.ACTIVE)
        data["pricing_updated"] = format_timestamp(recorded_at)
        query, values = SQLQueryBuilder.build_upsert_query(
            "models",
            data,
            conflict_target=["id"],
            update_columns=PRICING_COLUMNS,
            extra_set_clauses=["updated_at = datetime('now')"],
        )
        self._execute_write(query, values)

    def append_price_history(self, model_id: str, input_price: float, output_price: float,
                             source: Optional[str]) -> int:
        query, values = SQLQueryBuilder.build_insert_query("price_history", {
            "model_id": model_id,
            "input_price": input_price,
            "output_price": output_price,
            "source": source,
            "recorded_at": format_timestamp(),
        })
        return self._execute_write(query, values).lastrowid

    def upsert_benchmark_score(self, score: NormalizedScore) -> None:
        """Last write wins for a (model, benchmark) pair."""
        data = score.model_dump()
        query, values = SQLQueryBuilder.build_upsert_query(
            "benchmark_scores",
            data,
            conflict_target=["model_id", "benchmark_id"],
            extra_set_clauses=["updated_at = datetime('now')"],
        )
        self._execute_write(query, values)

    def model_exists(self, model_id: str) -> bool:
        rows = self._fetch_all("SELECT 1 FROM models WHERE id = ? LIMIT 1", [model_id])
        return bool(rows)

    def existing_model_ids(self) -> Set[str]:
        return {row["id"] for row in self._fetch_all("SELECT id FROM models")}

    def append_scrape_log(self, entry: ScrapeLogEntry) -> int:
        query, values = SQLQueryBuilder.build_insert_query("scrape_log", {
            "scraper": entry.scraper,
            "status": entry.status.value,
            "models_updated": entry.models_updated,
            "error_message": entry.error_message,
            "started_at": format_timestamp(entry.started_at),
            "finished_at": format_timestamp(entry.finished_at),
        })
        row_id = self._execute_write(query, values).lastrowid
        logger.debug(f"Scrape log entry {row_id} written for '{entry.scraper}' ({entry.status.value}).")
        return row_id

    def replace_news_item(self, item: NewsItem) -> None:
        data = item.model_dump()
        data["imported_at"] = format_timestamp()
        query, values = SQLQueryBuilder.build_insert_query("news", data, or_clause="replace")
        self._execute_write(query, values)

    # --- Seed inserts (insert-if-absent) ---

    def insert_provider(self, provider: ProviderRecord) -> bool:
        query, values = SQLQueryBuilder.build_insert_query("providers", provider.model_dump(), or_clause="ignore")
        return self._execute_write(query, values).rowcount == 1

    def insert_benchmark(self, benchmark: BenchmarkRecord) -> bool:
        data = benchmark.model_dump()
        data["higher_is_better"] = int(data["higher_is_better"])
        query, values = SQLQueryBuilder.build_insert_query("benchmarks", data, or_clause="ignore")
        return self._execute_write(query, values).rowcount == 1

    def insert_model(self, record: NormalizedModel, status: ModelStatus = ModelStatus.ACTIVE) -> bool:
        data = self._model_to_row(record, status)
        data["pricing_updated"] = format_timestamp()
        query, values = SQLQueryBuilder.build_insert_query("models", data, or_clause="ignore")
        return self._execute_write(query, values).rowcount == 1

    def insert_benchmark_score(self, score: NormalizedScore) -> bool:
        query, values = SQLQueryBuilder.build_insert_query("benchmark_scores", score.model_dump(), or_clause="ignore")
        return self._execute_write(query, values).rowcount == 1

    @staticmethod
    def _model_to_row(record: NormalizedModel, status: ModelStatus) -> Dict[str, Any]:
        return {
            "id": record.id,
            "name": record.name,
            "provider_id": record.provider_id,
            "input_price": record.input_price,
            "output_price": record.output_price,
            "context_window": record.context_window or 0,
            "max_output": record.max_output or 0,
            "speed": record.speed or 0,
            "quality_score": record.quality_score or 0,
            "released": record.released,
            "open_source": int(record.open_source),
            "modality": record.modality,
            "api_available": int(record.api_available),
            "notes": record.notes,
            "category": record.category.value,
            "status": status.value,
            "pricing_source": record.pricing_source,
        }

    # --- Read queries ---

    def get_model(self, model_id: str) -> Optional[ModelRow]:
        query, values = SQLQueryBuilder.build_select_query("models", conditions={"id": model_id}, limit=1)
        rows = self._fetch_all(query, values)
        return ModelRow(**dict(rows[0])) if rows else None

    def get_active_models(self, category: str = "llm") -> List[ModelRow]:
        query, values = SQLQueryBuilder.build_select_query(
            "models",
            conditions={"status": ModelStatus.ACTIVE.value, "category": category},
            order_by="quality_score DESC, id ASC",
        )
        return [ModelRow(**dict(row)) for row in self._fetch_all(query, values)]

    def get_price_history(self, model_id: str) -> List[PriceHistoryEntry]:
        query, values = SQLQueryBuilder.build_select_query(
            "price_history",
            conditions={"model_id": model_id},
            order_by="recorded_at ASC, id ASC",
        )
        return [PriceHistoryEntry(**dict(row)) for row in self._fetch_all(query, values)]

    def get_benchmark_scores(self, benchmark_id: str) -> List[Dict[str, Any]]:
        """Scores on one benchmark joined with model names, best first."""
        query = """
            SELECT bs.model_id, m.name AS model_name, m.provider_id, bs.score,
                   bs.source, bs.source_url, bs.measured_at
            FROM benchmark_scores bs
            JOIN models m ON m.id = bs.model_id
            JOIN benchmarks b ON b.id = bs.benchmark_id
            WHERE bs.benchmark_id = ?
            ORDER BY CASE WHEN b.higher_is_better = 1 THEN -bs.score ELSE bs.score END ASC
        """
        return [dict(row) for row in self._fetch_all(query, [benchmark_id])]

    def get_model_benchmarks(self, model_id: str) -> List[Dict[str, Any]]:
        query = """
            SELECT bs.benchmark_id, b.name AS benchmark_name, b.category, bs.score,
                   b.scale_min, b.scale_max, b.higher_is_better, bs.source, bs.measured_at
            FROM benchmark_scores bs
            JOIN benchmarks b ON b.id = bs.benchmark_id
            WHERE bs.model_id = ?
            ORDER BY b.category, b.name
        """
        return [dict(row) for row in self._fetch_all(query, [model_id])]

    def get_providers(self) -> List[ProviderRecord]:
        query, values = SQLQueryBuilder.build_select_query("providers", order_by="name ASC")
        return [ProviderRecord(**dict(row)) for row in self._fetch_all(query, values)]

    def get_benchmarks(self) -> List[BenchmarkRecord]:
        query, values = SQLQueryBuilder.build_select_query("benchmarks", order_by="category ASC, name ASC")
        return [BenchmarkRecord(**dict(row)) for row in self._fetch_all(query, values)]

    def get_news(self, limit: Optional[int] = None, category: Optional[str] = None) -> List[NewsItem]:
        conditions = {"category": category} if category else None
        query, values = SQLQueryBuilder.build_select_query(
            "news",
            columns=["id", "title", "url", "source", "summary", "published_at", "category"],
            conditions=conditions,
            order_by="published_at DESC, id ASC",
            limit=limit,
        )
        return [NewsItem(**{**dict(row), "summary": row["summary"] or "", "source": row["source"] or ""})
                for row in self._fetch_all(query, values)]

    def get_last_scrape_time(self, scraper: str) -> Optional[str]:
        """finished_at of the latest successful run of ``scraper``, if any."""
        rows = self._fetch_all(
            "SELECT MAX(finished_at) AS last FROM scrape_log WHERE scraper = ? AND status = 'success'",
            [scraper],
        )
        return rows[0]["last"] if rows else None

    def get_latest_scrape_runs(self) -> List[Dict[str, Any]]:
        """The most recent log entry for every scraper that has ever run."""
        query = """
            SELECT s.scraper, s.status, s.models_updated, s.error_message, s.started_at, s.finished_at
            FROM scrape_log s
            WHERE s.id = (SELECT MAX(id) FROM scrape_log WHERE scraper = s.scraper)
            ORDER BY s.scraper
        """
        return [dict(row) for row in self._fetch_all(query)]

    def get_model_counts(self) -> Dict[str, int]:
        """Active model count per category."""
        rows = self._fetch_all(
            "SELECT category, COUNT(*) AS n FROM models WHERE status = 'active' GROUP BY category"
        )
        return {row["category"]: row["n"] for row in rows}

    def count_rows(self, table_name: str, conditions: Optional[Dict[str, Any]] = None) -> int:
        if table_name not in SCHEMA_DEFINITIONS:
            raise StoreError(f"Unknown table: {table_name}")
        query, values = SQLQueryBuilder.build_select_query(table_name, columns=["COUNT(*) AS n"], conditions=conditions)
        return self._fetch_all(query, values)[0]["n"]

    def health_check(self) -> bool:
        """Checks connectivity and that every table of the schema exists."""
        try:
            rows = self._fetch_all("SELECT name FROM sqlite_master WHERE type='table'")
        except StoreError as e:
            logger.error(f"Database health check failed: {e}")
            return False
        existing = {row["name"] for row in rows}
        missing = [name for name in SCHEMA_DEFINITIONS if name not in existing]
        if missing:
            logger.warning(f"Database health check: missing tables {missing}.")
            return False
        logger.info(f"Database health check passed for {self.db_path}.")
        return True

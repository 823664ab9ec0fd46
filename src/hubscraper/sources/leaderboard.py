# src/hubscraper/sources/leaderboard.py
import json
import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..constants import ACCEPT_ANY
from ..exceptions import FetchError, NormalizationError, ParsingError
from ..extractors.request_manager import RequestManager
from ..parsers.data_cleaner import clean_text, parse_float, to_iso_date
from ..parsers.table_parser import GenericTableParser
from ..types import NormalizedScore, NormalizedRecords, RawPayload
from ..utils.validation import validate_score_data

logger = logging.getLogger(__name__)

# Keys that may hold the model name in a JSON leaderboard row
MODEL_NAME_KEYS = ("model", "name", "model_name", "Model")
# Keys that may wrap the row list in a JSON leaderboard document
ROW_LIST_KEYS = ("rows", "leaderboard", "data")


class LeaderboardSource:
    """
    Benchmark scores from a public leaderboard.

    The leaderboard URL is fetched first. A JSON row list or an HTML table with a model
    column and a score column is used when at least one row maps to a hub model; in every
    other case (unreachable, unstructured, nothing mappable) the curated table is used.
    """

    def __init__(self, client: RequestManager, board: str, entry: Dict[str, Any]):
        self.client = client
        self.board = board
        self.name = f"benchmarks:{board}"
        self.benchmark_id: str = entry["benchmark_id"]
        self.source_label: str = entry.get("source", board)
        self.source_url: Optional[str] = entry.get("source_url")
        self.live_url: Optional[str] = entry.get("live_url")
        self.score_fields: List[str] = [f.lower() for f in entry.get("score_fields") or ["score"]]
        self.curated: List[Any] = list(entry.get("scores") or [])

        curated_ids = {row[0] for row in self.curated if isinstance(row, (list, tuple)) and row}
        self.aliases: Dict[str, str] = {model_id.lower(): model_id for model_id in curated_ids}
        for alias, model_id in (entry.get("aliases") or {}).items():
            self.aliases[str(alias).strip().lower()] = model_id

    def fetch_raw(self) -> RawPayload:
        if not self.live_url:
            return None
        try:
            response = self.client.get(self.live_url, accept=ACCEPT_ANY)
        except FetchError as e:
            logger.info(f"{self.name}: leaderboard not accessible, using curated scores ({e})")
            return None
        logger.info(f"{self.name}: leaderboard accessible at {self.live_url}")
        return {"content_type": response.headers.get("Content-Type", ""), "text": response.text}

    def normalize(self, raw: RawPayload) -> NormalizedRecords:
        if raw:
            live_scores = self._scores_from_live(raw)
            if live_scores:
                logger.info(f"{self.name}: {len(live_scores)} scores parsed from the live leaderboard")
                return live_scores
            logger.info(f"{self.name}: no mappable rows in the leaderboard response, using curated scores")

        scores = self._curated_scores()
        logger.info(f"{self.name}: {len(scores)} curated scores")
        return scores

    def _curated_scores(self) -> List[NormalizedScore]:
        scores = []
        for row in self.curated:
            if not isinstance(row, (list, tuple)) or len(row) < 2:
                raise NormalizationError(f"{self.name}: malformed curated row {row!r}")
            measured_at = to_iso_date(row[2]) if len(row) > 2 else None
            scores.append(self._score(row[0], row[1], measured_at))
        return scores

    def _scores_from_live(self, raw: Dict[str, Any]) -> List[NormalizedScore]:
        text = raw.get("text") or ""
        try:
            rows = list(self._live_rows(raw.get("content_type") or "", text))
        except ParsingError as e:
            logger.warning(f"{self.name}: could not parse leaderboard response: {e}")
            return []

        today = date.today().isoformat()
        scores: Dict[str, NormalizedScore] = {}
        for name, value in rows:
            model_id = self.aliases.get(name.strip().lower())
            score = parse_float(value)
            if model_id is None or score is None:
                continue
            # First row per model wins; leaderboards list the best variant first
            if model_id not in scores:
                scores[model_id] = self._score(model_id, score, today)
        return list(scores.values())

    def _live_rows(self, content_type: str, text: str) -> Iterable[Tuple[str, Any]]:
        stripped = text.lstrip()
        if "json" in content_type or stripped.startswith(("[", "{")):
            try:
                document = json.loads(text)
            except ValueError as e:
                raise ParsingError(f"invalid JSON: {e}") from e
            return self._json_rows(document)
        if "<table" in text.lower():
            return self._html_rows(text)
        return []

    def _json_rows(self, document: Any) -> List[Tuple[str, Any]]:
        if isinstance(document, dict):
            for key in ROW_LIST_KEYS:
                if isinstance(document.get(key), list):
                    document = document[key]
                    break
        if not isinstance(document, list):
            return []

        rows = []
        for item in document:
            if not isinstance(item, dict):
                continue
            lowered = {str(k).lower(): v for k, v in item.items()}
            name = next((item[k] for k in MODEL_NAME_KEYS if isinstance(item.get(k), str)), None)
            value = next((lowered[f] for f in self.score_fields if lowered.get(f) is not None), None)
            if name is not None and value is not None:
                rows.append((name, value))
        return rows

    def _html_rows(self, text: str) -> List[Tuple[str, Any]]:
        column_map = {"model": "model"}
        column_map.update({field: "score" for field in self.score_fields})
        parser = GenericTableParser(column_map=column_map)
        rows = []
        for row in parser.parse(text, self.live_url or self.board):
            name = clean_text(row.get("model"))
            if name and row.get("score") is not None:
                rows.append((name, row["score"]))
        return rows

    def _score(self, model_id: str, value: Any, measured_at: Optional[str]) -> NormalizedScore:
        return validate_score_data({
            "model_id": model_id,
            "benchmark_id": self.benchmark_id,
            "score": value,
            "source": self.source_label,
            "source_url": self.source_url,
            "measured_at": measured_at,
        })

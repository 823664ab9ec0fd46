# src/hubscraper/sources/manual_tables.py
import os
import logging
from typing import Any, Dict, List, Mapping, Optional

from ..exceptions import FetchError, NormalizationError
from ..extractors.request_manager import RequestManager
from ..types import NormalizedModel, NormalizedRecords, RawPayload
from ..utils.validation import validate_model_data

logger = logging.getLogger(__name__)


class ManualPricingSource:
    """
    Curated price table for one vendor whose pricing page cannot be scraped.

    The vendor's model-listing API is queried on a best-effort basis; it can confirm that
    the table's models are still offered but never supplies prices.
    """

    def __init__(self, client: RequestManager, vendor: str, entry: Dict[str, Any],
                 environ: Optional[Mapping[str, str]] = None):
        self.client = client
        self.vendor = vendor
        self.name = f"pricing:{vendor}"
        self.pricing_source: str = entry["pricing_source"]
        self.live_url: Optional[str] = entry.get("live_url")
        self.api_key_env: Optional[str] = entry.get("api_key_env")
        self.table: List[Dict[str, Any]] = list(entry.get("models") or [])
        self.environ = environ if environ is not None else os.environ

    def fetch_raw(self) -> RawPayload:
        return {"available_ids": self._check_availability(), "table": self.table}

    def _check_availability(self) -> Optional[List[str]]:
        if not self.live_url:
            return None

        headers = {}
        api_key = self.environ.get(self.api_key_env) if self.api_key_env else None
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"

        try:
            payload = self.client.get_json(self.live_url, headers=headers)
        except FetchError as e:
            logger.info(f"{self.name}: availability check skipped ({e})")
            return None

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            logger.info(f"{self.name}: availability check returned no model list")
            return None
        available = [item["id"] for item in data if isinstance(item, dict) and "id" in item]
        logger.info(f"{self.name}: availability check found {len(available)} models via API")
        return available

    def normalize(self, raw: RawPayload) -> NormalizedRecords:
        if not isinstance(raw, dict) or not isinstance(raw.get("table"), list):
            raise NormalizationError(f"{self.name}: payload has no price table")

        records: List[NormalizedModel] = []
        for row in raw["table"]:
            if not isinstance(row, dict):
                logger.warning(f"{self.name}: skipping malformed table row {row!r}")
                continue
            try:
                records.append(validate_model_data({
                    "provider_id": self.vendor,
                    "pricing_source": self.pricing_source,
                    **row,
                }))
            except NormalizationError as e:
                logger.warning(f"{self.name}: skipping table row {row!r}: {e}")

        available = raw.get("available_ids")
        if available is not None:
            listed = set(available)
            missing = sorted(r.id for r in records if r.id not in listed)
            if missing:
                logger.warning(f"{self.name}: not listed by the vendor API: {missing}")

        logger.info(f"{self.name}: {len(records)} models from the curated table")
        return records

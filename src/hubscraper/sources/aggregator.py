# src/hubscraper/sources/aggregator.py
import re
import logging
from typing import Any, Dict, List, Optional

from ..exceptions import NormalizationError
from ..extractors.request_manager import RequestManager
from ..parsers.data_cleaner import parse_int, per_token_to_per_million
from ..types import NormalizedModel, NormalizedRecords, RawPayload
from ..utils.validation import validate_model_data

logger = logging.getLogger(__name__)

# "OpenAI: GPT-4o" -> "GPT-4o"
_PROVIDER_PREFIX = re.compile(r"^[^:]+:\s*")

PRICE_SUMMARY_LIMIT = 10


def infer_modalities(architecture: Optional[Dict[str, Any]]) -> List[str]:
    """
    Modality tags for an aggregator entry. Text is always present; an image input adds
    "vision" and an audio input adds "audio".
    """
    if not isinstance(architecture, dict) or not architecture:
        return ["text"]

    inputs = architecture.get("input_modalities")
    if isinstance(inputs, list) and inputs:
        has_image = "image" in inputs
        has_audio = "audio" in inputs
    else:
        # Older payloads only carry e.g. "text+image->text"
        legacy = architecture.get("modality") or ""
        has_image = "image" in legacy
        has_audio = "audio" in legacy

    modalities = ["text"]
    if has_image:
        modalities.append("vision")
    if has_audio:
        modalities.append("audio")
    return modalities


class AggregatorSource:
    """
    Pricing from a multi-provider aggregator feed (OpenRouter's public model list).
    Only models on the catalog's allow-list are kept, so new aggregator models never
    appear in the hub on their own.
    """

    def __init__(self, client: RequestManager, catalog: Dict[str, Any], url: Optional[str] = None):
        self.client = client
        self.name = f"pricing:{catalog.get('name', 'openrouter')}"
        self.url = url or catalog["url"]
        self.pricing_source = catalog.get("pricing_source", self.url)
        self.model_map: Dict[str, str] = catalog.get("models") or {}
        self.provider_map: Dict[str, str] = catalog.get("providers") or {}

    def fetch_raw(self) -> RawPayload:
        logger.info(f"Fetching aggregator model list from {self.url}")
        return self.client.get_json(self.url)

    def normalize(self, raw: RawPayload) -> NormalizedRecords:
        if not isinstance(raw, dict) or not isinstance(raw.get("data"), list):
            raise NormalizationError(f"{self.name}: payload has no 'data' list")

        entries = raw["data"]
        logger.info(f"{self.name}: received {len(entries)} models")

        records: List[NormalizedModel] = []
        untracked = 0
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            internal_id = self.model_map.get(entry.get("id"))
            if internal_id is None:
                untracked += 1
                continue
            try:
                record = self._normalize_entry(entry, internal_id)
            except NormalizationError as e:
                logger.warning(f"{self.name}: skipping {entry.get('id')}: {e}")
                continue
            if record is not None:
                records.append(record)

        logger.info(f"{self.name}: matched {len(records)} models to the hub catalog ({untracked} untracked)")
        self._log_price_summary(records)
        return records

    def _normalize_entry(self, entry: Dict[str, Any], internal_id: str) -> Optional[NormalizedModel]:
        pricing = entry.get("pricing")
        if not isinstance(pricing, dict):
            raise NormalizationError("missing pricing")
        input_price = per_token_to_per_million(pricing.get("prompt"))
        output_price = per_token_to_per_million(pricing.get("completion"))
        if input_price is None or output_price is None:
            raise NormalizationError(f"unparseable pricing {pricing!r}")

        # Free rate-limited variants of paid models
        if input_price == 0 and output_price == 0:
            logger.debug(f"{self.name}: dropping zero-priced entry {entry.get('id')}")
            return None

        top_provider = entry.get("top_provider")
        if not isinstance(top_provider, dict):
            top_provider = {}
        display_name = _PROVIDER_PREFIX.sub("", entry.get("name") or "").strip() or internal_id

        return validate_model_data({
            "id": internal_id,
            "name": display_name,
            "provider_id": self._provider_for(entry["id"]),
            "input_price": input_price,
            "output_price": output_price,
            "pricing_source": self.pricing_source,
            "context_window": parse_int(entry.get("context_length")) or None,
            "max_output": parse_int(top_provider.get("max_completion_tokens")) or None,
            "modalities": infer_modalities(entry.get("architecture")),
        })

    def _provider_for(self, aggregator_id: str) -> str:
        prefix = aggregator_id.split("/", 1)[0]
        return self.provider_map.get(prefix, prefix)

    def _log_price_summary(self, records: List[NormalizedModel]):
        if not records:
            return
        logger.info(f"{self.name}: price summary (per 1M tokens):")
        for record in records[:PRICE_SUMMARY_LIMIT]:
            logger.info(f"  {record.id}: ${record.input_price:.2f} in / ${record.output_price:.2f} out")
        if len(records) > PRICE_SUMMARY_LIMIT:
            logger.info(f"  ... and {len(records) - PRICE_SUMMARY_LIMIT} more")

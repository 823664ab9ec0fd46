# tests/test_aggregator.py
import pytest
import responses

from hubscraper.exceptions import FetchError, NormalizationError
from hubscraper.extractors.request_manager import RequestManager
from hubscraper.sources.aggregator import AggregatorSource, infer_modalities

FEED_URL = "https://aggregator.test/api/v1/models"

CATALOG = {
    "name": "openrouter",
    "url": FEED_URL,
    "pricing_source": "openrouter.ai/api/v1/models",
    "providers": {"acme-ai": "acme"},
    "models": {"acme-ai/m1": "m1", "acme-ai/m1-free": "m1-free", "acme-ai/m2": "m2"},
}


def _entry(model_id="acme-ai/m1", prompt="0.0000025", completion="0.00001", **extra):
    entry = {
        "id": model_id,
        "name": "Acme: Model One",
        "pricing": {"prompt": prompt, "completion": completion},
        "context_length": 128000,
        "architecture": {"input_modalities": ["text"]},
        "top_provider": {"max_completion_tokens": 4096},
    }
    entry.update(extra)
    return entry


@pytest.fixture
def source():
    client = RequestManager({})
    yield AggregatorSource(client, CATALOG)
    client.close()


class TestNormalize:
    def test_per_token_prices_become_per_million(self, source):
        records = source.normalize({"data": [_entry()]})

        assert len(records) == 1
        record = records[0]
        assert record.id == "m1"
        assert record.input_price == 2.5
        assert record.output_price == 10.0
        assert record.pricing_source == "openrouter.ai/api/v1/models"

    def test_entry_details_are_carried_over(self, source):
        record = source.normalize({"data": [_entry()]})[0]

        assert record.name == "Model One"
        assert record.provider_id == "acme"
        assert record.context_window == 128000
        assert record.max_output == 4096
        assert record.modalities == ["text"]

    def test_zero_priced_entries_are_dropped(self, source):
        records = source.normalize({"data": [_entry("acme-ai/m1-free", prompt="0", completion="0")]})
        assert records == []

    def test_unparseable_pricing_skips_only_that_entry(self, source):
        records = source.normalize({"data": [
            _entry("acme-ai/m1", prompt="n/a"),
            _entry("acme-ai/m2", prompt="0.000001", completion="0.000002"),
        ]})

        assert [r.id for r in records] == ["m2"]
        assert records[0].input_price == 1.0

    def test_entries_outside_the_allow_list_are_ignored(self, source):
        records = source.normalize({"data": [_entry("someone/else"), _entry()]})
        assert [r.id for r in records] == ["m1"]

    def test_payload_without_data_list_is_rejected(self, source):
        with pytest.raises(NormalizationError):
            source.normalize({"models": []})


class TestInferModalities:
    def test_image_and_audio_inputs(self):
        assert infer_modalities({"input_modalities": ["text", "image", "audio"]}) == ["text", "vision", "audio"]

    def test_legacy_modality_string(self):
        assert infer_modalities({"modality": "text+image->text"}) == ["text", "vision"]

    def test_missing_architecture_is_text_only(self):
        assert infer_modalities(None) == ["text"]


class TestFetch:
    @responses.activate
    def test_fetch_and_normalize_from_feed(self, source):
        responses.add(responses.GET, FEED_URL, json={"data": [_entry()]}, status=200)

        records = source.normalize(source.fetch_raw())

        assert records[0].input_price == 2.5
        assert responses.calls[0].request.headers["Accept"] == "application/json"

    @responses.activate
    def test_feed_outage_raises_fetch_error(self, source):
        responses.add(responses.GET, FEED_URL, status=502)

        with pytest.raises(FetchError) as exc_info:
            source.fetch_raw()
        assert exc_info.value.status_code == 502

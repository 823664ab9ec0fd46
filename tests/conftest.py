# tests/conftest.py
import pytest

from hubscraper.storage.database import HubDatabase
from hubscraper.storage.models import ProviderRecord, BenchmarkRecord
from hubscraper.types import NormalizedModel, NormalizedScore


def make_model(model_id="m1", provider_id="acme", input_price=1.0, output_price=2.0,
               pricing_source="seed", **extra) -> NormalizedModel:
    return NormalizedModel(
        id=model_id,
        name=extra.pop("name", model_id.upper()),
        provider_id=provider_id,
        input_price=input_price,
        output_price=output_price,
        pricing_source=pricing_source,
        **extra,
    )


def make_score(model_id="m1", benchmark_id="arena", score=1200.0, source="test") -> NormalizedScore:
    return NormalizedScore(model_id=model_id, benchmark_id=benchmark_id, score=score, source=source)


class StubSource:
    """Source whose payload and records are fixed up front."""

    def __init__(self, name, records=None, fetch_error=None, normalize_error=None, fetch=None):
        self.name = name
        self.records = records or []
        self.fetch_error = fetch_error
        self.normalize_error = normalize_error
        self.fetch = fetch
        self.fetch_calls = 0

    def fetch_raw(self):
        self.fetch_calls += 1
        if self.fetch is not None:
            self.fetch()
        if self.fetch_error:
            raise self.fetch_error
        return {"records": self.records}

    def normalize(self, raw):
        if self.normalize_error:
            raise self.normalize_error
        return list(raw["records"])


@pytest.fixture
def db(tmp_path):
    database = HubDatabase(str(tmp_path / "hub.db"))
    database.init_db()
    yield database
    database.close_connection()


@pytest.fixture
def seeded_db(db):
    """Store holding provider acme, model m1 (1.0 / 2.0) with its seed price row, and benchmark arena."""
    db.insert_provider(ProviderRecord(id="acme", name="Acme"))
    model = make_model()
    db.insert_model(model)
    db.append_price_history(model.id, model.input_price, model.output_price, "seed")
    db.insert_benchmark(BenchmarkRecord(id="arena", name="Arena", scale_min=800, scale_max=1400))
    return db


@pytest.fixture
def config(tmp_path):
    return {
        "database": {"path": str(tmp_path / "hub.db")},
        "fetch": {"request_timeout": 5},
        "pipeline": {"source_timeout": 5, "sources": {}},
        "digests": {"directory": str(tmp_path / "news-digests")},
        "logging": {"level": "DEBUG", "console": False},
    }

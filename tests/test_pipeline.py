# tests/test_pipeline.py
import threading

import pytest

from hubscraper.exceptions import FetchError, NormalizationError, StoreError
from hubscraper.extractors.request_manager import RequestManager
from hubscraper.main import ScrapePipeline

from conftest import StubSource, make_model, make_score


@pytest.fixture
def pipeline_factory(config, seeded_db):
    created = []

    def factory(sources, **overrides):
        for section, values in overrides.items():
            config.setdefault(section, {}).update(values)
        pipeline = ScrapePipeline(config, db=seeded_db, client=RequestManager(config), sources=sources)
        created.append(pipeline)
        return pipeline

    yield factory
    for pipeline in created:
        pipeline.client.close()


def _log_rows(db):
    return [dict(r) for r in db._fetch_all("SELECT scraper, status, models_updated, error_message FROM scrape_log ORDER BY id")]


class TestScrapePipeline:
    def test_end_to_end_price_update(self, pipeline_factory, seeded_db):
        source = StubSource("pricing:test", records=[
            make_model(input_price=1.5, output_price=2.5, pricing_source="test"),
        ])
        summary = pipeline_factory([source]).run()

        model = seeded_db.get_model("m1")
        assert model.input_price == 1.5
        assert model.output_price == 2.5
        assert model.pricing_source == "test"
        assert len(seeded_db.get_price_history("m1")) == 2
        assert _log_rows(seeded_db) == [
            {"scraper": "pricing:test", "status": "success", "models_updated": 1, "error_message": None},
        ]
        assert summary.total == 1
        assert summary.failed == []

    def test_failing_source_does_not_stop_the_others(self, pipeline_factory, seeded_db):
        sources = [
            StubSource("pricing:first", records=[make_model(input_price=1.1, output_price=2.1)]),
            StubSource("pricing:broken", normalize_error=NormalizationError("bad payload")),
            StubSource("benchmarks:last", records=[make_score(score=1333)]),
        ]
        summary = pipeline_factory(sources).run()

        assert summary.total == 2
        assert summary.failed == ["pricing:broken"]
        assert seeded_db.get_model("m1").input_price == 1.1
        assert seeded_db.get_benchmark_scores("arena")[0]["score"] == 1333

        rows = _log_rows(seeded_db)
        assert [(r["scraper"], r["status"], r["models_updated"]) for r in rows] == [
            ("pricing:first", "success", 1),
            ("pricing:broken", "error", 0),
            ("benchmarks:last", "success", 1),
        ]
        assert "bad payload" in rows[1]["error_message"]

    def test_unexpected_exception_is_recorded_as_error(self, pipeline_factory, seeded_db):
        source = StubSource("pricing:crash", fetch_error=KeyError("data"))
        summary = pipeline_factory([source]).run()

        assert summary.failed == ["pricing:crash"]
        assert _log_rows(seeded_db)[0]["status"] == "error"

    def test_fetch_error_is_recorded(self, pipeline_factory, seeded_db):
        error = FetchError("HTTP 503", url="https://example.test", status_code=503)
        summary = pipeline_factory([StubSource("pricing:down", fetch_error=error)]).run()

        assert summary.results[0].status == "error"
        assert "503" in summary.results[0].error

    def test_slow_source_times_out(self, pipeline_factory, seeded_db):
        release = threading.Event()
        slow = StubSource("pricing:slow", fetch=lambda: release.wait(5))
        fast = StubSource("pricing:fast", records=[make_model(input_price=1.2, output_price=2.2)])

        pipeline = pipeline_factory([slow, fast], pipeline={"source_timeout": 0.2})
        try:
            summary = pipeline.run()
        finally:
            release.set()

        assert summary.failed == ["pricing:slow"]
        assert "timed out" in summary.results[0].error
        assert seeded_db.get_model("m1").input_price == 1.2

    def test_disabled_sources_are_skipped(self, pipeline_factory, seeded_db):
        disabled = StubSource("pricing:off", records=[make_model(input_price=7.0, output_price=7.0)])
        enabled = StubSource("pricing:on")
        pipeline = pipeline_factory([disabled, enabled],
                                    pipeline={"sources": {"pricing:off": {"enabled": False}}})
        summary = pipeline.run()

        assert disabled.fetch_calls == 0
        assert [r.name for r in summary.results] == ["pricing:on"]
        assert seeded_db.get_model("m1").input_price == 1.0

    def test_run_can_be_restricted_to_named_sources(self, pipeline_factory):
        first, second = StubSource("pricing:a"), StubSource("pricing:b")
        summary = pipeline_factory([first, second]).run(only=["pricing:b", "pricing:unknown"])

        assert [r.name for r in summary.results] == ["pricing:b"]
        assert first.fetch_calls == 0

    def test_orphan_scores_are_not_counted(self, pipeline_factory):
        source = StubSource("benchmarks:arena", records=[make_score(), make_score(model_id="nobody")])
        summary = pipeline_factory([source]).run()

        assert summary.total == 1
        assert summary.failed == []

    def test_models_roll_back_when_a_score_write_fails(self, pipeline_factory, seeded_db):
        source = StubSource("leaderboard:mixed", records=[
            make_model(input_price=5.0, output_price=6.0),
            make_score(benchmark_id="ghost"),
        ])
        summary = pipeline_factory([source]).run()

        assert summary.failed == ["leaderboard:mixed"]
        assert seeded_db.get_model("m1").input_price == 1.0
        assert len(seeded_db.get_price_history("m1")) == 1
        assert seeded_db.get_benchmark_scores("ghost") == []
        rows = _log_rows(seeded_db)
        assert [(r["scraper"], r["status"], r["models_updated"]) for r in rows] == [
            ("leaderboard:mixed", "error", 0),
        ]

    def test_scrape_log_write_failure_does_not_stop_the_run(self, pipeline_factory, seeded_db, monkeypatch):
        original = seeded_db.append_scrape_log
        calls = []

        def flaky_append(entry):
            calls.append(entry.scraper)
            if len(calls) == 1:
                raise StoreError("database is locked")
            return original(entry)

        monkeypatch.setattr(seeded_db, "append_scrape_log", flaky_append)
        sources = [
            StubSource("pricing:broken", fetch_error=FetchError("timeout")),
            StubSource("pricing:good", records=[make_model(input_price=1.2, output_price=2.2)]),
        ]
        summary = pipeline_factory(sources).run()

        assert [r.name for r in summary.results] == ["pricing:broken", "pricing:good"]
        assert summary.failed == ["pricing:broken"]
        assert calls == ["pricing:broken", "pricing:good"]
        assert seeded_db.get_model("m1").input_price == 1.2
        assert [r["scraper"] for r in _log_rows(seeded_db)] == ["pricing:good"]

# tests/test_database.py
from datetime import datetime, timedelta, timezone

import pytest

from hubscraper.constants import RunStatus
from hubscraper.exceptions import StoreError
from hubscraper.storage.database import HubDatabase, format_timestamp
from hubscraper.storage.models import ProviderRecord, ScrapeLogEntry
from hubscraper.types import NewsItem

from conftest import make_model, make_score


class TestSchema:
    def test_health_check_passes_on_fresh_database(self, db):
        assert db.health_check() is True

    def test_count_rows_rejects_unknown_table(self, db):
        with pytest.raises(StoreError):
            db.count_rows("sqlite_master")

    def test_two_instances_do_not_share_connections(self, tmp_path):
        first = HubDatabase(str(tmp_path / "a.db"))
        second = HubDatabase(str(tmp_path / "b.db"))
        first.insert_provider(ProviderRecord(id="acme", name="Acme"))

        assert first.count_rows("providers") == 1
        assert second.count_rows("providers") == 0
        first.close_connection()
        second.close_connection()


class TestTransactions:
    def test_failed_transaction_rolls_back_every_write(self, db):
        with pytest.raises(StoreError):
            with db.transaction():
                db.insert_provider(ProviderRecord(id="acme", name="Acme"))
                # Foreign key violation: provider "ghost" does not exist
                db.insert_model(make_model(model_id="m1", provider_id="ghost"))

        assert db.count_rows("providers") == 0
        assert db.count_rows("models") == 0

    def test_nested_blocks_join_the_outer_transaction(self, db):
        with pytest.raises(RuntimeError):
            with db.transaction():
                with db.transaction():
                    db.insert_provider(ProviderRecord(id="acme", name="Acme"))
                raise RuntimeError("abort")

        assert db.count_rows("providers") == 0

    def test_writes_outside_a_transaction_commit_on_their_own(self, db, tmp_path):
        db.insert_provider(ProviderRecord(id="acme", name="Acme"))

        reader = HubDatabase(str(tmp_path / "hub.db"))
        assert reader.count_rows("providers") == 1
        reader.close_connection()


class TestModelWrites:
    def test_upsert_inserts_a_new_model_with_all_fields(self, seeded_db):
        seeded_db.upsert_model_pricing(make_model(
            model_id="m2", name="Model Two", input_price=0.5, output_price=1.5,
            pricing_source="feed", context_window=128000, modalities="text,vision",
        ))

        row = seeded_db.get_model("m2")
        assert row.name == "Model Two"
        assert row.context_window == 128000
        assert row.modalities == ["text", "vision"]
        assert row.pricing_source == "feed"
        assert row.status == "active"

    def test_upsert_only_touches_pricing_columns_of_existing_model(self, seeded_db):
        seeded_db.upsert_model_pricing(make_model(
            name="Renamed", input_price=3.0, output_price=4.0, pricing_source="feed",
            context_window=999, quality_score=10,
        ))

        row = seeded_db.get_model("m1")
        assert row.name == "M1"
        assert row.context_window == 0
        assert row.input_price == 3.0
        assert row.output_price == 4.0
        assert row.pricing_source == "feed"

    def test_insert_model_ignores_existing_rows(self, seeded_db):
        assert seeded_db.insert_model(make_model(input_price=9.0)) is False
        assert seeded_db.get_model("m1").input_price == 1.0

    def test_price_history_is_returned_in_insertion_order(self, seeded_db):
        seeded_db.append_price_history("m1", 1.5, 2.5, "test")

        history = seeded_db.get_price_history("m1")
        assert [(h.input_price, h.source) for h in history] == [(1.0, "seed"), (1.5, "test")]

    def test_active_models_are_ordered_by_quality(self, seeded_db):
        seeded_db.insert_model(make_model(model_id="m2", quality_score=90))
        seeded_db.insert_model(make_model(model_id="m3", quality_score=50))

        assert [m.id for m in seeded_db.get_active_models("llm")] == ["m2", "m3", "m1"]
        assert seeded_db.get_model_counts() == {"llm": 3}
        assert seeded_db.existing_model_ids() == {"m1", "m2", "m3"}


class TestBenchmarkScores:
    def test_score_upsert_is_last_write_wins(self, seeded_db):
        seeded_db.upsert_benchmark_score(make_score(score=1200))
        seeded_db.upsert_benchmark_score(make_score(score=1250))

        scores = seeded_db.get_benchmark_scores("arena")
        assert len(scores) == 1
        assert scores[0]["score"] == 1250
        assert scores[0]["model_name"] == "M1"

    def test_model_benchmarks_join_benchmark_metadata(self, seeded_db):
        seeded_db.upsert_benchmark_score(make_score(score=1200))

        rows = seeded_db.get_model_benchmarks("m1")
        assert rows[0]["benchmark_id"] == "arena"
        assert rows[0]["scale_max"] == 1400


class TestScrapeLog:
    def test_last_scrape_time_only_counts_successful_runs(self, db):
        assert db.get_last_scrape_time("pricing:acme") is None

        finished = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)
        db.append_scrape_log(ScrapeLogEntry(scraper="pricing:acme", status=RunStatus.SUCCESS,
                                            models_updated=3, finished_at=finished))
        db.append_scrape_log(ScrapeLogEntry(scraper="pricing:acme", status=RunStatus.ERROR,
                                            error_message="boom",
                                            finished_at=datetime(2025, 6, 2, tzinfo=timezone.utc)))

        assert db.get_last_scrape_time("pricing:acme") == "2025-06-01 12:00:00"
        latest = db.get_latest_scrape_runs()
        assert len(latest) == 1
        assert latest[0]["status"] == "error"
        assert latest[0]["error_message"] == "boom"

    def test_format_timestamp_converts_to_utc(self):
        local = datetime(2025, 6, 1, 14, 30, tzinfo=timezone(timedelta(hours=2)))
        assert format_timestamp(local) == "2025-06-01 12:30:00"


class TestNews:
    def _item(self, item_id, category="news", published_at="2025-06-14"):
        return NewsItem(id=item_id, title=item_id, url=f"https://example.com/{item_id}",
                        source="Example", published_at=published_at, category=category)

    def test_replace_news_item_overwrites_by_id(self, db):
        db.replace_news_item(self._item("a"))
        db.replace_news_item(self._item("a", category="top"))

        assert db.count_rows("news") == 1
        assert db.get_news()[0].category == "top"

    def test_get_news_filters_and_limits(self, db):
        db.replace_news_item(self._item("a", category="top", published_at="2025-06-10"))
        db.replace_news_item(self._item("b", category="top", published_at="2025-06-12"))
        db.replace_news_item(self._item("c", category="video"))

        assert [n.id for n in db.get_news(category="top")] == ["b", "a"]
        assert len(db.get_news(limit=2)) == 2

# tests/test_snapshot.py
import pytest
from pydantic import ValidationError

from hubscraper.storage.snapshot import CatalogSnapshot, blended_cost, value_score

from conftest import make_model


@pytest.fixture
def snapshot_db(seeded_db):
    seeded_db.insert_model(make_model(model_id="m2", input_price=2.0, output_price=6.0, quality_score=80))
    seeded_db.insert_model(make_model(model_id="free", input_price=0, output_price=0, quality_score=70))
    return seeded_db


def test_blended_cost_weights_output_three_to_one():
    assert blended_cost(1.0, 2.0) == 1.75


def test_value_score_is_zero_for_free_models():
    assert value_score(80, 0) == 0
    assert value_score(80, 5.0) == 160


class TestCatalogSnapshot:
    def test_build_computes_costs_per_model(self, snapshot_db):
        snapshot = CatalogSnapshot.build(snapshot_db, categories=["llm"])

        assert snapshot.total == 3
        entry = snapshot.get("m2")
        assert entry.blended_cost == 5.0
        assert entry.value_score == 160
        assert [e.model.id for e in snapshot.best_value("llm", limit=1)] == ["m2"]

    def test_snapshot_does_not_follow_later_writes(self, snapshot_db):
        snapshot = CatalogSnapshot.build(snapshot_db, categories=["llm"])
        snapshot_db.upsert_model_pricing(make_model(model_id="m2", input_price=100.0, output_price=100.0))

        assert snapshot.get("m2").model.input_price == 2.0

    def test_entries_are_read_only(self, snapshot_db):
        snapshot = CatalogSnapshot.build(snapshot_db)

        with pytest.raises(ValidationError):
            snapshot.get("m1").value_score = 99
        with pytest.raises(ValidationError):
            snapshot.get("m1").model.input_price = 999.0
        with pytest.raises(TypeError):
            snapshot._entries["llm"] = ()
        assert snapshot.models("music") == ()

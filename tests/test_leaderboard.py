# tests/test_leaderboard.py
from datetime import date

import pytest
import responses

from hubscraper.extractors.request_manager import RequestManager
from hubscraper.sources.leaderboard import LeaderboardSource

LIVE_URL = "https://leaderboard.test/arena"

ENTRY = {
    "benchmark_id": "arena",
    "source": "Arena",
    "source_url": "https://leaderboard.test",
    "live_url": LIVE_URL,
    "score_fields": ["arena score", "score"],
    "aliases": {"GPT-4o-2024-11-20": "m1", "Model Two": "m2"},
    "scores": [["m1", 1285, "2025-01-15"], ["m2", 1330, "Jun 1, 2025"]],
}

ARENA_TABLE = """
<html><body>
<table id="leaderboard">
  <thead><tr><th>Rank</th><th>Model</th><th>Arena Score</th><th>Votes</th></tr></thead>
  <tbody>
    <tr><td>1</td><td>Model Two</td><td>1,342</td><td>20000</td></tr>
    <tr><td>2</td><td>Some Other Model</td><td>1,300</td><td>100</td></tr>
    <tr><td>3</td><td>gpt-4o-2024-11-20</td><td>1,290</td><td>30000</td></tr>
  </tbody>
</table>
</body></html>
"""


@pytest.fixture
def source():
    client = RequestManager({})
    yield LeaderboardSource(client, "arena", ENTRY)
    client.close()


def _by_model(records):
    return {r.model_id: r for r in records}


class TestLeaderboardSource:
    @responses.activate
    def test_json_rows_are_mapped_through_aliases(self, source):
        responses.add(responses.GET, LIVE_URL, status=200, json=[
            {"model": "GPT-4o-2024-11-20", "Arena Score": 1290},
            {"model": "unknown-model", "Arena Score": 1000},
        ])

        records = source.normalize(source.fetch_raw())

        assert source.name == "benchmarks:arena"
        assert len(records) == 1
        assert records[0].model_id == "m1"
        assert records[0].score == 1290
        assert records[0].benchmark_id == "arena"
        assert records[0].measured_at == date.today().isoformat()

    @responses.activate
    def test_json_rows_inside_a_wrapper_object(self, source):
        responses.add(responses.GET, LIVE_URL, status=200, json={"rows": [{"name": "model two", "score": "1,350"}]})

        records = source.normalize(source.fetch_raw())
        assert [(r.model_id, r.score) for r in records] == [("m2", 1350)]

    @responses.activate
    def test_html_table_is_parsed(self, source):
        responses.add(responses.GET, LIVE_URL, status=200, body=ARENA_TABLE, content_type="text/html")

        scores = _by_model(source.normalize(source.fetch_raw()))

        assert set(scores) == {"m1", "m2"}
        assert scores["m2"].score == 1342
        assert scores["m1"].score == 1290

    @responses.activate
    def test_unreachable_leaderboard_falls_back_to_curated_scores(self, source):
        responses.add(responses.GET, LIVE_URL, status=503)

        raw = source.fetch_raw()
        scores = _by_model(source.normalize(raw))

        assert raw is None
        assert scores["m1"].score == 1285
        assert scores["m1"].measured_at == "2025-01-15"
        assert scores["m2"].measured_at == "2025-06-01"
        assert scores["m2"].source == "Arena"

    @responses.activate
    def test_unmappable_response_falls_back_to_curated_scores(self, source):
        responses.add(responses.GET, LIVE_URL, status=200, body="<html><p>Loading...</p></html>",
                      content_type="text/html")

        records = source.normalize(source.fetch_raw())
        assert {r.model_id for r in records} == {"m1", "m2"}
        assert all(r.measured_at != date.today().isoformat() for r in records)

    def test_board_without_curated_scores_yields_nothing(self):
        client = RequestManager({})
        board = LeaderboardSource(client, "empty", {"benchmark_id": "mmlu-pro", "scores": []})

        assert board.fetch_raw() is None
        assert board.normalize(None) == []
        client.close()

"""Command-line entrypoint tests"""

import json

import pytest

from conftest import fixed_clock, make_city, opendata_body, opendata_record
from permitgrid import fetch_entrypoint
from permitgrid.core.logging import configure_logging
from permitgrid.ingestion.registry import ConnectorRegistry
from permitgrid.services.aggregation_service import PermitAggregator


@pytest.fixture
def mocked_run_query(monkeypatch, upstream, test_settings):
    registry = ConnectorRegistry([make_city("alpha"), make_city("beta")])
    aggregator = PermitAggregator(registry, test_settings, transport=upstream.transport, clock=fixed_clock)
    calls = []

    async def run_query(query, cities=None):
        calls.append((query, cities))
        return await aggregator.fetch_all(query, cities or None)

    monkeypatch.setattr(fetch_entrypoint, "run_query", run_query)
    yield calls
    configure_logging(force=True)


class TestFetchEntrypoint:
    """python -m permitgrid.fetch_entrypoint"""

    def test_missing_query_exits_2(self, mocked_run_query):
        assert fetch_entrypoint.main([]) == 2
        assert mocked_run_query == []

    def test_success_exits_0_with_clean_stdout(self, mocked_run_query, upstream, capsys):
        upstream.json("alpha.example.ca", opendata_body(opendata_record("A-1")))
        upstream.fail("beta.example.ca")

        code = fetch_entrypoint.main(["main st", "alpha", "beta"])

        assert code == 0
        assert mocked_run_query == [("main st", ["alpha", "beta"])]
        captured = capsys.readouterr()
        printed = json.loads(captured.out)
        assert printed["totalItems"] == 1
        assert printed["cities"][1]["outcome"] == "failed"
        assert "Permit query completed" in captured.err

    def test_console_script_exit_status(self, mocked_run_query, upstream):
        upstream.json("alpha.example.ca", opendata_body())
        upstream.json("beta.example.ca", opendata_body())

        with pytest.raises(SystemExit) as exc_info:
            raise SystemExit(fetch_entrypoint.main(["main st"]))
        assert exc_info.value.code == 0

    def test_exits_1_when_nothing_responded(self, mocked_run_query, upstream, capsys):
        upstream.fail("alpha.example.ca")
        upstream.status("beta.example.ca", 500)

        assert fetch_entrypoint.main(["main st"]) == 1
        assert json.loads(capsys.readouterr().out)["totalItems"] == 0

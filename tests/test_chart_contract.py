from sqlboard.chart_contract import (
    BAD_RETURN,
    ChartRunner,
    prepare_submission,
    records_from_result,
)
from sqlboard.errors.codes import ErrorCode
from sqlboard.types import QueryResult

CHART = "function createChart(data, svg, d3, width, height) { return svg; }"


class Surface:
    """Stand-in for the drawing surface a renderer passes to chart code."""


def _result(n: int = 10) -> QueryResult:
    return QueryResult(
        columns=["id", "label"],
        rows=[[i, f"row {i}"] for i in range(1, n + 1)],
        total_rows=n,
        page=1,
        page_size=50,
    )


def test_runner_success_passes_records_once():
    calls = []

    def invoke(source, data, surface, width, height):
        calls.append((data, width, height))
        return surface

    surface = Surface()
    outcome = ChartRunner(invoke).run(CHART, _result(3), surface, 640, 480)

    assert outcome.ok
    assert outcome.surface is surface
    assert len(calls) == 1
    assert calls[0][0][0] == {"id": 1, "label": "row 1"}
    assert calls[0][1:] == (640, 480)
    assert outcome.to_dict()["success"] is True


def test_runner_runtime_error_becomes_error_state_with_preview():
    def invoke(source, data, surface, width, height):
        raise ValueError("d3.scaleBand is not a function")

    outcome = ChartRunner(invoke).run(CHART, _result(10), Surface(), 100, 100)

    assert not outcome.ok
    assert outcome.error == "d3.scaleBand is not a function"
    assert outcome.error_code == ErrorCode.CHART_RUNTIME_ERROR
    body = outcome.to_dict()
    assert set(body) == {"error", "preview"}
    assert len(body["preview"]["rows"]) == 5
    assert body["preview"]["message"] == "Showing 5 of 10 rows"


def test_runner_bad_return():
    outcome = ChartRunner(lambda *a: None).run(CHART, _result(2), Surface(), 1, 1)
    assert outcome.error == BAD_RETURN
    assert outcome.error_code == ErrorCode.CHART_BAD_RETURN
    assert outcome.preview.message == "Showing 2 of 2 rows"


def test_runner_validates_before_invoking():
    calls = []
    outcome = ChartRunner(lambda *a: calls.append(a)).run(
        "function f(data) { while (true) {} }", _result(), Surface(), 1, 1
    )
    assert calls == []
    assert outcome.error_code == ErrorCode.CHART_UNSAFE_LOOP


def test_runner_custom_drawable_check():
    runner = ChartRunner(
        lambda *a: "<svg/>", is_drawable=lambda ret, surface: ret.startswith("<svg")
    )
    assert runner.run(CHART, _result(1), None, 1, 1).ok


def test_records_from_payload_dict():
    payload = _result(4).to_dict()
    records, total = records_from_result(payload)
    assert total == 4
    assert records[3] == {"id": 4, "label": "row 4"}

    records, total = records_from_result({"columns": ["a"], "rows": [[1], [2]]})
    assert total == 2


def test_prepare_submission():
    ok = prepare_submission(CHART, _result(2).to_dict())
    assert ok.ok
    assert ok.to_dict() == {
        "success": True,
        "data": [{"id": 1, "label": "row 1"}, {"id": 2, "label": "row 2"}],
    }

    bad = prepare_submission("", _result(7), preview_rows=3)
    assert not bad.ok
    assert bad.preview.message == "Showing 3 of 7 rows"

"""Unit tests for the pipeline metrics report."""

from __future__ import annotations

import datetime as dt

from codepipeline_mcp import metrics

T0 = dt.datetime(2024, 5, 1, 12, 0, 0, tzinfo=dt.timezone.utc)


class _FakeMetricsAdapter:
    def __init__(self, series=None, executions=None, state=None):
        self.series = series or {}
        self.executions = executions or []
        self.state = state or {}
        self.metric_calls = []
        self.state_calls = 0

    def get_metric_statistics(self, pipeline_name, metric_name, start, end, period, statistics):
        self.metric_calls.append((metric_name, start, end, period, tuple(statistics)))
        return self.series.get(metric_name, [])

    def list_execution_summaries(self, pipeline_name, max_results):
        self.max_results = max_results
        return self.executions

    def get_raw_pipeline_state(self, pipeline_name):
        self.state_calls += 1
        return self.state


def _action(seconds_after_t0):
    return {"latestExecution": {"lastStatusChange": T0 + dt.timedelta(seconds=seconds_after_t0)}}


def test_zero_executions_reports_zero_success_rate():
    adapter = _FakeMetricsAdapter()

    report = metrics.build_pipeline_metrics(adapter, "web", start_time=T0, end_time=T0)

    assert report["executionStats"] == {
        "totalExecutions": 0,
        "successfulExecutions": 0,
        "failedExecutions": 0,
        "successRate": "0.00%",
    }
    assert report["executionTime"] == {"average": 0, "minimum": 0, "maximum": 0, "dataPoints": []}
    assert report["stagePerformance"] == []


def test_success_rate_sums_bucket_counts():
    adapter = _FakeMetricsAdapter(
        series={
            "SucceededPipeline": [{"Sum": 2.0}, {"Sum": 1.0}],
            "FailedPipeline": [{"Sum": 1.0}],
        }
    )

    stats = metrics.build_pipeline_metrics(adapter, "web")["executionStats"]

    assert stats["totalExecutions"] == 4
    assert stats["successfulExecutions"] == 3
    assert stats["successRate"] == "75.00%"


def test_success_rate_formatting():
    assert metrics.format_success_rate(2, 1) == "66.67%"
    assert metrics.format_success_rate(0, 0) == "0.00%"


def test_execution_time_uses_mean_of_bucket_averages():
    summary = metrics.summarize_execution_time(
        [
            {"Timestamp": T0, "Average": 100.0, "Minimum": 40.0, "Maximum": 300.0},
            {"Timestamp": T0, "Average": 50.0, "Minimum": 10.0, "Maximum": 90.0},
        ]
    )

    assert summary["average"] == 75
    assert summary["minimum"] == 10
    assert summary["maximum"] == 300
    assert summary["dataPoints"][0] == {
        "timestamp": "2024-05-01T12:00:00.000Z",
        "average": 100.0,
        "minimum": 40.0,
        "maximum": 300.0,
    }


def test_default_window_is_seven_days_ending_now():
    adapter = _FakeMetricsAdapter()

    report = metrics.build_pipeline_metrics(adapter, "web", end_time=T0)

    metric, start, end, period, _ = adapter.metric_calls[0]
    assert metric == "SucceededPipeline"
    assert end - start == dt.timedelta(days=7)
    assert period == 86400
    assert report["timeRange"] == {
        "startTime": "2024-04-24T12:00:00.000Z",
        "endTime": "2024-05-01T12:00:00.000Z",
        "periodSeconds": 86400,
    }
    assert [call[0] for call in adapter.metric_calls] == [
        "SucceededPipeline",
        "FailedPipeline",
        "PipelineExecutionTime",
    ]
    assert adapter.metric_calls[2][4] == ("Average", "Minimum", "Maximum")


def test_stage_durations_only_for_succeeded_stages():
    state = {
        "stageStates": [
            {
                "stageName": "Build",
                "latestExecution": {"status": "Succeeded"},
                "actionStates": [_action(0), _action(90), _action(30)],
            },
            {
                "stageName": "Deploy",
                "latestExecution": {"status": "Failed"},
                "actionStates": [_action(0), _action(500)],
            },
            {"stageName": "Empty", "latestExecution": {"status": "Succeeded"}, "actionStates": []},
        ]
    }

    assert metrics.stage_durations(state) == {"Build": 90.0}


def test_stage_performance_reads_current_state_per_successful_execution():
    state = {
        "stageStates": [
            {
                "stageName": "Build",
                "latestExecution": {"status": "Succeeded"},
                "actionStates": [_action(0), _action(60)],
            }
        ]
    }
    adapter = _FakeMetricsAdapter(
        executions=[
            {"pipelineExecutionId": "e1", "status": "Succeeded", "startTime": T0},
            {"pipelineExecutionId": "e2", "status": "Failed", "startTime": T0},
            {"pipelineExecutionId": "e3", "status": "Succeeded", "startTime": T0},
            {"pipelineExecutionId": "e4", "status": "Succeeded"},
        ],
        state=state,
    )

    report = metrics.build_pipeline_metrics(adapter, "web")

    assert adapter.max_results == 20
    assert adapter.state_calls == 2
    assert report["stagePerformance"] == [
        {"stageName": "Build", "averageDuration": 60, "executionCount": 2}
    ]

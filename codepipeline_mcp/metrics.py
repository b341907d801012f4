"""metrics.py — Pipeline performance report built from CloudWatch and CodePipeline.

The report combines three CloudWatch series (succeeded, failed, execution
time) with per-stage durations sampled from recent successful executions.

Stage durations are measured on the pipeline's *current* state snapshot for
every sampled execution, so they approximate recent stage timings rather
than the timings of each historical run.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional

from .config import (
    DEFAULT_METRICS_LOOKBACK_DAYS,
    DEFAULT_METRICS_PERIOD_SECONDS,
    METRICS_EXECUTION_SAMPLE_SIZE,
)
from .serialization import _as_utc, _iso, _now, _number

logger = logging.getLogger(__name__)

COUNT_STATISTICS = ("Sum", "Average", "Maximum")
DURATION_STATISTICS = ("Average", "Minimum", "Maximum")


def resolve_time_window(
    start_time: Optional[dt.datetime] = None,
    end_time: Optional[dt.datetime] = None,
) -> tuple:
    """Default to ``[end - 7 days, now]`` for whichever bound is missing."""
    end = _as_utc(end_time) if end_time is not None else _now()
    if start_time is not None:
        start = _as_utc(start_time)
    else:
        start = end - dt.timedelta(days=DEFAULT_METRICS_LOOKBACK_DAYS)
    return start, end


def format_success_rate(successful: float, failed: float) -> str:
    total = successful + failed
    rate = (successful / total) * 100 if total > 0 else 0
    return f"{rate:.2f}%"


def summarize_execution_time(datapoints: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Mean of bucket averages plus extremes across bucket extremes."""
    if datapoints:
        average = sum(p.get("Average") or 0 for p in datapoints) / len(datapoints)
        minimum = min(p.get("Minimum") or 0 for p in datapoints)
        maximum = max(p.get("Maximum") or 0 for p in datapoints)
    else:
        average = minimum = maximum = 0
    return {
        "average": _number(average),
        "minimum": _number(minimum),
        "maximum": _number(maximum),
        "dataPoints": [
            {
                "timestamp": _iso(p.get("Timestamp")),
                "average": p.get("Average"),
                "minimum": p.get("Minimum"),
                "maximum": p.get("Maximum"),
            }
            for p in datapoints
        ],
    }


def stage_durations(pipeline_state: Dict[str, Any]) -> Dict[str, float]:
    """Seconds between the first and last action status change of each succeeded stage."""
    durations: Dict[str, float] = {}
    for stage in pipeline_state.get("stageStates") or []:
        name = stage.get("stageName")
        actions = stage.get("actionStates") or []
        if (stage.get("latestExecution") or {}).get("status") != "Succeeded" or not name or not actions:
            continue
        changes = [
            _as_utc(a["latestExecution"]["lastStatusChange"])
            for a in actions
            if (a.get("latestExecution") or {}).get("lastStatusChange")
        ]
        if changes:
            durations[name] = (max(changes) - min(changes)).total_seconds()
    return durations


def build_pipeline_metrics(
    adapter: Any,
    pipeline_name: str,
    period: Optional[int] = None,
    start_time: Optional[dt.datetime] = None,
    end_time: Optional[dt.datetime] = None,
) -> Dict[str, Any]:
    period = period or DEFAULT_METRICS_PERIOD_SECONDS
    start, end = resolve_time_window(start_time, end_time)

    succeeded = adapter.get_metric_statistics(
        pipeline_name, "SucceededPipeline", start, end, period, COUNT_STATISTICS
    )
    failed = adapter.get_metric_statistics(
        pipeline_name, "FailedPipeline", start, end, period, COUNT_STATISTICS
    )
    execution_time = adapter.get_metric_statistics(
        pipeline_name, "PipelineExecutionTime", start, end, period, DURATION_STATISTICS
    )

    total_successful = sum(p.get("Sum") or 0 for p in succeeded)
    total_failed = sum(p.get("Sum") or 0 for p in failed)

    stage_totals: Dict[str, Dict[str, float]] = {}
    for execution in adapter.list_execution_summaries(pipeline_name, METRICS_EXECUTION_SAMPLE_SIZE):
        if execution.get("status") != "Succeeded" or not execution.get("startTime"):
            continue
        state = adapter.get_raw_pipeline_state(pipeline_name)
        for stage_name, duration in stage_durations(state).items():
            totals = stage_totals.setdefault(stage_name, {"count": 0, "totalDuration": 0.0})
            totals["count"] += 1
            totals["totalDuration"] += duration

    logger.debug("Sampled stage timings for %s: %s", pipeline_name, stage_totals)

    return {
        "pipelineName": pipeline_name,
        "timeRange": {
            "startTime": _iso(start),
            "endTime": _iso(end),
            "periodSeconds": period,
        },
        "executionStats": {
            "totalExecutions": _number(total_successful + total_failed),
            "successfulExecutions": _number(total_successful),
            "failedExecutions": _number(total_failed),
            "successRate": format_success_rate(total_successful, total_failed),
        },
        "executionTime": summarize_execution_time(execution_time),
        "stagePerformance": [
            {
                "stageName": stage_name,
                "averageDuration": _number(
                    totals["totalDuration"] / totals["count"] if totals["count"] else 0
                ),
                "executionCount": int(totals["count"]),
            }
            for stage_name, totals in stage_totals.items()
        ],
    }

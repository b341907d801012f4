"""models.py — Validated argument records, one per tool.

Field names are snake_case in Python and camelCase on the wire.
"""

from __future__ import annotations

import datetime as dt
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .config import DEFAULT_METRICS_PERIOD_SECONDS


class ToolArguments(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class NoArguments(ToolArguments):
    pass


class PipelineArguments(ToolArguments):
    pipeline_name: str


class StopExecutionArguments(PipelineArguments):
    execution_id: str
    reason: Optional[str] = None


class ExecutionLogsArguments(PipelineArguments):
    execution_id: str


class MetricsArguments(PipelineArguments):
    period: int = Field(default=DEFAULT_METRICS_PERIOD_SECONDS, gt=0)
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def require_iso_string(cls, value):
        # Numbers would otherwise be read as Unix epochs.
        if value is not None and not isinstance(value, str):
            raise ValueError("must be an ISO-8601 date-time string")
        return value


class ApproveActionArguments(PipelineArguments):
    stage_name: str
    action_name: str
    token: str
    approved: bool
    comments: Optional[str] = None


class RetryStageArguments(PipelineArguments):
    stage_name: str
    pipeline_execution_id: str


class Tag(ToolArguments):
    key: str
    value: str


class TagResourceArguments(PipelineArguments):
    tags: List[Tag]


class WebhookFilter(ToolArguments):
    json_path: str
    match_equals: Optional[str] = None


class CreateWebhookArguments(PipelineArguments):
    webhook_name: str
    target_action: str
    authentication: Literal["GITHUB_HMAC", "IP", "UNAUTHENTICATED"]
    authentication_configuration: Dict[str, str] = Field(default_factory=dict)
    filters: List[WebhookFilter] = Field(default_factory=list)

"""registry.py — Tool catalog and dispatch.

Each tool is an ``OperationDescriptor``: its advertised JSON input schema,
the pydantic model that validates incoming arguments, and a plain handler
function ``handler(adapter, arguments) -> payload``. ``dispatch`` looks the
tool up, validates, runs the handler and always returns an envelope.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Type

from pydantic import ValidationError

from . import models
from .config import DEFAULT_METRICS_PERIOD_SECONDS, WEBHOOK_AUTHENTICATION_TYPES
from .envelope import wrap_error, wrap_success
from .errors import EXECUTION_ERROR, InvalidArgument, PipelineToolError, UnknownOperation

logger = logging.getLogger(__name__)

Handler = Callable[[Any, Any], Dict[str, Any]]


@dataclass(frozen=True)
class OperationDescriptor:
    name: str
    description: str
    input_schema: Dict[str, Any]
    arguments: Type[models.ToolArguments]
    handler: Handler


def _pipeline_name_property() -> Dict[str, Any]:
    return {"type": "string", "description": "Name of the pipeline"}


def _schema(properties: Dict[str, Any], required: List[str]) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "object", "properties": properties}
    if required:
        schema["required"] = required
    return schema


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


def _list_pipelines(adapter, args: models.NoArguments) -> Dict[str, Any]:
    return {"pipelines": adapter.list_pipelines()}


def _get_pipeline_state(adapter, args: models.PipelineArguments) -> Dict[str, Any]:
    return {"pipelineState": adapter.get_pipeline_state(args.pipeline_name)}


def _list_pipeline_executions(adapter, args: models.PipelineArguments) -> Dict[str, Any]:
    return {"executions": adapter.list_pipeline_executions(args.pipeline_name)}


def _trigger_pipeline(adapter, args: models.PipelineArguments) -> Dict[str, Any]:
    execution_id = adapter.trigger_pipeline(args.pipeline_name)
    return {"message": "Pipeline triggered successfully", "executionId": execution_id}


def _stop_pipeline_execution(adapter, args: models.StopExecutionArguments) -> Dict[str, Any]:
    adapter.stop_pipeline_execution(args.pipeline_name, args.execution_id, args.reason)
    return {"message": "Pipeline execution stopped successfully"}


def _get_pipeline_details(adapter, args: models.PipelineArguments) -> Dict[str, Any]:
    return {"pipeline": adapter.get_pipeline_details(args.pipeline_name)}


def _get_pipeline_execution_logs(adapter, args: models.ExecutionLogsArguments) -> Dict[str, Any]:
    return {"logs": adapter.get_pipeline_execution_logs(args.pipeline_name, args.execution_id)}


def _get_pipeline_metrics(adapter, args: models.MetricsArguments) -> Dict[str, Any]:
    metrics = adapter.get_pipeline_metrics(
        args.pipeline_name,
        period=args.period,
        start_time=args.start_time,
        end_time=args.end_time,
    )
    return {"metrics": metrics}


def _approve_action(adapter, args: models.ApproveActionArguments) -> Dict[str, Any]:
    adapter.approve_action(
        args.pipeline_name,
        args.stage_name,
        args.action_name,
        args.token,
        args.approved,
        args.comments,
    )
    return {"message": f"Action {'approved' if args.approved else 'rejected'} successfully"}


def _retry_stage(adapter, args: models.RetryStageArguments) -> Dict[str, Any]:
    adapter.retry_stage(args.pipeline_name, args.stage_name, args.pipeline_execution_id)
    return {"message": "Stage retry initiated successfully"}


def _tag_pipeline_resource(adapter, args: models.TagResourceArguments) -> Dict[str, Any]:
    tags = [{"key": t.key, "value": t.value} for t in args.tags]
    resource_arn = adapter.tag_resource(args.pipeline_name, tags)
    return {
        "message": "Pipeline resource tagged successfully",
        "resourceArn": resource_arn,
        "tags": tags,
    }


def _create_pipeline_webhook(adapter, args: models.CreateWebhookArguments) -> Dict[str, Any]:
    webhook = adapter.create_webhook(
        args.pipeline_name,
        args.webhook_name,
        args.target_action,
        args.authentication,
        authentication_configuration=args.authentication_configuration,
        filters=[f.model_dump(by_alias=True, exclude_none=True) for f in args.filters],
    )
    return {
        "message": "Pipeline webhook created and registered successfully",
        "webhookDetails": webhook,
    }


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_OPERATIONS: List[OperationDescriptor] = [
    OperationDescriptor(
        name="list_pipelines",
        description="List all CodePipeline pipelines",
        input_schema=_schema({}, []),
        arguments=models.NoArguments,
        handler=_list_pipelines,
    ),
    OperationDescriptor(
        name="get_pipeline_state",
        description="Get the state of a specific pipeline",
        input_schema=_schema({"pipelineName": _pipeline_name_property()}, ["pipelineName"]),
        arguments=models.PipelineArguments,
        handler=_get_pipeline_state,
    ),
    OperationDescriptor(
        name="list_pipeline_executions",
        description="List executions for a specific pipeline",
        input_schema=_schema({"pipelineName": _pipeline_name_property()}, ["pipelineName"]),
        arguments=models.PipelineArguments,
        handler=_list_pipeline_executions,
    ),
    OperationDescriptor(
        name="approve_action",
        description="Approve or reject a manual approval action",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "stageName": {"type": "string", "description": "Name of the stage"},
                "actionName": {"type": "string", "description": "Name of the action"},
                "token": {"type": "string", "description": "Approval token"},
                "approved": {
                    "type": "boolean",
                    "description": "Boolean indicating approval or rejection",
                },
                "comments": {"type": "string", "description": "Optional comments"},
            },
            ["pipelineName", "stageName", "actionName", "token", "approved"],
        ),
        arguments=models.ApproveActionArguments,
        handler=_approve_action,
    ),
    OperationDescriptor(
        name="retry_stage",
        description="Retry a failed stage",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "stageName": {"type": "string", "description": "Name of the stage"},
                "pipelineExecutionId": {"type": "string", "description": "Execution ID"},
            },
            ["pipelineName", "stageName", "pipelineExecutionId"],
        ),
        arguments=models.RetryStageArguments,
        handler=_retry_stage,
    ),
    OperationDescriptor(
        name="trigger_pipeline",
        description="Trigger a pipeline execution",
        input_schema=_schema({"pipelineName": _pipeline_name_property()}, ["pipelineName"]),
        arguments=models.PipelineArguments,
        handler=_trigger_pipeline,
    ),
    OperationDescriptor(
        name="get_pipeline_execution_logs",
        description="Get logs for a pipeline execution",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "executionId": {"type": "string", "description": "Execution ID"},
            },
            ["pipelineName", "executionId"],
        ),
        arguments=models.ExecutionLogsArguments,
        handler=_get_pipeline_execution_logs,
    ),
    OperationDescriptor(
        name="stop_pipeline_execution",
        description="Stop a pipeline execution",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "executionId": {"type": "string", "description": "Execution ID"},
                "reason": {"type": "string", "description": "Reason for stopping"},
            },
            ["pipelineName", "executionId"],
        ),
        arguments=models.StopExecutionArguments,
        handler=_stop_pipeline_execution,
    ),
    OperationDescriptor(
        name="get_pipeline_details",
        description="Get the full definition of a specific pipeline",
        input_schema=_schema({"pipelineName": _pipeline_name_property()}, ["pipelineName"]),
        arguments=models.PipelineArguments,
        handler=_get_pipeline_details,
    ),
    OperationDescriptor(
        name="tag_pipeline_resource",
        description="Add or update tags for a pipeline resource",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "tags": {
                    "type": "array",
                    "description": "List of tags to add or update",
                    "items": {
                        "type": "object",
                        "properties": {
                            "key": {"type": "string", "description": "Tag key"},
                            "value": {"type": "string", "description": "Tag value"},
                        },
                        "required": ["key", "value"],
                    },
                },
            },
            ["pipelineName", "tags"],
        ),
        arguments=models.TagResourceArguments,
        handler=_tag_pipeline_resource,
    ),
    OperationDescriptor(
        name="create_pipeline_webhook",
        description="Create a webhook for a pipeline to enable automatic triggering",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "webhookName": {"type": "string", "description": "Name for the webhook"},
                "targetAction": {
                    "type": "string",
                    "description": "The name of the action in the pipeline that processes the webhook",
                },
                "authentication": {
                    "type": "string",
                    "description": "Authentication method for the webhook",
                    "enum": list(WEBHOOK_AUTHENTICATION_TYPES),
                },
                "authenticationConfiguration": {
                    "type": "object",
                    "description": "Authentication configuration based on the authentication type",
                    "properties": {
                        "SecretToken": {
                            "type": "string",
                            "description": "Secret token for GITHUB_HMAC authentication",
                        },
                        "AllowedIpRange": {
                            "type": "string",
                            "description": "Allowed IP range for IP authentication",
                        },
                    },
                },
                "filters": {
                    "type": "array",
                    "description": "Event filters for the webhook",
                    "items": {
                        "type": "object",
                        "properties": {
                            "jsonPath": {
                                "type": "string",
                                "description": "JSON path to filter events",
                            },
                            "matchEquals": {
                                "type": "string",
                                "description": "Value to match in the JSON path",
                            },
                        },
                        "required": ["jsonPath"],
                    },
                },
            },
            ["pipelineName", "webhookName", "targetAction", "authentication"],
        ),
        arguments=models.CreateWebhookArguments,
        handler=_create_pipeline_webhook,
    ),
    OperationDescriptor(
        name="get_pipeline_metrics",
        description="Get performance metrics for a pipeline",
        input_schema=_schema(
            {
                "pipelineName": _pipeline_name_property(),
                "period": {
                    "type": "number",
                    "description": "Time period in seconds for the metrics (default: 86400 - 1 day)",
                    "default": DEFAULT_METRICS_PERIOD_SECONDS,
                },
                "startTime": {
                    "type": "string",
                    "description": "Start time for metrics in ISO format (default: 1 week ago)",
                    "format": "date-time",
                },
                "endTime": {
                    "type": "string",
                    "description": "End time for metrics in ISO format (default: now)",
                    "format": "date-time",
                },
            },
            ["pipelineName"],
        ),
        arguments=models.MetricsArguments,
        handler=_get_pipeline_metrics,
    ),
]


def _index(operations: List[OperationDescriptor]) -> Dict[str, OperationDescriptor]:
    table: Dict[str, OperationDescriptor] = {}
    for op in operations:
        if op.name in table:
            raise ValueError(f"Duplicate operation name: {op.name}")
        table[op.name] = op
    return table


_OPERATION_TABLE = _index(_OPERATIONS)


def describe() -> List[OperationDescriptor]:
    return list(_OPERATIONS)


def get_operation(name: str) -> OperationDescriptor:
    op = _OPERATION_TABLE.get(name)
    if op is None:
        raise UnknownOperation(f"Unknown tool: {name}", details={"tool": name})
    return op


def _validation_message(name: str, exc: ValidationError) -> str:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())) or "arguments"
        problems.append(f"{location}: {err.get('msg')}")
    return f"Invalid arguments for {name}: " + "; ".join(problems)


def parse_arguments(op: OperationDescriptor, arguments: Dict[str, Any]) -> models.ToolArguments:
    try:
        return op.arguments.model_validate(arguments or {})
    except ValidationError as exc:
        raise InvalidArgument(
            _validation_message(op.name, exc),
            details={"tool": op.name, "errors": exc.errors(include_url=False, include_context=False, include_input=False)},
        ) from exc


def dispatch(adapter, name: str, arguments: Dict[str, Any]) -> list:
    """Run tool ``name`` against ``adapter``; never raises."""
    try:
        op = get_operation(name)
        parsed = parse_arguments(op, arguments)
        return wrap_success(op.handler(adapter, parsed))
    except PipelineToolError as exc:
        logger.warning("tool %s failed with %s: %s", name, exc.code, exc.message)
        return wrap_error(exc.code, exc.message, exc.details)
    except Exception as exc:
        logger.exception("tool call failed: %s", name)
        return wrap_error(EXECUTION_ERROR, f"Tool execution failed: {exc}", {"tool": name})

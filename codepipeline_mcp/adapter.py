"""adapter.py — Thin facade over the CodePipeline and CloudWatch APIs.

One method per tool operation. Each method performs the remote call(s) and
reshapes the boto3 response into the stable camelCase payloads returned to
MCP clients. Absent scalar fields become ``''``/``0``/``[]``; absent nested
substructures are omitted.
"""

from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, List, Optional, Sequence

from botocore.exceptions import BotoCoreError, ClientError

from . import aws_clients
from .config import (
    DEFAULT_STOP_REASON,
    METRICS_NAMESPACE,
    RETRY_MODE_FAILED_ACTIONS,
    Settings,
)
from .errors import RemoteCallFailed, ResourceNotFound
from .metrics import build_pipeline_metrics
from .serialization import _compact, _iso, _optional_iso

logger = logging.getLogger(__name__)


class CodePipelineAdapter:
    """Stateless wrapper around a CodePipeline client and a CloudWatch client."""

    def __init__(self, codepipeline: Any, cloudwatch: Any):
        self._codepipeline = codepipeline
        self._cloudwatch = cloudwatch

    @classmethod
    def from_settings(cls, settings: Settings) -> "CodePipelineAdapter":
        logger.info("AWS CodePipeline adapter initialized with region: %s", settings.region)
        return cls(
            aws_clients.build_codepipeline_client(settings),
            aws_clients.build_cloudwatch_client(settings),
        )

    # ------------------------------------------------------------------
    # Remote call wrapper
    # ------------------------------------------------------------------

    def _call(self, client: Any, operation: str, **kwargs: Any) -> Dict[str, Any]:
        try:
            return getattr(client, operation)(**kwargs) or {}
        except (ClientError, BotoCoreError) as exc:
            logger.error("Error calling %s: %s", operation, exc)
            raise RemoteCallFailed(str(exc), details={"operation": operation}) from exc

    def _pipeline_call(self, operation: str, **kwargs: Any) -> Dict[str, Any]:
        return self._call(self._codepipeline, operation, **kwargs)

    # ------------------------------------------------------------------
    # Read-only projections
    # ------------------------------------------------------------------

    def list_pipelines(self) -> List[Dict[str, Any]]:
        resp = self._pipeline_call("list_pipelines")
        return [
            {
                "name": p.get("name") or "",
                "version": p.get("version") or 0,
                "created": _iso(p.get("created")),
                "updated": _iso(p.get("updated")),
            }
            for p in resp.get("pipelines") or []
        ]

    def get_pipeline_state(self, pipeline_name: str) -> Dict[str, Any]:
        resp = self._pipeline_call("get_pipeline_state", name=pipeline_name)
        return {
            "pipelineName": resp.get("pipelineName") or "",
            "pipelineVersion": resp.get("pipelineVersion") or 0,
            "stageStates": [_stage_state(s) for s in resp.get("stageStates") or []],
            "created": _iso(resp.get("created")),
            "updated": _iso(resp.get("updated")),
        }

    def list_pipeline_executions(self, pipeline_name: str) -> List[Dict[str, Any]]:
        resp = self._pipeline_call("list_pipeline_executions", pipelineName=pipeline_name)
        return [_execution_summary(e) for e in resp.get("pipelineExecutionSummaries") or []]

    def get_pipeline_execution_logs(self, pipeline_name: str, execution_id: str) -> Dict[str, Any]:
        resp = self._pipeline_call(
            "get_pipeline_execution",
            pipelineName=pipeline_name,
            pipelineExecutionId=execution_id,
        )
        execution = resp.get("pipelineExecution") or {}
        revisions = execution.get("artifactRevisions")
        return {
            "pipelineName": execution.get("pipelineName") or pipeline_name,
            "pipelineVersion": execution.get("pipelineVersion") or 1,
            "pipelineExecution": _compact(
                {
                    "pipelineExecutionId": execution.get("pipelineExecutionId"),
                    "status": execution.get("status"),
                    "artifactRevisions": None
                    if revisions is None
                    else [
                        _compact(
                            {
                                "name": r.get("name"),
                                "revisionId": r.get("revisionId"),
                                "revisionSummary": r.get("revisionSummary"),
                                "revisionUrl": r.get("revisionUrl"),
                            }
                        )
                        for r in revisions
                    ],
                }
            ),
        }

    def get_pipeline_details(self, pipeline_name: str) -> Dict[str, Any]:
        resp = self._pipeline_call("get_pipeline", name=pipeline_name)
        pipeline = resp.get("pipeline") or {}
        metadata = resp.get("metadata") or {}
        stages = pipeline.get("stages")
        return _compact(
            {
                "name": pipeline.get("name") or "",
                "roleArn": pipeline.get("roleArn") or "",
                "artifactStore": pipeline.get("artifactStore"),
                "stages": None if stages is None else [_stage_declaration(s) for s in stages],
                "version": pipeline.get("version") or 0,
                "metadata": {
                    "created": _iso(metadata.get("created")),
                    "updated": _iso(metadata.get("updated")),
                    "pipelineArn": metadata.get("pipelineArn") or "",
                },
            }
        )

    # ------------------------------------------------------------------
    # Execution control
    # ------------------------------------------------------------------

    def approve_action(
        self,
        pipeline_name: str,
        stage_name: str,
        action_name: str,
        token: str,
        approved: bool,
        comments: Optional[str] = None,
    ) -> None:
        self._pipeline_call(
            "put_approval_result",
            pipelineName=pipeline_name,
            stageName=stage_name,
            actionName=action_name,
            token=token,
            result={
                "status": "Approved" if approved else "Rejected",
                "summary": comments or "",
            },
        )

    def retry_stage(self, pipeline_name: str, stage_name: str, execution_id: str) -> None:
        self._pipeline_call(
            "retry_stage_execution",
            pipelineName=pipeline_name,
            stageName=stage_name,
            pipelineExecutionId=execution_id,
            retryMode=RETRY_MODE_FAILED_ACTIONS,
        )

    def trigger_pipeline(self, pipeline_name: str) -> str:
        resp = self._pipeline_call("start_pipeline_execution", name=pipeline_name)
        return resp.get("pipelineExecutionId") or ""

    def stop_pipeline_execution(
        self, pipeline_name: str, execution_id: str, reason: Optional[str] = None
    ) -> None:
        self._pipeline_call(
            "stop_pipeline_execution",
            pipelineName=pipeline_name,
            pipelineExecutionId=execution_id,
            reason=reason or DEFAULT_STOP_REASON,
            abandon=False,
        )

    # ------------------------------------------------------------------
    # Multi-step mutations
    # ------------------------------------------------------------------

    def tag_resource(self, pipeline_name: str, tags: Sequence[Dict[str, str]]) -> str:
        """Resolve the pipeline ARN, then upsert ``tags`` on it. Returns the ARN."""
        resp = self._pipeline_call("get_pipeline", name=pipeline_name)
        resource_arn = (resp.get("metadata") or {}).get("pipelineArn")
        if not resource_arn:
            raise ResourceNotFound(
                f"Could not find ARN for pipeline: {pipeline_name}",
                details={"pipelineName": pipeline_name},
            )
        self._pipeline_call(
            "tag_resource",
            resourceArn=resource_arn,
            tags=[{"key": t["key"], "value": t["value"]} for t in tags],
        )
        return resource_arn

    def create_webhook(
        self,
        pipeline_name: str,
        webhook_name: str,
        target_action: str,
        authentication: str,
        authentication_configuration: Optional[Dict[str, str]] = None,
        filters: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> Dict[str, Any]:
        """Put the webhook definition, then register it with the third party.

        A failure in the registration step leaves the definition in place;
        it is reported, not rolled back.
        """
        definition = {
            "name": webhook_name,
            "targetPipeline": pipeline_name,
            "targetAction": target_action,
            "filters": [
                _compact({"jsonPath": f["jsonPath"], "matchEquals": f.get("matchEquals")})
                for f in filters or []
            ],
            "authentication": authentication,
            "authenticationConfiguration": dict(authentication_configuration or {}),
        }
        resp = self._pipeline_call("put_webhook", webhook=definition)
        try:
            self._pipeline_call("register_webhook_with_third_party", webhookName=webhook_name)
        except RemoteCallFailed:
            logger.error(
                "Webhook %s was created for pipeline %s but third-party registration failed; "
                "the webhook remains defined and unregistered",
                webhook_name,
                pipeline_name,
            )
            raise

        webhook = resp.get("webhook")
        url = webhook.get("url") if isinstance(webhook, dict) else None
        return _compact(
            {
                "name": webhook_name,
                "url": str(url) if url is not None else None,
                "targetPipeline": pipeline_name,
                "targetAction": target_action,
            }
        )

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    def get_metric_statistics(
        self,
        pipeline_name: str,
        metric_name: str,
        start_time: dt.datetime,
        end_time: dt.datetime,
        period: int,
        statistics: Sequence[str],
    ) -> List[Dict[str, Any]]:
        resp = self._call(
            self._cloudwatch,
            "get_metric_statistics",
            Namespace=METRICS_NAMESPACE,
            MetricName=metric_name,
            Dimensions=[{"Name": "PipelineName", "Value": pipeline_name}],
            StartTime=start_time,
            EndTime=end_time,
            Period=period,
            Statistics=list(statistics),
        )
        return list(resp.get("Datapoints") or [])

    def list_execution_summaries(self, pipeline_name: str, max_results: int) -> List[Dict[str, Any]]:
        """Raw execution summaries (datetimes intact) for metrics sampling."""
        resp = self._pipeline_call(
            "list_pipeline_executions", pipelineName=pipeline_name, maxResults=max_results
        )
        return list(resp.get("pipelineExecutionSummaries") or [])

    def get_raw_pipeline_state(self, pipeline_name: str) -> Dict[str, Any]:
        """Unshaped ``GetPipelineState`` response for timing analysis."""
        return self._pipeline_call("get_pipeline_state", name=pipeline_name)

    def get_pipeline_metrics(
        self,
        pipeline_name: str,
        period: Optional[int] = None,
        start_time: Optional[dt.datetime] = None,
        end_time: Optional[dt.datetime] = None,
    ) -> Dict[str, Any]:
        return build_pipeline_metrics(
            self, pipeline_name, period=period, start_time=start_time, end_time=end_time
        )


# ---------------------------------------------------------------------------
# Response reshaping
# ---------------------------------------------------------------------------


def _stage_state(stage: Dict[str, Any]) -> Dict[str, Any]:
    transition = stage.get("inboundTransitionState")
    latest = stage.get("latestExecution")
    return _compact(
        {
            "stageName": stage.get("stageName") or "",
            "inboundTransitionState": None
            if transition is None
            else _compact(
                {
                    "enabled": bool(transition.get("enabled", False)),
                    "lastChangedBy": transition.get("lastChangedBy"),
                    "lastChangedAt": _optional_iso(transition.get("lastChangedAt")),
                    "disabledReason": transition.get("disabledReason"),
                }
            ),
            "actionStates": [_action_state(a) for a in stage.get("actionStates") or []],
            "latestExecution": None
            if latest is None
            else {
                "pipelineExecutionId": latest.get("pipelineExecutionId") or "",
                "status": latest.get("status") or "",
            },
        }
    )


def _action_state(action: Dict[str, Any]) -> Dict[str, Any]:
    revision = action.get("currentRevision")
    latest = action.get("latestExecution")
    execution = None
    if latest is not None:
        error = latest.get("errorDetails")
        execution = _compact(
            {
                "status": latest.get("status") or "",
                "summary": latest.get("summary"),
                "lastStatusChange": _iso(latest.get("lastStatusChange")),
                "token": latest.get("token"),
                "externalExecutionId": latest.get("externalExecutionId"),
                "externalExecutionUrl": latest.get("externalExecutionUrl"),
                "errorDetails": None
                if error is None
                else {"code": error.get("code") or "", "message": error.get("message") or ""},
            }
        )
    return _compact(
        {
            "actionName": action.get("actionName") or "",
            "currentRevision": None
            if revision is None
            else {
                "revisionId": revision.get("revisionId") or "",
                "revisionChangeId": revision.get("revisionChangeId") or "",
                "created": _iso(revision.get("created")),
            },
            "latestExecution": execution,
            "entityUrl": action.get("entityUrl"),
        }
    )


def _execution_summary(execution: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "pipelineExecutionId": execution.get("pipelineExecutionId") or "",
        "status": execution.get("status") or "",
        "startTime": _iso(execution.get("startTime")),
        "lastUpdateTime": _iso(execution.get("lastUpdateTime")),
        "sourceRevisions": [
            {
                "name": r.get("actionName") or "",
                "revisionId": r.get("revisionId") or "",
                "revisionUrl": r.get("revisionUrl") or "",
                "revisionSummary": r.get("revisionSummary") or "",
            }
            for r in execution.get("sourceRevisions") or []
        ],
    }


def _stage_declaration(stage: Dict[str, Any]) -> Dict[str, Any]:
    actions = stage.get("actions")
    return _compact(
        {
            "name": stage.get("name"),
            "actions": None
            if actions is None
            else [
                _compact(
                    {
                        "name": a.get("name"),
                        "actionTypeId": a.get("actionTypeId"),
                        "runOrder": a.get("runOrder"),
                        "configuration": a.get("configuration"),
                        "outputArtifacts": a.get("outputArtifacts"),
                        "inputArtifacts": a.get("inputArtifacts"),
                        "region": a.get("region"),
                        "namespace": a.get("namespace"),
                    }
                )
                for a in actions
            ],
        }
    )

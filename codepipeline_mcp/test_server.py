import asyncio
import json
import logging
from unittest.mock import MagicMock, patch

import pytest
from mcp.shared.exceptions import McpError

from codepipeline_mcp import server
from codepipeline_mcp.config import load_env_file, load_settings


def _run(coro):
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


def _audit_payloads(caplog):
    return [
        json.loads(record.getMessage().split("[AUDIT] ", 1)[1])
        for record in caplog.records
        if record.getMessage().startswith("[AUDIT] ")
    ]


def test_list_tools_advertises_catalog_schemas():
    tools = _run(server.list_tools())

    by_name = {tool.name: tool for tool in tools}
    assert len(by_name) == 12
    assert by_name["list_pipelines"].inputSchema == {"type": "object", "properties": {}}
    assert by_name["retry_stage"].inputSchema["required"] == [
        "pipelineName",
        "stageName",
        "pipelineExecutionId",
    ]


def test_list_resources_is_empty():
    assert _run(server.list_resources()) == []


def test_call_tool_dispatches_and_audits_success(caplog):
    adapter = MagicMock()
    adapter.list_pipelines.return_value = [{"name": "web", "version": 1, "created": "", "updated": ""}]

    with patch.object(server, "_adapter", adapter), caplog.at_level(logging.INFO):
        content = _run(server.call_tool("list_pipelines", {}))

    assert json.loads(content[0].text)["pipelines"][0]["name"] == "web"
    audit = _audit_payloads(caplog)
    assert len(audit) == 1
    assert audit[0]["tool_name"] == "list_pipelines"
    assert audit[0]["result_status"] == "success"
    assert audit[0]["error_code"] == ""
    assert len(audit[0]["input_hash"]) == 64


def test_call_tool_audits_unknown_tool_as_error(caplog):
    with patch.object(server, "_adapter", MagicMock()), caplog.at_level(logging.INFO):
        content = _run(server.call_tool("nonexistent_op", None))

    body = json.loads(content[0].text)
    assert body["error"]["code"] == "UNKNOWN_OPERATION"
    audit = _audit_payloads(caplog)
    assert audit[0]["result_status"] == "error"
    assert audit[0]["error_code"] == "UNKNOWN_OPERATION"


def test_call_tool_reports_adapter_initialization_failure():
    with patch.object(server, "_adapter", None), patch.object(
        server.CodePipelineAdapter, "from_settings", side_effect=RuntimeError("no credentials")
    ):
        content = _run(server.call_tool("list_pipelines", {}))

    body = json.loads(content[0].text)
    assert body["error"]["code"] == "EXECUTION_ERROR"
    assert "no credentials" in body["error"]["message"]


def test_settings_default_region_and_masking():
    settings = load_settings({})

    assert settings.region == "us-west-2"
    assert settings.max_attempts == 1
    assert settings.has_static_credentials is False
    assert settings.describe()["AWS_ACCESS_KEY_ID"] == "undefined"


def test_settings_static_credentials_require_both_keys():
    partial = load_settings({"AWS_REGION": "eu-west-1", "AWS_ACCESS_KEY_ID": "AKIA"})
    full = load_settings(
        {
            "AWS_ACCESS_KEY_ID": "AKIA",
            "AWS_SECRET_ACCESS_KEY": "secret",
            "CODEPIPELINE_MCP_MAX_ATTEMPTS": "3",
        }
    )

    assert partial.region == "eu-west-1"
    assert partial.has_static_credentials is False
    assert full.has_static_credentials is True
    assert full.max_attempts == 3
    assert full.describe()["AWS_SECRET_ACCESS_KEY"] == "***"


def test_invalid_max_attempts_falls_back_to_default():
    assert load_settings({"CODEPIPELINE_MCP_MAX_ATTEMPTS": "many"}).max_attempts == 1


def test_read_resource_reports_no_resources():
    with pytest.raises(McpError) as excinfo:
        _run(server.read_resource("projects://anything"))

    assert excinfo.value.error.message == "No resources available"


def test_unknown_log_level_falls_back_to_info():
    assert load_settings({"CODEPIPELINE_MCP_LOG_LEVEL": "chatty"}).log_level == "INFO"
    assert load_settings({"CODEPIPELINE_MCP_LOG_LEVEL": "debug"}).log_level == "DEBUG"


def test_env_file_in_working_directory_sets_region(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("AWS_REGION=eu-west-1\n")
    monkeypatch.chdir(tmp_path)
    # setenv first so monkeypatch removes the value dotenv writes on teardown
    monkeypatch.setenv("AWS_REGION", "placeholder")
    monkeypatch.delenv("AWS_REGION")

    assert load_env_file() is True
    assert load_settings().region == "eu-west-1"


def test_env_file_does_not_override_existing_environment(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("AWS_REGION=eu-west-1\n")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("AWS_REGION", "ap-south-1")

    load_env_file()

    assert load_settings().region == "ap-south-1"


def test_missing_env_file_is_skipped(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert load_env_file() is False

"""Unit tests for boto3 client construction."""

from __future__ import annotations

from unittest.mock import patch

from codepipeline_mcp import aws_clients
from codepipeline_mcp.config import Settings


def test_clients_use_region_without_static_credentials():
    with patch.object(aws_clients.boto3, "client") as mock_client:
        aws_clients.build_codepipeline_client(Settings(region="eu-central-1"))

    args, kwargs = mock_client.call_args
    assert args == ("codepipeline",)
    assert kwargs["region_name"] == "eu-central-1"
    assert "aws_access_key_id" not in kwargs
    assert kwargs["config"].retries == {"max_attempts": 1, "mode": "standard"}


def test_clients_pass_static_credentials_when_configured():
    settings = Settings(access_key_id="AKIA", secret_access_key="secret", max_attempts=2)

    with patch.object(aws_clients.boto3, "client") as mock_client:
        aws_clients.build_cloudwatch_client(settings)

    args, kwargs = mock_client.call_args
    assert args == ("cloudwatch",)
    assert kwargs["aws_access_key_id"] == "AKIA"
    assert kwargs["aws_secret_access_key"] == "secret"
    assert kwargs["config"].retries["max_attempts"] == 2

"""aws_clients.py — boto3 client construction from explicit Settings.

Clients are built once by the server entry point and handed to the
adapter; there are no module-level singletons.
"""

from __future__ import annotations

from typing import Any, Dict

import boto3
from botocore.config import Config

from .config import Settings


def _client_kwargs(settings: Settings) -> Dict[str, Any]:
    kwargs: Dict[str, Any] = {
        "region_name": settings.region,
        "config": Config(retries={"max_attempts": settings.max_attempts, "mode": "standard"}),
    }
    # Without a static key pair boto3 falls back to its default credential chain.
    if settings.has_static_credentials:
        kwargs["aws_access_key_id"] = settings.access_key_id
        kwargs["aws_secret_access_key"] = settings.secret_access_key
    return kwargs


def build_codepipeline_client(settings: Settings):
    """Create the CodePipeline management client."""
    return boto3.client("codepipeline", **_client_kwargs(settings))


def build_cloudwatch_client(settings: Settings):
    """Create the CloudWatch metrics client."""
    return boto3.client("cloudwatch", **_client_kwargs(settings))

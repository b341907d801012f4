"""config.py — Environment-driven settings, server identity and tool defaults.

Settings are read once at process start and passed explicitly to the AWS
client factory; nothing here mutates SDK-wide configuration.
"""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import load_dotenv

SERVER_NAME = "aws-codepipeline-mcp-server"
SERVER_VERSION = "1.0.0"
SERVER_INSTRUCTIONS = "AWS CodePipeline MCP Server for interacting with AWS CodePipeline services"

DEFAULT_REGION = "us-west-2"
DEFAULT_MAX_ATTEMPTS = 1
DEFAULT_LOG_LEVEL = "INFO"

# Tool defaults
DEFAULT_STOP_REASON = "Stopped by user"
RETRY_MODE_FAILED_ACTIONS = "FAILED_ACTIONS"
DEFAULT_METRICS_PERIOD_SECONDS = 86400
DEFAULT_METRICS_LOOKBACK_DAYS = 7
METRICS_EXECUTION_SAMPLE_SIZE = 20
METRICS_NAMESPACE = "AWS/CodePipeline"
WEBHOOK_AUTHENTICATION_TYPES = ("GITHUB_HMAC", "IP", "UNAUTHENTICATED")

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Settings:
    region: str = DEFAULT_REGION
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def has_static_credentials(self) -> bool:
        return bool(self.access_key_id and self.secret_access_key)

    def describe(self) -> Dict[str, str]:
        """Loggable view of the settings with credentials masked."""
        return {
            "AWS_REGION": self.region,
            "AWS_ACCESS_KEY_ID": "***" if self.access_key_id else "undefined",
            "AWS_SECRET_ACCESS_KEY": "***" if self.secret_access_key else "undefined",
            "max_attempts": str(self.max_attempts),
            "log_level": self.log_level,
        }


def _env_int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = str(env.get(key) or "").strip()
    if not raw:
        return default
    try:
        return max(1, int(raw))
    except ValueError:
        logger.warning("Ignoring non-integer %s=%r; using %d", key, raw, default)
        return default


def _env_log_level(env: Mapping[str, str], key: str, default: str) -> str:
    raw = str(env.get(key) or "").strip().upper()
    if not raw:
        return default
    if not isinstance(logging.getLevelName(raw), int):
        logger.warning("Ignoring unknown log level %s=%r; using %s", key, raw, default)
        return default
    return raw


def load_env_file(path: Optional[str] = None) -> bool:
    """Load ``.env`` from the working directory (or ``path``) into os.environ.

    Variables already set in the environment win over the file.
    """
    env_path = Path(path) if path else Path.cwd() / ".env"
    if not env_path.is_file():
        logger.warning("No .env file found at %s", env_path)
        return False
    logger.info("Loading environment variables from %s", env_path)
    return load_dotenv(dotenv_path=env_path, override=False)


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build Settings from environment variables (``os.environ`` by default)."""
    source = os.environ if env is None else env
    return Settings(
        region=str(source.get("AWS_REGION") or DEFAULT_REGION).strip(),
        access_key_id=str(source.get("AWS_ACCESS_KEY_ID") or "").strip() or None,
        secret_access_key=str(source.get("AWS_SECRET_ACCESS_KEY") or "").strip() or None,
        max_attempts=_env_int(source, "CODEPIPELINE_MCP_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS),
        log_level=_env_log_level(source, "CODEPIPELINE_MCP_LOG_LEVEL", DEFAULT_LOG_LEVEL),
    )

"""Backend selection for the issue tracker."""

from __future__ import annotations

import os

from .config import ConfigError, MirrorConfig
from .github_cli import GhCliClient
from .github_rest import DEFAULT_API_URL, GitHubRestClient
from .models import IssueTracker

TOKEN_ENV_VARS = ("REVIEW_MIRROR_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN")


def select_token() -> str | None:
    for name in TOKEN_ENV_VARS:
        raw = os.environ.get(name)
        if raw is None:
            continue
        token = raw.strip()
        if token:
            return token
    return None


def _env_flag(name: str) -> bool:
    value = os.environ.get(name)
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _clean_env(name: str, default: str) -> str:
    value = os.environ.get(name)
    if value is None:
        return default
    cleaned = value.strip()
    return cleaned or default


def build_tracker(cfg: MirrorConfig) -> IssueTracker:
    """REST when a token is available (or forced), otherwise the ``gh`` CLI."""
    if cfg.backend == "cli" or _env_flag("REVIEW_MIRROR_REST_DISABLED"):
        return GhCliClient()
    token = select_token()
    if token:
        base_url = _clean_env("REVIEW_MIRROR_GITHUB_API", DEFAULT_API_URL)
        return GitHubRestClient(token=token, base_url=base_url)
    if cfg.backend == "rest":
        raise ConfigError(
            "backend 'rest' requires one of " + ", ".join(TOKEN_ENV_VARS)
        )
    return GhCliClient()


__all__ = ["TOKEN_ENV_VARS", "build_tracker", "select_token"]

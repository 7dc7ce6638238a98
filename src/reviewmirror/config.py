from __future__ import annotations

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, cast

import yaml

from .poster import DEFAULT_ATTEMPTS, DEFAULT_BACKOFF_STEP
from .selector import DEFAULT_ADDITIONAL_MARKER, DEFAULT_FOOTER_MARKER
from .versioning import DEFAULT_SEARCH_LIMIT

CONFIG_DEFAULT = "review_mirror.config.yaml"
DEFAULT_BOT_LOGIN = "greptile-apps[bot]"
BACKENDS = ("auto", "rest", "cli")

_REPO_RE = re.compile(r"^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$")


class ConfigError(RuntimeError):
    pass


@dataclass
class MirrorConfig:
    upstream_repo: str | None
    downstream_repo: str | None
    base_branch: str | None
    author: str | None
    bot_login: str = DEFAULT_BOT_LOGIN
    search_limit: int = DEFAULT_SEARCH_LIMIT
    additional_marker: str = DEFAULT_ADDITIONAL_MARKER
    footer_marker: str = DEFAULT_FOOTER_MARKER
    # Posting / pacing
    post_attempts: int = DEFAULT_ATTEMPTS
    backoff_step: float = DEFAULT_BACKOFF_STEP
    comment_delay: float = 1.0
    backend: str = "auto"
    # Logging configuration
    logging_json_enabled: bool = False
    logging_level: str = "INFO"
    summary_json: str = "review_mirror_summary.json"
    source_file: Path | None = None

    def validate(self) -> None:
        missing = [
            name
            for name, value in (
                ("upstream.repo", self.upstream_repo),
                ("downstream.repo", self.downstream_repo),
                ("upstream.base_branch", self.base_branch),
                ("upstream.author", self.author),
                ("upstream.bot_login", self.bot_login),
            )
            if not value
        ]
        if missing:
            raise ConfigError(f"Missing required configuration: {', '.join(missing)}")
        for name, repo in (
            ("upstream.repo", self.upstream_repo),
            ("downstream.repo", self.downstream_repo),
        ):
            if not _REPO_RE.match(cast(str, repo)):
                raise ConfigError(f"{name} must look like owner/repo, got {repo!r}")
        if self.post_attempts < 1:
            raise ConfigError("posting.attempts must be >= 1")
        if self.backoff_step < 0 or self.comment_delay < 0:
            raise ConfigError("posting delays must not be negative")
        if self.search_limit < 1:
            raise ConfigError("downstream.search_limit must be >= 1")
        if self.backend not in BACKENDS:
            raise ConfigError(f"backend must be one of {', '.join(BACKENDS)}")


def _resolve_env_var(value: Any) -> Any:
    """Resolve environment variable if value starts with $."""
    if isinstance(value, str) and value.startswith('$'):
        return os.getenv(value[1:], value)  # Fallback to original if not found
    return value


def _section(raw: dict[str, Any], name: str) -> dict[str, Any]:
    section = raw.get(name, {}) or {}
    if not isinstance(section, dict):
        raise ConfigError(f'Section {name!r} must be a mapping')
    return cast(dict[str, Any], section)


def _opt_str(value: Any) -> str | None:
    value = _resolve_env_var(value)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def config_from_mapping(raw: dict[str, Any], source_file: Path | None = None) -> MirrorConfig:
    upstream = _section(raw, 'upstream')
    downstream = _section(raw, 'downstream')
    markers = _section(raw, 'markers')
    posting = _section(raw, 'posting')
    logging_config = _section(raw, 'logging')
    out = _section(raw, 'output')
    try:
        return MirrorConfig(
            upstream_repo=_opt_str(upstream.get('repo')),
            downstream_repo=_opt_str(downstream.get('repo')),
            base_branch=_opt_str(upstream.get('base_branch')),
            author=_opt_str(upstream.get('author')),
            bot_login=_opt_str(upstream.get('bot_login')) or DEFAULT_BOT_LOGIN,
            search_limit=int(downstream.get('search_limit', DEFAULT_SEARCH_LIMIT)),
            additional_marker=markers.get('additional_comments', DEFAULT_ADDITIONAL_MARKER),
            footer_marker=markers.get('settings_footer', DEFAULT_FOOTER_MARKER),
            post_attempts=int(posting.get('attempts', DEFAULT_ATTEMPTS)),
            backoff_step=float(posting.get('backoff_step', DEFAULT_BACKOFF_STEP)),
            comment_delay=float(posting.get('comment_delay', 1.0)),
            backend=str(raw.get('backend', 'auto')).lower(),
            logging_json_enabled=bool(logging_config.get('json_enabled', False)),
            logging_level=str(logging_config.get('level', 'INFO')),
            summary_json=out.get('summary_json', 'review_mirror_summary.json'),
            source_file=source_file,
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f'Invalid configuration value: {exc}') from exc


def load_config(path: str | Path) -> MirrorConfig:
    p = Path(path)
    if not p.exists():
        raise ConfigError(f'Configuration file not found: {p}')
    try:
        raw = yaml.safe_load(p.read_text(encoding='utf-8')) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f'Invalid YAML in {p}: {exc}') from exc
    if not isinstance(raw, dict):
        raise ConfigError(f'Configuration root must be a mapping: {p}')
    return config_from_mapping(cast(dict[str, Any], raw), source_file=p)


__all__ = [
    "CONFIG_DEFAULT",
    "ConfigError",
    "MirrorConfig",
    "config_from_mapping",
    "load_config",
]

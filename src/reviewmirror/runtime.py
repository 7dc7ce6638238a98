"""Runtime helpers for review-mirror CLI orchestration."""

from __future__ import annotations

import time
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from reviewmirror.config import CONFIG_DEFAULT, MirrorConfig, config_from_mapping, load_config
from reviewmirror.logging import get_logger

_OVERRIDES = (
    ("upstream", "upstream_repo"),
    ("downstream", "downstream_repo"),
    ("author", "author"),
    ("base", "base_branch"),
    ("bot", "bot_login"),
)


class _HandlerCallable(Protocol):
    def __call__(self) -> Any: ...


def prepare_config(
    args: Any, *, loader: Callable[[str], MirrorConfig] = load_config
) -> MirrorConfig:
    """Load config for the argparse namespace, apply flag overrides and validate.

    A missing file is only tolerated for the default path, so a run driven
    entirely by flags needs no YAML at all.
    """
    if not hasattr(args, "config"):
        raise AttributeError("Command namespace is missing 'config' attribute")
    if args.config == CONFIG_DEFAULT and not Path(args.config).exists():
        cfg = config_from_mapping({})
    else:
        cfg = loader(args.config)
    for flag, attr in _OVERRIDES:
        value = getattr(args, flag, None)
        if value:
            setattr(cfg, attr, value)
    if getattr(args, "json_logs", False):
        cfg.logging_json_enabled = True
    if getattr(args, "comment_delay", None) is not None:
        cfg.comment_delay = float(args.comment_delay)
    cfg.validate()
    return cfg


def execute_command(handler: _HandlerCallable, command: str) -> int:
    """Execute a command handler, logging its exit code and duration."""
    start = time.monotonic()
    exit_code = 1
    try:
        result = handler()
        exit_code = int(result) if result is not None else 0
        return exit_code
    finally:
        duration = max(0.0, time.monotonic() - start)
        get_logger().log_performance(
            f"command_{command}", duration * 1000, exit_code=exit_code
        )


__all__ = ["prepare_config", "execute_command"]

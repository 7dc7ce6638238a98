"""review-mirror CLI.

Subcommands:
  sync    -> mirror new bot review comments into versioned tracking issues
  status  -> show the latest synced version per qualifying pull request
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Any

from reviewmirror.config import CONFIG_DEFAULT, ConfigError, MirrorConfig
from reviewmirror.errors import TrackerError, redact
from reviewmirror.logging import configure_logging
from reviewmirror.models import IssueTracker
from reviewmirror.orchestrator import STATUS_CREATED, ReviewMirror, write_summary
from reviewmirror.runtime import execute_command, prepare_config
from reviewmirror.trackers import build_tracker
from reviewmirror.ux import (
    print_error,
    print_operation_status,
    print_summary_box,
    print_warning,
)

_MAX_HELP_WIDTH = 100


class _HelpFormatter(argparse.HelpFormatter):
    def __init__(self, prog: str) -> None:
        super().__init__(prog, max_help_position=30, width=_MAX_HELP_WIDTH)


class _FormatterArgumentParser(argparse.ArgumentParser):
    def __init__(self, *args: Any, **kwargs: Any) -> None:
        kwargs.setdefault("formatter_class", _HelpFormatter)
        super().__init__(*args, **kwargs)


def _add_target_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--config", default=CONFIG_DEFAULT)
    p.add_argument("--upstream", help="Repository whose pull requests are reviewed (owner/repo)")
    p.add_argument("--downstream", help="Repository receiving tracking issues (owner/repo)")
    p.add_argument("--author", help="Only mirror pull requests opened by this login")
    p.add_argument("--base", help="Only mirror pull requests targeting this base branch")
    p.add_argument("--bot", help="Login of the review bot whose comments are mirrored")
    p.add_argument("--json-logs", action="store_true", help="Emit JSON log lines")


def _build_parser() -> argparse.ArgumentParser:
    p = _FormatterArgumentParser(
        prog="review-mirror",
        description="Mirror bot code-review comments into versioned tracking issues",
    )
    p.add_argument(
        "--quiet",
        action="store_true",
        help="Suppress informational output (env: REVIEW_MIRROR_QUIET=1)",
    )
    sub = p.add_subparsers(
        dest="cmd",
        required=True,
        parser_class=_FormatterArgumentParser,
        metavar="<command>",
    )

    ps = sub.add_parser("sync", help="Create tracking issues for new review comments")
    _add_target_args(ps)
    ps.add_argument("--dry-run", action="store_true", help="Resolve and hash only; create nothing")
    ps.add_argument("--summary-json", help="Write the run summary to this path")
    ps.add_argument(
        "--comment-delay",
        type=float,
        help="Seconds to pause between posted inline comments",
    )

    pst = sub.add_parser("status", help="Show latest synced version per pull request")
    _add_target_args(pst)
    return p


def _quiet(args: argparse.Namespace) -> bool:
    return bool(args.quiet or os.environ.get("REVIEW_MIRROR_QUIET") == "1")


def _cmd_sync(cfg: MirrorConfig, tracker: IssueTracker, args: argparse.Namespace) -> int:
    mirror = ReviewMirror(cfg, tracker)
    if not _quiet(args):
        mode = "DRY RUN" if args.dry_run else "LIVE"
        print_operation_status("sync", "starting", f"mode={mode}")

    summary = mirror.run(dry_run=args.dry_run)
    write_summary(summary, args.summary_json or cfg.summary_json)
    totals = summary.totals

    if _quiet(args):
        print("[sync] totals", json.dumps(totals))
        return 0
    if not summary.results:
        print_operation_status("sync", "completed", "no qualifying pull requests")
        return 0
    for result in summary.results:
        details = f"v{result.version}" if result.version else ""
        if result.total:
            details += f" posted {result.posted}/{result.total}"
        print_operation_status(f"PR #{result.pr_number}", result.status, details.strip())
        if result.status == STATUS_CREATED and result.shortfall:
            print_warning(
                f"PR #{result.pr_number}: {result.shortfall} comment(s) could not be posted"
            )
    print_summary_box(
        "Sync Summary",
        [
            ("Pull requests", totals["pull_requests"]),
            ("Issues created", totals["created"]),
            ("Planned (dry run)", totals["planned"]),
            ("Unchanged", totals["skipped_unchanged"]),
            ("No new comments", totals["skipped_empty"]),
            ("Failed", totals["failed"]),
            ("Comments posted", f"{totals['comments_posted']}/{totals['comments_total']}"),
        ],
    )
    print_operation_status("sync", "completed")
    return 0


def _cmd_status(cfg: MirrorConfig, tracker: IssueTracker, args: argparse.Namespace) -> int:
    mirror = ReviewMirror(cfg, tracker)
    rows = mirror.status()
    if not rows:
        print(f"No open PRs targeting {cfg.base_branch} by {cfg.author}.")
        return 0
    for pr, state, error in rows:
        if state is None:
            print_operation_status(f"PR #{pr.number}", "error", error or "")
            continue
        if not state.has_prior:
            print(f"PR #{pr.number} ({pr.branch}): never synced")
            continue
        print(
            f"PR #{pr.number} ({pr.branch}): version {state.version} "
            f"issue #{state.issue_number} [{state.issue_state}] "
            f"synced_at={state.last_synced_at or '-'}"
        )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    try:
        cfg = prepare_config(args)
        configure_logging(
            json_logging=cfg.logging_json_enabled,
            level="WARNING" if _quiet(args) else cfg.logging_level,
        )
        tracker = build_tracker(cfg)
    except ConfigError as exc:
        print_error(f"Configuration error: {exc}")
        return 2
    handlers = {
        "sync": lambda: _cmd_sync(cfg, tracker, args),
        "status": lambda: _cmd_status(cfg, tracker, args),
    }
    handler = handlers.get(args.cmd)
    if handler is None:  # pragma: no cover - argparse enforces valid choices
        parser.print_help()
        return 1
    try:
        return execute_command(handler, args.cmd)
    except TrackerError as exc:
        print_error(f"{args.cmd} failed: {redact(str(exc))}")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

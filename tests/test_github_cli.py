from __future__ import annotations

import json
import subprocess
from typing import Any

import pytest

from reviewmirror.errors import GitHubCLIError
from reviewmirror.github_cli import GhCliClient
from reviewmirror.poster import CommentPoster


class _FakeGh:
    def __init__(self, outputs: list[Any]):
        self.outputs = outputs
        self.commands: list[list[str]] = []

    def __call__(self, cmd: list[str], **kwargs: Any) -> str:
        self.commands.append(cmd)
        out = self.outputs.pop(0)
        if isinstance(out, Exception):
            raise out
        return out if isinstance(out, str) else json.dumps(out)


@pytest.fixture
def fake_gh(monkeypatch):
    def install(outputs: list[Any]) -> _FakeGh:
        fake = _FakeGh(outputs)
        monkeypatch.setattr(subprocess, "check_output", fake)
        return fake

    return install


def test_get_issue_builds_api_command(fake_gh):
    fake = fake_gh([{"number": 3, "title": "Code Review 1 - x", "state": "open", "body": "b"}])
    issue = GhCliClient(gh_path="gh").get_issue("acme/app-dev", 3)
    assert issue.body == "b"
    assert fake.commands[0] == ["gh", "api", "-X", "GET", "repos/acme/app-dev/issues/3"]


def test_create_issue_passes_raw_fields(fake_gh):
    fake = fake_gh([{"number": 11}])
    number = GhCliClient(gh_path="gh").create_issue("acme/app-dev", title="T", body="@not-a-file")
    assert number == 11
    cmd = fake.commands[0]
    assert cmd[:5] == ["gh", "api", "-X", "POST", "repos/acme/app-dev/issues"]
    assert ["-f", "title=T"] == cmd[5:7]
    assert ["-f", "body=@not-a-file"] == cmd[7:9]


def test_search_reads_items_and_pages(fake_gh):
    fake = fake_gh([{"items": [{"number": 1, "title": "Code Review 1 - x", "state": "open", "body": ""}]}])
    found = GhCliClient(gh_path="gh").search_issues("acme/app-dev", "q", limit=100)
    assert [i.number for i in found] == [1]
    assert "q=repo:acme/app-dev is:issue q" in fake.commands[0]
    assert "page=1" in fake.commands[0]


def test_pull_requests_filtered_by_author(fake_gh):
    fake_gh(
        [
            [
                {"number": 1, "head": {"ref": "a"}, "user": {"login": "dev"}},
                {"number": 2, "head": {"ref": "b"}, "user": {"login": "bot"}},
            ]
        ]
    )
    prs = GhCliClient(gh_path="gh").list_open_pull_requests("acme/app", base="staging", author="dev")
    assert [p.branch for p in prs] == ["a"]


def test_failures_raise_cli_error(fake_gh):
    err = subprocess.CalledProcessError(1, ["gh"], output="HTTP 422: Validation Failed")
    fake_gh([err])
    with pytest.raises(GitHubCLIError) as excinfo:
        GhCliClient(gh_path="gh").create_issue_comment("acme/app-dev", 3, "x")
    assert "Validation Failed" in (excinfo.value.output or "")


def test_transient_read_failure_is_retried(fake_gh, monkeypatch):
    monkeypatch.setattr("reviewmirror.retry.time.sleep", lambda _s: None)
    err = subprocess.CalledProcessError(1, ["gh"], output="API rate limit exceeded")
    fake = fake_gh([err, {"number": 3, "title": "t", "state": "open", "body": "b"}])
    assert GhCliClient(gh_path="gh").get_issue("acme/app-dev", 3).body == "b"
    assert len(fake.commands) == 2


def test_writes_are_sent_once(fake_gh, monkeypatch):
    monkeypatch.setattr("reviewmirror.retry.time.sleep", lambda _s: None)
    err = subprocess.CalledProcessError(1, ["gh"], output="HTTP 502: Bad Gateway, rate limit")
    fake = fake_gh([err])
    with pytest.raises(GitHubCLIError):
        GhCliClient(gh_path="gh").create_issue("acme/app-dev", title="T", body="b")
    assert len(fake.commands) == 1


def test_poster_attempt_runs_one_gh_post(fake_gh):
    errors = [
        subprocess.CalledProcessError(1, ["gh"], output="API rate limit exceeded") for _ in range(3)
    ]
    fake = fake_gh(errors)
    sleeps: list[float] = []
    poster = CommentPoster(GhCliClient(gh_path="gh"), "acme/app-dev", sleep=sleeps.append)
    assert poster.post(3, "x") is False
    assert len(fake.commands) == 3
    assert sleeps == [2.0, 4.0]


def test_non_json_output_is_an_error(fake_gh):
    fake_gh(["<html>"])
    with pytest.raises(GitHubCLIError):
        GhCliClient(gh_path="gh").get_issue("acme/app-dev", 1)

"""Tests for webhook parsing and the signature check."""

import pytest

from bors.events import (
    CommentPosted,
    PullRequestEdited,
    PullRequestOpened,
    PullRequestPushed,
    PushToBranch,
    WorkflowStarted,
    WorkflowStatusChanged,
)
from bors.github.security import compute_signature, verify_signature
from bors.github.webhook import WebhookParseError, parse_webhook_event
from bors.models import MergeableState, WorkflowStatus, WorkflowType
from tests.conftest import REPO

REPOSITORY = {"full_name": "rust-lang/bors"}
INSTALLATION = {"id": 42}


def pull_request_payload(**overrides):
    data = {
        "number": 3,
        "title": "Fix it",
        "user": {"login": "contributor", "id": 9},
        "head": {"ref": "fix", "sha": "head-sha"},
        "base": {"ref": "main", "sha": "base-sha"},
        "mergeable_state": "dirty",
        "labels": [{"name": "bug"}],
    }
    data.update(overrides)
    return data


def test_signature():
    body = b'{"zen": "Keep it logically awesome."}'
    signature = compute_signature(body, "secret")

    assert verify_signature(body, "secret", signature)
    assert not verify_signature(body, "other", signature)
    assert not verify_signature(body + b" ", "secret", signature)
    assert not verify_signature(body, "secret", None)


def test_comment_on_pull_request():
    event = parse_webhook_event(
        "issue_comment",
        {
            "action": "created",
            "repository": REPOSITORY,
            "installation": INSTALLATION,
            "issue": {"number": 3, "pull_request": {}},
            "comment": {"body": "@bors r+", "user": {"login": "alice", "id": 1}},
        },
        delivery_id="d-1",
    )

    assert isinstance(event, CommentPosted)
    assert event.repository == REPO
    assert event.installation_id == 42
    assert event.delivery_id == "d-1"
    assert event.pr_number == 3
    assert event.author.login == "alice"
    assert event.text == "@bors r+"


@pytest.mark.parametrize(
    "action, issue",
    [
        ("created", {"number": 3}),
        ("edited", {"number": 3, "pull_request": {}}),
    ],
)
def test_ignored_comments(action, issue):
    payload = {
        "action": action,
        "repository": REPOSITORY,
        "issue": issue,
        "comment": {"body": "@bors r+", "user": {"login": "alice"}},
    }

    assert parse_webhook_event("issue_comment", payload) is None


@pytest.mark.parametrize(
    "action, event_type",
    [
        ("opened", PullRequestOpened),
        ("reopened", PullRequestOpened),
        ("edited", PullRequestEdited),
        ("synchronize", PullRequestPushed),
    ],
)
def test_pull_request_actions(action, event_type):
    payload = {
        "action": action,
        "repository": REPOSITORY,
        "pull_request": pull_request_payload(),
    }

    event = parse_webhook_event("pull_request", payload)

    assert isinstance(event, event_type)
    assert event.pull_request.number == 3
    assert event.pull_request.base.name == "main"
    assert event.pull_request.mergeable_state is MergeableState.HAS_CONFLICTS
    assert event.pull_request.labels == ["bug"]


def test_pull_request_base_change():
    payload = {
        "action": "edited",
        "repository": REPOSITORY,
        "pull_request": pull_request_payload(),
        "changes": {"base": {"ref": {"from": "old"}, "sha": {"from": "old-sha"}}},
    }

    event = parse_webhook_event("pull_request", payload)

    assert event.from_base_sha == "old-sha"


def test_pull_request_closed_is_ignored():
    payload = {
        "action": "closed",
        "repository": REPOSITORY,
        "pull_request": pull_request_payload(),
    }

    assert parse_webhook_event("pull_request", payload) is None


def test_push_to_branch():
    event = parse_webhook_event(
        "push",
        {"ref": "refs/heads/main", "after": "new-sha", "repository": REPOSITORY},
    )

    assert event == PushToBranch(repository=REPO, branch="main", sha="new-sha")


@pytest.mark.parametrize(
    "payload",
    [
        {"ref": "refs/tags/v1", "after": "sha"},
        {"ref": "refs/heads/gone", "after": "0" * 40, "deleted": True},
    ],
)
def test_ignored_pushes(payload):
    assert parse_webhook_event("push", {**payload, "repository": REPOSITORY}) is None


def workflow_run_payload(action, conclusion=None):
    return {
        "action": action,
        "repository": REPOSITORY,
        "workflow_run": {
            "id": 2**63 + 5,
            "name": "CI",
            "head_branch": "automation/bors/try",
            "head_sha": "merge-sha",
            "html_url": "https://github.com/rust-lang/bors/actions/runs/1",
            "conclusion": conclusion,
        },
    }


def test_workflow_run_started():
    event = parse_webhook_event("workflow_run", workflow_run_payload("requested"))

    assert isinstance(event, WorkflowStarted)
    assert event.run_id == 2**63 + 5
    assert event.workflow_type is WorkflowType.GITHUB


@pytest.mark.parametrize(
    "conclusion, status",
    [
        ("success", WorkflowStatus.SUCCESS),
        ("skipped", WorkflowStatus.SUCCESS),
        ("failure", WorkflowStatus.FAILURE),
        ("cancelled", WorkflowStatus.FAILURE),
        ("timed_out", WorkflowStatus.FAILURE),
    ],
)
def test_workflow_run_completed(conclusion, status):
    event = parse_webhook_event("workflow_run", workflow_run_payload("completed", conclusion))

    assert isinstance(event, WorkflowStatusChanged)
    assert event.status is status


def check_run_payload(action, app_slug="buildkite", conclusion=None):
    return {
        "action": action,
        "repository": REPOSITORY,
        "check_run": {
            "id": 17,
            "name": "buildkite/pipeline",
            "head_sha": "merge-sha",
            "html_url": "https://buildkite.com/1",
            "conclusion": conclusion,
            "app": {"slug": app_slug},
            "check_suite": {"head_branch": "automation/bors/try"},
        },
    }


def test_external_check_run():
    started = parse_webhook_event("check_run", check_run_payload("created"))
    finished = parse_webhook_event("check_run", check_run_payload("completed", conclusion="success"))

    assert isinstance(started, WorkflowStarted)
    assert started.workflow_type is WorkflowType.EXTERNAL
    assert isinstance(finished, WorkflowStatusChanged)
    assert finished.status is WorkflowStatus.SUCCESS


def test_github_actions_check_run_is_ignored():
    payload = check_run_payload("created", app_slug="github-actions")

    assert parse_webhook_event("check_run", payload) is None


def test_unsupported_event_is_ignored():
    assert parse_webhook_event("star", {"repository": REPOSITORY}) is None


@pytest.mark.parametrize(
    "event_type, payload",
    [
        ("push", {"repository": REPOSITORY}),
        ("push", {"ref": "refs/heads/main", "after": "x", "repository": {"full_name": "nope"}}),
        ("issue_comment", {"action": "created", "repository": REPOSITORY}),
    ],
)
def test_malformed_payloads(event_type, payload):
    with pytest.raises(WebhookParseError):
        parse_webhook_event(event_type, payload)

"""Unit tests for pull request event loading."""

import json

import pytest

from review_app_action.event import (
    EventSource,
    IgnoreEventError,
    PullRequestAction,
    build_pull_request_event,
    load_github_event,
)


def test_builds_event_from_opened_payload(make_payload):
    event = build_pull_request_event("pull_request", make_payload("opened"))

    assert event.action is PullRequestAction.OPENED
    assert event.event_source is EventSource.PULL_REQUEST
    assert event.repository == "acme/shop"
    assert event.actor == "octocat"
    assert event.pr_number == 42
    assert event.head_branch == "feature/checkout"
    assert event.head_sha == "0123456789abcdef0123456789abcdef01234567"
    assert event.is_fork is False
    assert event.fork_repo_id is None
    assert event.repo_url == "https://github.com/acme/shop"
    assert event.repo_name == "shop"
    assert event.repo_owner == "acme"
    assert event.label_name is None


def test_labeled_payload_carries_label(make_payload):
    event = build_pull_request_event("pull_request_target", make_payload("labeled", label="review-app"))

    assert event.action is PullRequestAction.LABELED
    assert event.event_source is EventSource.PULL_REQUEST_TARGET
    assert event.label_name == "review-app"


def test_label_ignored_for_other_actions(make_payload):
    event = build_pull_request_event("pull_request", make_payload("opened", label="review-app"))

    assert event.label_name is None


def test_fork_sets_fork_repo_id(make_payload):
    event = build_pull_request_event("pull_request", make_payload("opened", fork=True))

    assert event.is_fork is True
    assert event.fork_repo_id == 2002
    assert event.repo_owner == "contributor"
    assert event.repository == "acme/shop"


@pytest.mark.parametrize("action", ["edited", "assigned", "unlabeled", "review_requested", "ready_for_review"])
def test_unhandled_actions_are_ignored(make_payload, action):
    with pytest.raises(IgnoreEventError, match=action):
        build_pull_request_event("pull_request", make_payload(action))


def test_missing_action_is_ignored(make_payload):
    payload = make_payload()
    del payload["action"]

    with pytest.raises(IgnoreEventError):
        build_pull_request_event("pull_request", payload)


@pytest.mark.parametrize("action", ["reopened", "synchronize", "closed"])
def test_handled_actions_keep_raw_value(make_payload, action):
    event = build_pull_request_event("pull_request", make_payload(action))

    assert event.action.value == action
    assert event.raw_action == action


def test_explicit_actor_overrides_sender(make_payload):
    event = build_pull_request_event("pull_request", make_payload(), actor="maintainer")

    assert event.actor == "maintainer"


def test_event_is_immutable(make_payload):
    event = build_pull_request_event("pull_request", make_payload())

    with pytest.raises(Exception):
        event.pr_number = 7


@pytest.mark.parametrize("event_name", ["push", "issues", None])
def test_other_events_are_ignored(make_payload, event_name):
    with pytest.raises(IgnoreEventError):
        build_pull_request_event(event_name, make_payload())


def test_missing_pull_request_is_invalid(make_payload):
    payload = make_payload()
    del payload["pull_request"]

    with pytest.raises(ValueError, match="pull_request"):
        build_pull_request_event("pull_request", payload)


def test_missing_head_repo_is_invalid(make_payload):
    payload = make_payload()
    payload["pull_request"]["head"]["repo"] = None

    with pytest.raises(ValueError, match="head repository"):
        build_pull_request_event("pull_request", payload)


def test_missing_repository_is_invalid(make_payload):
    payload = make_payload()
    payload["repository"] = {}

    with pytest.raises(ValueError, match="repository metadata"):
        build_pull_request_event("pull_request", payload)


def test_missing_actor_is_invalid(make_payload):
    payload = make_payload()
    payload["sender"] = {}

    with pytest.raises(ValueError, match="triggered"):
        build_pull_request_event("pull_request", payload)


def test_load_github_event(tmp_path, make_payload, monkeypatch):
    event_file = tmp_path / "event.json"
    event_file.write_text(json.dumps(make_payload()))
    monkeypatch.setenv("GITHUB_EVENT_PATH", str(event_file))

    assert load_github_event()["pull_request"]["number"] == 42
    assert load_github_event(event_file)["action"] == "opened"


def test_load_github_event_missing(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_github_event()
    with pytest.raises(FileNotFoundError):
        load_github_event(tmp_path / "absent.json")

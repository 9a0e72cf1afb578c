"""
Shared fixtures for review app action tests.
"""

import copy

import pytest

from review_app_action.config import reset_settings_cache
from review_app_action.event import build_pull_request_event


ENV_VARS = (
    "GITHUB_TOKEN",
    "GITHUB_PA_TOKEN",
    "HEROKU_API_TOKEN",
    "HEROKU_PIPELINE_ID",
    "GITHUB_WEBHOOK_SECRET",
    "COLLABORATOR_PERMISSION",
    "REVIEW_APP_LABEL_NAME",
    "GITHUB_API_BASE_URL",
    "HEROKU_API_BASE_URL",
    "GITHUB_EVENT_PATH",
    "GITHUB_EVENT_NAME",
    "GITHUB_ACTOR",
    "GITHUB_OUTPUT",
    "GITHUB_STEP_SUMMARY",
)

BASE_PAYLOAD = {
    "action": "opened",
    "number": 42,
    "pull_request": {
        "number": 42,
        "title": "Add checkout page",
        "head": {
            "ref": "feature/checkout",
            "sha": "0123456789abcdef0123456789abcdef01234567",
            "repo": {
                "id": 1001,
                "name": "shop",
                "fork": False,
                "html_url": "https://github.com/acme/shop",
                "owner": {"login": "acme"},
            },
        },
        "base": {"ref": "main", "sha": "fedcba9876543210fedcba9876543210fedcba98"},
    },
    "repository": {
        "id": 1001,
        "full_name": "acme/shop",
        "name": "shop",
        "owner": {"login": "acme"},
    },
    "sender": {"login": "octocat"},
}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Isolate tests from runner variables and cached settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


@pytest.fixture
def action_env(monkeypatch):
    """Configure every credential the action needs."""
    values = {
        "GITHUB_TOKEN": "gh-token",
        "GITHUB_PA_TOKEN": "pa-secret-token",
        "HEROKU_API_TOKEN": "heroku-token",
        "HEROKU_PIPELINE_ID": "pipeline-123",
    }
    for name, value in values.items():
        monkeypatch.setenv(name, value)
    return values


@pytest.fixture
def make_payload():
    """Build a pull request webhook payload with optional overrides."""

    def _make(action="opened", *, fork=False, label=None, number=42, sender="octocat"):
        payload = copy.deepcopy(BASE_PAYLOAD)
        payload["action"] = action
        payload["number"] = number
        payload["pull_request"]["number"] = number
        payload["sender"]["login"] = sender
        if fork:
            head_repo = payload["pull_request"]["head"]["repo"]
            head_repo.update({
                "id": 2002,
                "fork": True,
                "html_url": "https://github.com/contributor/shop",
                "owner": {"login": "contributor"},
            })
        if label is not None:
            payload["label"] = {"name": label}
        return payload

    return _make


@pytest.fixture
def make_event(make_payload):
    """Build a PullRequestEvent the reconciler consumes."""

    def _make(action="opened", *, event_name="pull_request", **kwargs):
        return build_pull_request_event(event_name, make_payload(action, **kwargs))

    return _make

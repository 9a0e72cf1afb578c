"""
Unit tests for the webhook receiver.
"""

import json

import pytest
from unittest.mock import AsyncMock, patch

from fastapi.testclient import TestClient

from review_app_action.heroku_client import HerokuAPIError
from review_app_action.main import app
from review_app_action.models.review_app import ReconcileOutcome, ReviewAppStatus, SkipReason
from review_app_action.utils.security import build_github_signature

SECRET = "webhook-secret"


@pytest.fixture
def client(action_env, monkeypatch):
    """Create test client with a configured webhook secret."""
    monkeypatch.setenv("GITHUB_WEBHOOK_SECRET", SECRET)
    return TestClient(app)


@pytest.fixture
def mock_reconcile():
    with patch("review_app_action.webhook.run_reconciliation", new_callable=AsyncMock) as mock:
        mock.return_value = ReconcileOutcome(status=ReviewAppStatus.NEW, created=True)
        yield mock


def deliver(client, payload, *, event="pull_request", secret=SECRET, delivery="delivery-1"):
    body = json.dumps(payload).encode("utf-8")
    headers = {
        "X-GitHub-Event": event,
        "X-GitHub-Delivery": delivery,
        "X-Hub-Signature-256": build_github_signature(secret, body),
        "Content-Type": "application/json",
    }
    return client.post("/webhook", content=body, headers=headers)


def test_health_when_configured(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ready"
    assert body["missing_configuration"] == []
    assert body["collaborator_permissions"] == ["triage", "write", "maintain", "admin"]
    assert body["review_app_label"] == "review-app"
    assert body["heroku_api_base_url"] == "https://api.heroku.com"


def test_health_never_exposes_credentials(client):
    text = client.get("/health").text

    for value in ("gh-token", "pa-secret-token", "heroku-token", "pipeline-123", SECRET):
        assert value not in text


def test_health_lists_missing_configuration(monkeypatch):
    monkeypatch.setenv("HEROKU_API_TOKEN", "heroku-token")

    response = TestClient(app).get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "unconfigured"
    assert response.json()["missing_configuration"] == [
        "GITHUB_TOKEN",
        "GITHUB_PA_TOKEN",
        "HEROKU_PIPELINE_ID",
        "GITHUB_WEBHOOK_SECRET",
    ]


def test_valid_delivery_runs_reconciler(client, mock_reconcile, make_payload):
    response = deliver(client, make_payload("opened"))

    assert response.status_code == 200
    assert response.json() == {"status": "completed", "review_app_status": "new", "skip_reason": None}
    event = mock_reconcile.await_args.args[0]
    assert event.pr_number == 42
    assert event.actor == "octocat"


def test_skip_is_reported(client, mock_reconcile, make_payload):
    mock_reconcile.return_value = ReconcileOutcome(skip_reason=SkipReason.NOT_COLLABORATOR)

    response = deliver(client, make_payload("opened"))

    assert response.json()["skip_reason"] == "not_collaborator"
    assert response.json()["review_app_status"] is None


def test_invalid_signature(client, mock_reconcile, make_payload):
    response = deliver(client, make_payload("opened"), secret="wrong")

    assert response.status_code == 401
    mock_reconcile.assert_not_awaited()


def test_missing_event_header(client, mock_reconcile):
    response = client.post("/webhook", content=b"{}", headers={"X-GitHub-Delivery": "d"})

    assert response.status_code == 400


def test_other_events_are_ignored(client, mock_reconcile, make_payload):
    response = deliver(client, make_payload("opened"), event="push")

    assert response.status_code == 200
    assert response.json()["status"] == "ignored"
    mock_reconcile.assert_not_awaited()


@pytest.mark.parametrize("action", ["edited", "assigned", "unlabeled"])
def test_unhandled_actions_are_ignored(client, mock_reconcile, make_payload, action):
    response = deliver(client, make_payload(action))

    assert response.status_code == 200
    assert response.json() == {"status": "ignored", "reason": f"Pull request action '{action}' not actionable."}
    mock_reconcile.assert_not_awaited()


def test_malformed_payload(client, mock_reconcile):
    response = deliver(client, {"action": "opened", "repository": {"full_name": "acme/shop"}})

    assert response.status_code == 400


def test_upstream_failure_is_bad_gateway(client, mock_reconcile, make_payload):
    mock_reconcile.side_effect = HerokuAPIError("Failed to create review app: status=500", 500)

    response = deliver(client, make_payload("opened"))

    assert response.status_code == 502


def test_missing_secret_is_server_error(action_env, mock_reconcile, make_payload):
    client = TestClient(app)

    response = deliver(client, make_payload("opened"))

    assert response.status_code == 500

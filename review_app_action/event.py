"""Pull request event loading and validation."""

from __future__ import annotations

import json
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict

from pydantic import BaseModel, ConfigDict

from review_app_action.logger import get_logger

logger = get_logger()


class IgnoreEventError(RuntimeError):
    """Raised when an event should be acknowledged but not processed."""


class PullRequestAction(str, Enum):
    OPENED = "opened"
    REOPENED = "reopened"
    SYNCHRONIZE = "synchronize"
    LABELED = "labeled"
    CLOSED = "closed"
    OTHER = "other"

    @classmethod
    def parse(cls, raw: str | None) -> "PullRequestAction":
        try:
            return cls(raw)
        except ValueError:
            return cls.OTHER


_SUPPORTED_ACTIONS = {
    PullRequestAction.OPENED.value,
    PullRequestAction.REOPENED.value,
    PullRequestAction.SYNCHRONIZE.value,
    PullRequestAction.LABELED.value,
    PullRequestAction.CLOSED.value,
}


class EventSource(str, Enum):
    PULL_REQUEST = "pull_request"
    PULL_REQUEST_TARGET = "pull_request_target"


class PullRequestEvent(BaseModel):
    """The parts of a pull request delivery needed to reconcile its review app."""

    model_config = ConfigDict(frozen=True)

    action: PullRequestAction
    event_source: EventSource
    repository: str
    actor: str
    pr_number: int
    head_branch: str
    head_sha: str
    is_fork: bool = False
    fork_repo_id: int | None = None
    repo_url: str
    repo_name: str
    repo_owner: str
    label_name: str | None = None
    raw_action: str | None = None


def load_github_event(event_path: str | Path | None = None) -> Dict[str, Any]:
    """Load the GitHub Actions event payload."""

    path = event_path or os.getenv("GITHUB_EVENT_PATH")
    if not path or not Path(path).exists():
        raise FileNotFoundError("GITHUB_EVENT_PATH not set or file not found")

    with open(path, encoding="utf-8") as f:
        return json.load(f)


def build_pull_request_event(
    event_name: str | None,
    payload: Dict[str, Any],
    *,
    actor: str | None = None,
) -> PullRequestEvent:
    """Validate a pull request payload and build the event the reconciler consumes."""

    try:
        event_source = EventSource(event_name)
    except ValueError as exc:
        raise IgnoreEventError(f"Event '{event_name}' is not handled.") from exc

    raw_action = payload.get("action")
    if raw_action not in _SUPPORTED_ACTIONS:
        raise IgnoreEventError(f"Pull request action '{raw_action}' not actionable.")

    repository = payload.get("repository") or {}
    pull_request = payload.get("pull_request") or {}

    if not pull_request:
        raise ValueError("Event payload missing pull_request.")
    if not pull_request.get("number"):
        raise ValueError("Pull request payload missing number.")
    if not repository.get("full_name"):
        raise ValueError("Pull request event missing repository metadata.")

    head = pull_request.get("head") or {}
    head_repo = head.get("repo") or {}
    if not head.get("ref") or not head.get("sha"):
        raise ValueError("Pull request payload missing head ref or sha.")
    if not head_repo:
        raise ValueError("Pull request head repository is missing (was it deleted?).")
    head_owner = (head_repo.get("owner") or {}).get("login")
    if not head_repo.get("name") or not head_owner:
        raise ValueError("Pull request head repository missing name or owner.")

    action = PullRequestAction.parse(raw_action)
    is_fork = bool(head_repo.get("fork"))
    label_name = None
    if action is PullRequestAction.LABELED:
        label_name = (payload.get("label") or {}).get("name")

    actor = actor or (payload.get("sender") or {}).get("login")
    if not actor:
        raise ValueError("Unable to determine the user who triggered the event.")

    logger.debug(
        f"Building PullRequestEvent: repo={repository.get('full_name')}, PR#{pull_request.get('number')}, "
        f"action={raw_action}, source={event_source.value}, fork={is_fork}, head_sha={head.get('sha')}"
    )

    return PullRequestEvent(
        action=action,
        event_source=event_source,
        repository=repository["full_name"],
        actor=actor,
        pr_number=pull_request["number"],
        head_branch=head["ref"],
        head_sha=head["sha"],
        is_fork=is_fork,
        fork_repo_id=head_repo.get("id") if is_fork else None,
        repo_url=head_repo.get("html_url") or "",
        repo_name=head_repo["name"],
        repo_owner=head_owner,
        label_name=label_name,
        raw_action=raw_action,
    )

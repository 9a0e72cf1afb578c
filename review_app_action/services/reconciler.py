"""Review app reconciliation for a single pull request event."""

from __future__ import annotations

from typing import Any, Dict, Iterable

import httpx

from review_app_action.config import (
    DEFAULT_COLLABORATOR_PERMISSIONS,
    DEFAULT_REVIEW_APP_LABEL,
    Settings,
)
from review_app_action.event import EventSource, PullRequestAction, PullRequestEvent
from review_app_action.github_client import GitHubClient
from review_app_action.heroku_client import HerokuClient
from review_app_action.logger import (
    get_logger,
    log_success,
    log_timing,
    log_with_context,
    register_secret,
)
from review_app_action.models.review_app import (
    AlreadyExists,
    Created,
    Failed,
    ReconcileOutcome,
    ReconciliationDecision,
    ReviewApp,
    ReviewAppStatus,
    SkipReason,
)

logger = get_logger()

# Label added to every pull request a collaborator opens or updates.
REVIEW_APP_LABEL = "review-app"

_CREATE_ACTIONS = {PullRequestAction.OPENED, PullRequestAction.REOPENED, PullRequestAction.SYNCHRONIZE}


def find_review_app(review_apps: Iterable[ReviewApp], pr_number: int) -> ReviewApp | None:
    """Return the first review app deployed for pr_number."""

    for review_app in review_apps:
        if review_app.pr_number == pr_number:
            return review_app
    return None


def decide(
    event: PullRequestEvent,
    existing: ReviewApp | None,
    *,
    trigger_label: str = DEFAULT_REVIEW_APP_LABEL,
) -> ReconciliationDecision:
    should_delete = existing is not None

    if event.action in _CREATE_ACTIONS:
        return ReconciliationDecision(should_delete=should_delete, should_create=True, add_label=True)
    if event.action is PullRequestAction.LABELED:
        return ReconciliationDecision(
            should_delete=should_delete,
            should_create=event.label_name == trigger_label,
        )
    # closed and unrecognised actions only clean up
    return ReconciliationDecision(should_delete=should_delete, should_create=False)


def is_blocked_fork(event: PullRequestEvent) -> bool:
    """Forks get no secrets under pull_request, so Heroku would reject the source blob."""

    return event.is_fork and event.event_source is EventSource.PULL_REQUEST


def build_source_url(event: PullRequestEvent, *, pa_token: str, github_api_base_url: str) -> str:
    """Return the authenticated tarball URL Heroku downloads the head branch from."""

    api_url = httpx.URL(github_api_base_url)
    host = api_url.netloc.decode("ascii")
    prefix = api_url.path.rstrip("/")
    return (
        f"{api_url.scheme}://{event.repo_owner}:{pa_token}@{host}{prefix}"
        f"/repos/{event.repo_owner}/{event.repo_name}/tarball/{event.head_branch}"
    )


def build_create_body(event: PullRequestEvent, *, pipeline_id: str, source_url: str) -> Dict[str, Any]:
    body: Dict[str, Any] = {
        "branch": event.head_branch,
        "pipeline": pipeline_id,
        "source_blob": {
            "url": source_url,
            "version": event.head_sha,
        },
        "pr_number": event.pr_number,
        # Only meaningful for forks, where the app cannot infer the repository.
        "environment": {
            "GIT_REPO_URL": event.repo_url,
        },
    }
    if event.fork_repo_id is not None:
        body["fork_repo_id"] = event.fork_repo_id
    return body


class ReviewAppReconciler:
    def __init__(
        self,
        *,
        github_client: GitHubClient,
        heroku_client: HerokuClient,
        pipeline_id: str,
        github_pa_token: str,
        github_api_base_url: str = "https://api.github.com",
        allowed_permissions: Iterable[str] = DEFAULT_COLLABORATOR_PERMISSIONS,
        review_app_label_name: str = DEFAULT_REVIEW_APP_LABEL,
    ) -> None:
        self._github = github_client
        self._heroku = heroku_client
        self._pipeline_id = pipeline_id
        self._pa_token = github_pa_token
        register_secret(github_pa_token)
        self._github_api_base_url = github_api_base_url
        self._allowed_permissions = {level.lower() for level in allowed_permissions}
        self._review_app_label_name = review_app_label_name

    async def reconcile(self, event: PullRequestEvent) -> ReconcileOutcome:
        ctx_logger = log_with_context(
            logger,
            repository=event.repository,
            pr_number=event.pr_number,
            action=event.raw_action or event.action.value,
        )
        ctx_logger.info(
            f"=== RECONCILER: {event.event_source.value}.{event.raw_action or event.action.value} "
            f"for PR #{event.pr_number} (branch={event.head_branch}, fork={event.is_fork}) ==="
        )
        outcome = ReconcileOutcome()

        # Cleanup runs for every action, including closed.
        with log_timing(ctx_logger, "list_review_apps", pipeline_id=self._pipeline_id):
            ctx_logger.info("Listing review apps")
            review_apps = await self._heroku.list_review_apps(self._pipeline_id)
            ctx_logger.info(f"Fetched review app list ({len(review_apps)} apps)")

        existing = find_review_app(review_apps, event.pr_number)
        decision = decide(event, existing, trigger_label=self._review_app_label_name)

        if decision.should_delete:
            with log_timing(ctx_logger, "delete_review_app", review_app_id=existing.id):
                ctx_logger.info(f"Deleting existing review app {existing.id}")
                await self._heroku.delete_review_app(existing.id)
                ctx_logger.info("Review app deleted")
            outcome.deleted_app_id = existing.id
        else:
            ctx_logger.info(f"Did not find review app for PR number {event.pr_number}")

        with log_timing(ctx_logger, "get_collaborator_permission", actor=event.actor):
            permission = await self._github.get_collaborator_permission(
                full_name=event.repository,
                username=event.actor,
            )
        outcome.permission = permission

        if permission.value not in self._allowed_permissions:
            ctx_logger.info(f"User {event.actor} is not a collaborator ({permission.value}). Skipping")
            outcome.skip_reason = SkipReason.NOT_COLLABORATOR
            return outcome

        ctx_logger.info(f"User is a collaborator: {permission.value}")

        if decision.add_label:
            ctx_logger.info("PR opened by collaborator")
            with log_timing(ctx_logger, "add_labels"):
                await self._github.add_labels(
                    full_name=event.repository,
                    issue_number=event.pr_number,
                    labels=[REVIEW_APP_LABEL],
                )
            outcome.label_added = True
        elif event.action is PullRequestAction.LABELED:
            ctx_logger.info(f"{event.label_name} label was added by collaborator")
            if not decision.should_create:
                ctx_logger.debug(f"Unexpected label, not creating app: {event.label_name}")

        if decision.should_create and is_blocked_fork(event):
            ctx_logger.info("Fork detected. Exiting")
            ctx_logger.info("If you would like to support PRs from forks, use the pull_request_target event")
            outcome.skip_reason = SkipReason.FORK
            log_success(logger, "Action complete", repository=event.repository, pr_number=event.pr_number)
            return outcome

        status = decision.output_status
        if decision.should_create:
            status = await self._create(event, ctx_logger)
            outcome.created = status is ReviewAppStatus.NEW

        outcome.status = status
        log_success(
            logger,
            f"Action complete (status={status.value})",
            repository=event.repository,
            pr_number=event.pr_number,
        )
        return outcome

    async def _create(self, event: PullRequestEvent, ctx_logger) -> ReviewAppStatus:
        source_url = build_source_url(
            event,
            pa_token=self._pa_token,
            github_api_base_url=self._github_api_base_url,
        )
        body = build_create_body(event, pipeline_id=self._pipeline_id, source_url=source_url)
        ctx_logger.debug(
            f"Deploy info: branch={event.head_branch}, version={event.head_sha}, fork={event.is_fork}, "
            f"source_url={source_url}"
        )

        with log_timing(ctx_logger, "create_review_app"):
            ctx_logger.info("Creating review app")
            result = await self._heroku.create_review_app(body)

        if isinstance(result, Created):
            app_id = result.review_app.id if result.review_app else "unknown"
            ctx_logger.info(f"Created review app {app_id}")
            return ReviewAppStatus.NEW
        if isinstance(result, AlreadyExists):
            ctx_logger.info("Review app is already created")
            return ReviewAppStatus.EXISTING
        if isinstance(result, Failed):
            raise result.cause
        raise TypeError(f"Unsupported create result: {type(result)!r}")  # pragma: no cover


async def run_reconciliation(
    event: PullRequestEvent,
    settings: Settings,
    *,
    github_transport: httpx.AsyncBaseTransport | None = None,
    heroku_transport: httpx.AsyncBaseTransport | None = None,
) -> ReconcileOutcome:
    """Build the API clients from settings, reconcile one event and close the clients."""

    credentials = settings.require_action_credentials()
    register_secret(credentials.github_token, credentials.github_pa_token, credentials.heroku_api_token)
    ctx_logger = log_with_context(logger, repository=event.repository, pr_number=event.pr_number)

    github_client = GitHubClient(
        base_url=settings.normalized_github_api_base_url,
        token=credentials.github_token,
        transport=github_transport,
    )
    heroku_client = HerokuClient(
        credentials.heroku_api_token,
        base_url=settings.normalized_heroku_api_base_url,
        transport=heroku_transport,
    )
    try:
        reconciler = ReviewAppReconciler(
            github_client=github_client,
            heroku_client=heroku_client,
            pipeline_id=credentials.heroku_pipeline_id,
            github_pa_token=credentials.github_pa_token,
            github_api_base_url=settings.normalized_github_api_base_url,
            allowed_permissions=settings.collaborator_permissions,
            review_app_label_name=settings.review_app_label_name,
        )
        return await reconciler.reconcile(event)
    finally:
        await github_client.aclose()
        await heroku_client.aclose()
        ctx_logger.debug("API clients closed")

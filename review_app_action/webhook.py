"""GitHub webhook ingestion."""

from __future__ import annotations

import json
import time
from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status

from review_app_action.config import Settings, SettingsError
from review_app_action.dependencies import settings_dependency
from review_app_action.event import IgnoreEventError, build_pull_request_event
from review_app_action.github_client import GitHubAPIError
from review_app_action.heroku_client import HerokuAPIError
from review_app_action.logger import (
    get_logger,
    log_failure,
    log_success,
    log_timing,
    log_with_context,
    register_secret,
)
from review_app_action.services.reconciler import run_reconciliation
from review_app_action.utils.security import verify_github_signature

router = APIRouter()

logger = get_logger()


@router.post("/webhook", summary="Receive GitHub pull request webhooks")
async def receive_webhook(
    request: Request,
    settings: Settings = Depends(settings_dependency),
) -> Dict[str, Any]:
    """Verify the webhook signature and reconcile the pull request's review app."""

    start_time = time.time()
    logger.info("=== WEBHOOK RECEIVED ===")

    delivery_id = request.headers.get("X-GitHub-Delivery")
    event = request.headers.get("X-GitHub-Event")

    try:
        secret = settings.require_webhook_secret()
        register_secret(secret)
        settings.require_action_credentials()
    except SettingsError as exc:
        log_failure(logger, "Configuration incomplete", exc, delivery_id=delivery_id, event_type=event)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Configuration error: {exc}"
        ) from exc

    raw_body = await request.body()
    signature = request.headers.get("X-Hub-Signature-256")

    if not delivery_id:
        log_failure(logger, "Missing X-GitHub-Delivery header", event_type=event)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-GitHub-Delivery header"
        )

    if not event:
        log_failure(logger, "Missing X-GitHub-Event header", delivery_id=delivery_id)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing X-GitHub-Event header"
        )

    ctx_logger = log_with_context(logger, delivery_id=delivery_id, event_type=event)
    ctx_logger.info(f"Processing {event} event")

    if not verify_github_signature(secret, raw_body, signature):
        log_failure(logger, "Webhook signature verification failed", delivery_id=delivery_id, event_type=event)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid signature"
        )

    try:
        payload = json.loads(raw_body.decode("utf-8"))
        ctx_logger.debug("Webhook payload parsed successfully")
    except json.JSONDecodeError as exc:
        log_failure(logger, "Invalid JSON payload", exc, delivery_id=delivery_id, event_type=event)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload"
        ) from exc

    try:
        pr_event = build_pull_request_event(event, payload)
    except IgnoreEventError as exc:
        ctx_logger.debug(f"Webhook ignored: {exc}")
        return {"status": "ignored", "reason": str(exc)}
    except ValueError as exc:
        log_failure(logger, "Invalid payload structure", exc, delivery_id=delivery_id, event_type=event)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc)
        ) from exc

    ctx_logger = log_with_context(
        logger,
        delivery_id=delivery_id,
        event_type=event,
        repository=pr_event.repository,
        pr_number=pr_event.pr_number,
    )

    try:
        with log_timing(ctx_logger, "reconcile_review_app"):
            outcome = await run_reconciliation(pr_event, settings)
    except (GitHubAPIError, HerokuAPIError) as exc:
        log_failure(logger, "Upstream API call failed", exc, delivery_id=delivery_id,
                    event_type=event, repository=pr_event.repository)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc)
        ) from exc

    processing_time = time.time() - start_time
    log_success(logger, f"Reconciled review app for {pr_event.repository}#{pr_event.pr_number} "
                        f"(processed in {processing_time:.3f}s)",
                delivery_id=delivery_id, event_type=event, repository=pr_event.repository)

    return {
        "status": "completed",
        "review_app_status": outcome.status.value if outcome.status else None,
        "skip_reason": outcome.skip_reason.value if outcome.skip_reason else None,
    }

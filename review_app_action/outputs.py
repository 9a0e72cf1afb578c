"""Publish step outputs and the job summary to the GitHub Actions runner."""

from __future__ import annotations

import os
from pathlib import Path

from review_app_action.event import PullRequestEvent
from review_app_action.logger import get_logger
from review_app_action.models.review_app import ReconcileOutcome

logger = get_logger()


def write_output(name: str, value: str, *, output_path: str | None = None) -> bool:
    """Append a step output; returns False when the runner exposes no output file."""

    path = output_path or os.getenv("GITHUB_OUTPUT")
    if not path:
        logger.info(f"GITHUB_OUTPUT not set, skipping output {name}={value}")
        return False

    with open(path, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")
    logger.debug(f"Wrote step output {name}={value}")
    return True


def render_job_summary(event: PullRequestEvent, outcome: ReconcileOutcome) -> str:
    if outcome.skip_reason is not None:
        result = f"Skipped ({outcome.skip_reason.value})"
    elif outcome.status is not None:
        result = outcome.status.value
    else:
        result = "none"

    summary = f"# Review app for PR #{event.pr_number}\n\n"
    summary += "| Step | Result |\n"
    summary += "|------|--------|\n"
    summary += f"| Event | `{event.event_source.value}.{event.raw_action or event.action.value}` |\n"
    summary += f"| Deleted review app | {outcome.deleted_app_id or '-'} |\n"
    summary += f"| Permission | {outcome.permission.value if outcome.permission else '-'} |\n"
    summary += f"| Label added | {'yes' if outcome.label_added else 'no'} |\n"
    summary += f"| Status | {result} |\n"
    return summary


def write_job_summary(
    event: PullRequestEvent,
    outcome: ReconcileOutcome,
    *,
    summary_path: str | None = None,
) -> None:
    path = summary_path or os.getenv("GITHUB_STEP_SUMMARY")
    if not path:
        logger.debug("GITHUB_STEP_SUMMARY not set, skipping summary")
        return

    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(render_job_summary(event, outcome))

    logger.info("Job summary posted")


def publish_outcome(event: PullRequestEvent, outcome: ReconcileOutcome) -> None:
    """Write the status output (only for runs that were not skipped) and the job summary."""

    if outcome.status is not None:
        write_output("status", outcome.status.value)
    write_job_summary(event, outcome)

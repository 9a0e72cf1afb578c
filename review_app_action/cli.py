#!/usr/bin/env python3
"""Command line entry points: reconcile one Actions event, or serve webhooks."""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from typing import Sequence

from review_app_action.config import get_settings
from review_app_action.event import IgnoreEventError, build_pull_request_event, load_github_event
from review_app_action.logger import get_logger, log_failure
from review_app_action.outputs import publish_outcome
from review_app_action.services.reconciler import run_reconciliation

logger = get_logger()

_COMMANDS = {"run", "serve", "-h", "--help"}


def run_action(args: argparse.Namespace) -> int:
    """Reconcile the review app for the event the runner delivered; returns the exit code."""

    try:
        settings = get_settings()
        settings.require_action_credentials()

        payload = load_github_event(args.event_path)
        event_name = args.event_name or os.getenv("GITHUB_EVENT_NAME")
        actor = args.actor or os.getenv("GITHUB_ACTOR")
        try:
            event = build_pull_request_event(event_name, payload, actor=actor)
        except IgnoreEventError as exc:
            logger.info(f"Nothing to do: {exc}")
            return 0

        outcome = asyncio.run(run_reconciliation(event, settings))
        publish_outcome(event, outcome)
    except Exception as exc:
        log_failure(logger, "Review app action failed", exc)
        logger.opt(exception=exc).debug("Full exception traceback:")
        return 1

    return 0


def serve(args: argparse.Namespace) -> int:
    host = args.host
    port = args.port
    display_url = f"http://localhost:{port}"

    logger.info(
        "Starting review app webhook receiver on {display_url} (binding to {host}:{port})",
        display_url=display_url,
        host=host,
        port=port,
    )

    import uvicorn

    uvicorn.run(
        app="review_app_action.main:app",
        host=host,
        port=port,
        workers=1,
        log_level="info",
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or remove Heroku review apps for pull requests")
    subparsers = parser.add_subparsers(dest="command")

    run_parser = subparsers.add_parser("run", help="Reconcile the review app for the current Actions event")
    run_parser.add_argument("--event-path", default=None, help="Path to GitHub event JSON")
    run_parser.add_argument("--event-name", default=None, help="Event name (defaults to GITHUB_EVENT_NAME)")
    run_parser.add_argument("--actor", default=None, help="Triggering user (defaults to GITHUB_ACTOR)")
    run_parser.set_defaults(handler=run_action)

    serve_parser = subparsers.add_parser("serve", help="Serve the webhook receiver")
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)
    serve_parser.set_defaults(handler=serve)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    # Actions invokes the entry point without a subcommand.
    if not argv or argv[0] not in _COMMANDS:
        argv = ["run", *argv]
    args = build_parser().parse_args(argv)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())

"""Loguru setup shared by the action and the webhook receiver.

Every record goes through a patcher that masks the registered credentials, so a
token embedded in a git URL or echoed back by an API never reaches a sink. When
running on a GitHub Actions runner, error records are emitted as ``::error::``
workflow commands so they show up as annotations on the run.
"""

from __future__ import annotations

import os
import sys
import time
from contextlib import contextmanager
from typing import Any, Iterator

from loguru import logger as _logger

from review_app_action.utils.security import mask_secret

LOG_LEVEL_ENV = "APP_LOG_LEVEL"

_CONFIGURED = False
_SECRETS: set[str] = set()

_CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


def register_secret(*values: str | None) -> None:
    """Mask the given values in every record logged from now on."""

    _SECRETS.update(value for value in values if value)


def _mask_registered_secrets(record: dict[str, Any]) -> None:
    if _SECRETS:
        record["message"] = mask_secret(record["message"], *_SECRETS)


def _actions_format(record: dict[str, Any]) -> str:
    # The runner timestamps each line itself.
    prefix = "::error::" if record["level"].no >= _logger.level("ERROR").no else ""
    return prefix + "{level: <8} | {name} - {message}\n{exception}"


def running_in_actions() -> bool:
    return os.getenv("GITHUB_ACTIONS") == "true"


def configure_logger(*, level: str | None = None) -> None:
    """Configure the Loguru logger exactly once per process."""

    global _CONFIGURED
    if _CONFIGURED:
        return

    log_level = level or os.getenv(LOG_LEVEL_ENV, "INFO")

    _logger.remove()
    _logger.configure(patcher=_mask_registered_secrets)
    if running_in_actions():
        _logger.add(sys.stdout, level=log_level, format=_actions_format, colorize=False, diagnose=False)
    else:
        _logger.add(
            sys.stdout,
            level=log_level,
            format=_CONSOLE_FORMAT,
            colorize=sys.stdout.isatty(),
            diagnose=False,
        )

    _CONFIGURED = True


def get_logger():
    """Return the configured logger, configuring it on first access."""

    configure_logger()
    return _logger


def log_with_context(logger_instance, **context: str | int | None) -> Any:
    """Bind context fields, dropping the ones without a value.

    Usage:
        logger = log_with_context(get_logger(), pr_number=12, repository="owner/repo")
        logger.info("Listing review apps")
    """
    return logger_instance.bind(**{k: v for k, v in context.items() if v is not None})


def error_context(error: BaseException | None) -> dict[str, Any]:
    """HTTP details carried by GitHubAPIError and HerokuAPIError."""

    context = {}
    for attribute in ("status_code", "error_id"):
        value = getattr(error, attribute, None)
        if value is not None:
            context[attribute] = value
    return context


def describe_error(error: BaseException) -> str:
    details = ", ".join(f"{key}={value}" for key, value in error_context(error).items())
    text = f"{type(error).__name__}: {error}"
    return f"{text} ({details})" if details else text


@contextmanager
def log_timing(logger_instance, operation: str, **context: str | int | None) -> Iterator[Any]:
    """Time an API step; a failure is logged as a warning with its HTTP details and re-raised.

    Usage:
        with log_timing(logger, "list_review_apps", pipeline_id="abc"):
            ...
    """
    start_time = time.perf_counter()
    ctx_logger = log_with_context(logger_instance, **context)
    ctx_logger.debug(f"Starting {operation}")
    try:
        yield ctx_logger
    except Exception as exc:
        duration = time.perf_counter() - start_time
        ctx_logger.bind(**error_context(exc)).warning(
            f"{operation} failed after {duration:.3f}s: {describe_error(exc)}"
        )
        raise
    ctx_logger.debug(f"{operation} finished in {time.perf_counter() - start_time:.3f}s")


def log_success(logger_instance, message: str, **context: str | int | None) -> None:
    log_with_context(logger_instance, **context).success(message)


def log_failure(
    logger_instance,
    message: str,
    error: BaseException | None = None,
    **context: str | int | None,
) -> None:
    """Log a terminal failure; API errors add their status code and Heroku error id."""

    ctx_logger = log_with_context(logger_instance, **{**context, **error_context(error)})
    if error is not None:
        ctx_logger.error(f"{message}: {describe_error(error)}")
    else:
        ctx_logger.error(message)

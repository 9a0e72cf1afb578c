"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Final, List

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, Field, ValidationError

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_COLLABORATOR_PERMISSIONS: Final[tuple[str, ...]] = ("triage", "write", "maintain", "admin")
DEFAULT_REVIEW_APP_LABEL: Final[str] = "review-app"


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


@dataclass(frozen=True)
class ActionCredentials:
    github_token: str
    github_pa_token: str
    heroku_api_token: str
    heroku_pipeline_id: str


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    github_api_base_url: AnyHttpUrl = "https://api.github.com"
    heroku_api_base_url: AnyHttpUrl = "https://api.heroku.com"
    github_token: str | None = None
    github_pa_token: str | None = None
    heroku_api_token: str | None = None
    heroku_pipeline_id: str | None = None
    github_webhook_secret: str | None = None
    collaborator_permissions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_COLLABORATOR_PERMISSIONS)
    )
    review_app_label_name: str = DEFAULT_REVIEW_APP_LABEL

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.github_api_base_url).rstrip("/")

    @property
    def normalized_heroku_api_base_url(self) -> str:
        """Return the Heroku API base URL without a trailing slash."""
        return str(self.heroku_api_base_url).rstrip("/")

    def missing_action_credentials(self) -> List[str]:
        """Names of the credential environment variables that are unset."""

        missing = []
        if not self.github_token:
            missing.append("GITHUB_TOKEN")
        if not self.github_pa_token:
            missing.append("GITHUB_PA_TOKEN")
        if not self.heroku_api_token:
            missing.append("HEROKU_API_TOKEN")
        if not self.heroku_pipeline_id:
            missing.append("HEROKU_PIPELINE_ID")
        return missing

    def require_action_credentials(self) -> ActionCredentials:
        """Ensure the tokens needed to reconcile review apps are configured and return them."""

        missing = self.missing_action_credentials()
        if missing:
            missing_vars = ", ".join(missing)
            raise SettingsError(
                "Review apps are not configured. Missing environment variables: "
                f"{missing_vars}."
            )

        return ActionCredentials(
            github_token=self.github_token,
            github_pa_token=self.github_pa_token,
            heroku_api_token=self.heroku_api_token,
            heroku_pipeline_id=self.heroku_pipeline_id,
        )

    def require_webhook_secret(self) -> str:
        if not self.github_webhook_secret:
            raise SettingsError("GITHUB_WEBHOOK_SECRET environment variable is required to serve webhooks.")
        return self.github_webhook_secret


def parse_permission_list(raw_value: str | None) -> List[str]:
    """Split a comma separated permission list, falling back to the defaults when empty."""

    if raw_value is None:
        return list(DEFAULT_COLLABORATOR_PERMISSIONS)
    levels = [level.strip().lower() for level in raw_value.split(",")]
    levels = [level for level in levels if level]
    return levels or list(DEFAULT_COLLABORATOR_PERMISSIONS)


def _build_settings() -> Settings:
    github_api_base_url = os.getenv("GITHUB_API_BASE_URL")
    heroku_api_base_url = os.getenv("HEROKU_API_BASE_URL")

    try:
        return Settings(
            github_api_base_url=github_api_base_url or "https://api.github.com",
            heroku_api_base_url=heroku_api_base_url or "https://api.heroku.com",
            github_token=os.getenv("GITHUB_TOKEN"),
            github_pa_token=os.getenv("GITHUB_PA_TOKEN"),
            heroku_api_token=os.getenv("HEROKU_API_TOKEN"),
            heroku_pipeline_id=os.getenv("HEROKU_PIPELINE_ID"),
            github_webhook_secret=os.getenv("GITHUB_WEBHOOK_SECRET"),
            collaborator_permissions=parse_permission_list(os.getenv("COLLABORATOR_PERMISSION")),
            review_app_label_name=os.getenv("REVIEW_APP_LABEL_NAME") or DEFAULT_REVIEW_APP_LABEL,
        )
    except ValidationError as exc:
        raise SettingsError("Invalid application configuration.") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return _build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()

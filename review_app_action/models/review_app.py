"""Shared data structures for review app reconciliation."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel


class PermissionLevel(str, Enum):
    NONE = "none"
    READ = "read"
    TRIAGE = "triage"
    WRITE = "write"
    MAINTAIN = "maintain"
    ADMIN = "admin"

    @classmethod
    def parse(cls, raw: str | None) -> "PermissionLevel":
        """Map a GitHub permission string to a level, treating unknown values as none."""

        try:
            return cls((raw or "").lower())
        except ValueError:
            return cls.NONE


class ReviewAppStatus(str, Enum):
    NEW = "new"
    EXISTING = "existing"


class SkipReason(str, Enum):
    NOT_COLLABORATOR = "not_collaborator"
    FORK = "fork"


class ReviewApp(BaseModel):
    """A review app as listed by the Heroku Platform API."""

    id: str
    pr_number: int | None = None
    branch: str | None = None
    status: str | None = None


@dataclass(frozen=True, slots=True)
class Created:
    review_app: ReviewApp | None = None


@dataclass(frozen=True, slots=True)
class AlreadyExists:
    message: str | None = None


@dataclass(frozen=True, slots=True)
class Failed:
    cause: Exception


CreateResult = Created | AlreadyExists | Failed


@dataclass(frozen=True, slots=True)
class ReconciliationDecision:
    should_delete: bool
    should_create: bool
    add_label: bool = False
    output_status: ReviewAppStatus = ReviewAppStatus.NEW


@dataclass(slots=True)
class ReconcileOutcome:
    deleted_app_id: str | None = None
    label_added: bool = False
    created: bool = False
    status: ReviewAppStatus | None = None
    skip_reason: SkipReason | None = None
    permission: PermissionLevel | None = None

    @property
    def skipped(self) -> bool:
        return self.skip_reason is not None

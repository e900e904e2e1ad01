from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class DomainEvent:
    """Base type for all domain events."""

    occurred_at: datetime


# --- Platform fetch events ---------------------------------------------------


@dataclass(frozen=True)
class IssuesFetched(DomainEvent):
    platform: str
    issue_count: int


@dataclass(frozen=True)
class PlatformFetchFailed(DomainEvent):
    platform: str
    message: str


# --- Estimation / dashboard events ------------------------------------------


@dataclass(frozen=True)
class EstimationModelBuilt(DomainEvent):
    sample_size: int
    has_enough_data: bool
    learned_from: str


@dataclass(frozen=True)
class DashboardRefreshed(DomainEvent):
    issue_count: int
    error_count: int
    duration_seconds: float

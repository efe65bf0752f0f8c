"""
Aggregation component input/output models.

Every statistic that can be undefined on empty input is typed Optional;
None means "no data", never zero.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime

from src.components.confidence import ConfidencePolicy, GatedStat
from src.components.sessions import CompletionPolicy

DEFAULT_WINDOW_DAYS = 30
DEFAULT_TOP_ARTICLES_LIMIT = 5
DEFAULT_CHANNEL_LIMIT = 5
UNSECTIONED = "unsectioned"


# --- Validation Error ---


@dataclass(frozen=True)
class AggregationValidationError:
    """Aggregation validation error."""

    code: str
    message: str
    field_name: str | None = None


# --- Configuration ---


@dataclass(frozen=True)
class AggregationConfig:
    """Aggregation configuration (built from rules)."""

    default_window_days: int = DEFAULT_WINDOW_DAYS
    max_window_days: int = 365
    top_articles_limit: int = DEFAULT_TOP_ARTICLES_LIMIT
    channel_limit: int = DEFAULT_CHANNEL_LIMIT
    completion: CompletionPolicy = field(default_factory=CompletionPolicy)
    confidence: ConfidencePolicy = field(default_factory=ConfidencePolicy)


# --- Window ---


@dataclass(frozen=True)
class WindowBounds:
    """
    Calendar boundaries in the reference timezone, expressed as UTC instants.

    The week is today plus the 6 previous days. The rolling window starts
    at local midnight window_days - 1 days before today.
    """

    now: datetime
    today: date
    today_start: datetime
    tomorrow_start: datetime
    week_start: datetime
    month_start: datetime
    last_month_start: datetime
    window_start: datetime
    window_days: int


# --- Results ---


@dataclass(frozen=True)
class ViewCounts:
    total_views: int
    views_today: int
    views_this_week: int
    views_this_month: int
    views_last_month: int
    monthly_view_growth: float | None
    views_are_estimated: bool


@dataclass(frozen=True)
class SectionViews:
    section: str
    views: int


@dataclass(frozen=True)
class TopArticle:
    id: str
    title: str
    views: int


@dataclass(frozen=True)
class DayViews:
    date: date
    views: int


@dataclass(frozen=True)
class ReaderDistribution:
    """guest + registered == total == sample_size."""

    guest: int
    registered: int
    total: int
    sample_size: int
    window_days: int


@dataclass(frozen=True)
class ReadingTimeStats:
    """Durations come only from sessions with a recorded duration."""

    average_seconds: float | None
    median_seconds: float | None
    p90_seconds: float | None
    average_progress_percent: float | None
    completion_rate: float | None
    sample_size: int  # timed sessions
    session_count: int  # all sessions in window
    window_days: int


@dataclass(frozen=True)
class ChannelCount:
    channel: str
    count: int
    guest: int = 0
    registered: int = 0


@dataclass(frozen=True)
class ShareMetrics:
    total_shares: int
    share_rate: float | None
    channels: tuple[ChannelCount, ...]
    sample_size: int  # sessions in the denominator
    window_days: int


@dataclass(frozen=True)
class AudienceMetrics:
    guest_views: int
    registered_views: int
    unique_readers: int
    window_days: int


@dataclass(frozen=True)
class DashboardStats:
    """All dashboard statistics for one window, with confidence flags."""

    generated_at: datetime
    window_days: int
    timezone: str
    views: ViewCounts
    views_by_section: tuple[SectionViews, ...]
    top_articles: tuple[TopArticle, ...]
    views_by_day: tuple[DayViews, ...]
    audience: AudienceMetrics
    reader_distribution: GatedStat[ReaderDistribution]
    reading_time: GatedStat[ReadingTimeStats]
    completion_rate: GatedStat[float]
    share_metrics: GatedStat[ShareMetrics]


# --- Input / Output Models ---


@dataclass(frozen=True)
class DashboardInput:
    """Input for computing dashboard statistics."""

    window_days: int | None = None  # None uses the configured default


@dataclass(frozen=True)
class DashboardOutput:
    """Output from dashboard computation."""

    stats: DashboardStats | None
    errors: list[AggregationValidationError] = field(default_factory=list)
    success: bool = True

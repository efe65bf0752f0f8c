"""
Shared response schemas for the dashboard.

Built from the aggregation dataclasses; used by the admin route and the CLI.
"""

import datetime as dt
from dataclasses import asdict
from typing import Any

from pydantic import BaseModel

from src.components.aggregation import DashboardStats
from src.components.confidence import GatedStat


class ViewCountsModel(BaseModel):
    total_views: int
    views_today: int
    views_this_week: int
    views_this_month: int
    views_last_month: int
    monthly_view_growth: float | None
    views_are_estimated: bool


class SectionViewsModel(BaseModel):
    section: str
    views: int


class TopArticleModel(BaseModel):
    id: str
    title: str
    views: int


class DayViewsModel(BaseModel):
    date: dt.date
    views: int


class AudienceModel(BaseModel):
    guest_views: int
    registered_views: int
    unique_readers: int
    window_days: int


class ReaderDistributionModel(BaseModel):
    guest: int
    registered: int
    total: int
    sample_size: int
    window_days: int


class ReadingTimeModel(BaseModel):
    average_seconds: float | None
    median_seconds: float | None
    p90_seconds: float | None
    average_progress_percent: float | None
    completion_rate: float | None
    sample_size: int
    session_count: int
    window_days: int


class ChannelCountModel(BaseModel):
    channel: str
    count: int
    guest: int
    registered: int


class ShareMetricsModel(BaseModel):
    total_shares: int
    share_rate: float | None
    channels: list[ChannelCountModel]
    sample_size: int
    window_days: int


class GatedReaderDistribution(BaseModel):
    value: ReaderDistributionModel | None
    sample_size: int
    minimum_sample_size: int
    low_confidence: bool
    has_data: bool


class GatedReadingTime(BaseModel):
    value: ReadingTimeModel | None
    sample_size: int
    minimum_sample_size: int
    low_confidence: bool
    has_data: bool


class GatedRate(BaseModel):
    value: float | None
    sample_size: int
    minimum_sample_size: int
    low_confidence: bool
    has_data: bool


class GatedShareMetrics(BaseModel):
    value: ShareMetricsModel | None
    sample_size: int
    minimum_sample_size: int
    low_confidence: bool
    has_data: bool


class DashboardResponse(BaseModel):
    """Dashboard statistics with confidence flags."""

    generated_at: dt.datetime
    window_days: int
    timezone: str
    views: ViewCountsModel
    views_by_section: list[SectionViewsModel]
    top_articles: list[TopArticleModel]
    views_by_day: list[DayViewsModel]
    audience: AudienceModel
    reader_distribution: GatedReaderDistribution
    reading_time: GatedReadingTime
    completion_rate: GatedRate
    share_metrics: GatedShareMetrics


def _gated(stat: GatedStat[Any]) -> dict[str, Any]:
    data = asdict(stat)
    data["has_data"] = stat.has_data
    return data


def dashboard_response(stats: DashboardStats) -> DashboardResponse:
    """Convert DashboardStats into its API representation."""
    data = asdict(stats)
    for name in ("reader_distribution", "reading_time", "completion_rate", "share_metrics"):
        data[name] = _gated(getattr(stats, name))
    return DashboardResponse.model_validate(data)

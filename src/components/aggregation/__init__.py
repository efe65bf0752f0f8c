"""
Aggregation component - Dashboard statistics over rolling windows.
"""

from ._impl import compute_window, mean, percentile
from .component import (
    audience_metrics,
    build_dashboard_stats,
    completion_rate,
    count_views,
    monthly_view_growth,
    reader_distribution,
    reading_time,
    run,
    run_dashboard,
    share_metrics,
    top_articles,
    views_by_day,
    views_by_section,
)
from .models import (
    UNSECTIONED,
    AggregationConfig,
    AggregationValidationError,
    AudienceMetrics,
    ChannelCount,
    DashboardInput,
    DashboardOutput,
    DashboardStats,
    DayViews,
    ReaderDistribution,
    ReadingTimeStats,
    SectionViews,
    ShareMetrics,
    TopArticle,
    ViewCounts,
    WindowBounds,
)
from .ports import ArticleDirectoryPort, EventStorePort, SessionSourcePort, TimePort

__all__ = [
    # Component functions
    "run",
    "run_dashboard",
    # Pure functions
    "audience_metrics",
    "build_dashboard_stats",
    "completion_rate",
    "compute_window",
    "count_views",
    "mean",
    "monthly_view_growth",
    "percentile",
    "reader_distribution",
    "reading_time",
    "share_metrics",
    "top_articles",
    "views_by_day",
    "views_by_section",
    # Models
    "UNSECTIONED",
    "AggregationConfig",
    "AggregationValidationError",
    "AudienceMetrics",
    "ChannelCount",
    "DashboardInput",
    "DashboardOutput",
    "DashboardStats",
    "DayViews",
    "ReaderDistribution",
    "ReadingTimeStats",
    "SectionViews",
    "ShareMetrics",
    "TopArticle",
    "ViewCounts",
    "WindowBounds",
    # Ports
    "ArticleDirectoryPort",
    "EventStorePort",
    "SessionSourcePort",
    "TimePort",
]

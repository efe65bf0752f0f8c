"""
Aggregation component - Dashboard statistics over rolling windows.

Pure functions over lists of events, sessions and article metadata, plus
the run_dashboard entry point that reads them through ports. No state is
retained between calls.

Key behaviors:
- Calendar boundaries (today, week, month, per-day series) use the
  reference timezone; the week is today plus the 6 previous days
- Empty inputs produce None for means, percentiles and rates
- monthly_view_growth is None when the previous month had no views
- completion_rate counts completion-eligible sessions over all sessions
  started in the window
- Every session/share statistic is wrapped by the confidence gate
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from src.components.confidence import (
    ConfidencePolicy,
    gate_reading_time,
    gate_sessions,
    gate_shares,
)
from src.components.sessions import CompletionPolicy, is_completion_eligible
from src.core.entities import ArticleEvent, ArticleMeta, ReadingSession, ShareEvent

from ._impl import as_utc, compute_window, local_date, mean, percentile
from .models import (
    DEFAULT_CHANNEL_LIMIT,
    DEFAULT_TOP_ARTICLES_LIMIT,
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

logger = logging.getLogger(__name__)


# --- Views ---


def _count_between(
    events: Iterable[ArticleEvent], start: datetime, end: datetime | None = None
) -> int:
    return sum(
        1
        for e in events
        if as_utc(e.event_timestamp) >= start and (end is None or as_utc(e.event_timestamp) < end)
    )


def monthly_view_growth(current_month_views: int, previous_month_views: int) -> float | None:
    """
    Month-over-month growth in percent.

    None (not zero, not infinity) when the previous month had no views.
    """
    if previous_month_views == 0:
        return None
    return (current_month_views - previous_month_views) / previous_month_views * 100


def count_views(
    view_events: Sequence[ArticleEvent],
    bounds: WindowBounds,
    articles: Sequence[ArticleMeta] = (),
    all_time_view_events: int | None = None,
) -> ViewCounts:
    """
    Partition article_view events by calendar period.

    view_events must cover at least the period since the start of the
    previous month. total_views prefers the external counters when the
    article collaborator keeps them; otherwise it is all_time_view_events
    (or len(view_events) when not given).
    """
    views_this_month = _count_between(view_events, bounds.month_start, bounds.tomorrow_start)
    views_last_month = _count_between(view_events, bounds.last_month_start, bounds.month_start)

    counters = [a.view_count for a in articles if a.view_count is not None]
    if counters:
        total_views = sum(counters)
    elif all_time_view_events is not None:
        total_views = all_time_view_events
    else:
        total_views = len(view_events)

    return ViewCounts(
        total_views=total_views,
        views_today=_count_between(view_events, bounds.today_start, bounds.tomorrow_start),
        views_this_week=_count_between(view_events, bounds.week_start, bounds.tomorrow_start),
        views_this_month=views_this_month,
        views_last_month=views_last_month,
        monthly_view_growth=monthly_view_growth(views_this_month, views_last_month),
        views_are_estimated=_count_between(view_events, bounds.last_month_start) == 0,
    )


def views_by_section(
    view_events: Iterable[ArticleEvent],
    articles_by_id: Mapping[str, ArticleMeta],
) -> tuple[SectionViews, ...]:
    """Group views by the referenced article's section, most viewed first."""
    counts: Counter[str] = Counter()
    for event in view_events:
        meta = articles_by_id.get(event.article_id)
        section = (meta.section if meta else None) or UNSECTIONED
        counts[section] += 1
    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return tuple(SectionViews(section=s, views=v) for s, v in ranked)


def top_articles(
    view_events: Iterable[ArticleEvent],
    articles_by_id: Mapping[str, ArticleMeta],
    limit: int = DEFAULT_TOP_ARTICLES_LIMIT,
) -> tuple[TopArticle, ...]:
    """
    Articles ranked by views in the window.

    Ties go to the most recently published article; articles without a
    publish date sort after dated ones. Unknown articles keep their id as
    title.
    """
    counts = Counter(e.article_id for e in view_events)

    def sort_key(item: tuple[str, int]) -> tuple[int, int, float, str]:
        article_id, views = item
        meta = articles_by_id.get(article_id)
        published = meta.published_at if meta else None
        if published is None:
            return (-views, 1, 0.0, article_id)
        return (-views, 0, -as_utc(published).timestamp(), article_id)

    ranked = sorted(counts.items(), key=sort_key)[: max(limit, 0)]
    result = []
    for article_id, views in ranked:
        meta = articles_by_id.get(article_id)
        title = meta.title if meta else article_id
        result.append(TopArticle(id=article_id, title=title, views=views))
    return tuple(result)


def views_by_day(
    view_events: Iterable[ArticleEvent],
    window_days: int,
    today: date,
    tz: tzinfo,
) -> tuple[DayViews, ...]:
    """Zero-filled per-day series ending today, oldest first."""
    counts = Counter(local_date(e.event_timestamp, tz) for e in view_events)
    days = [today - timedelta(days=offset) for offset in range(window_days - 1, -1, -1)]
    return tuple(DayViews(date=d, views=counts.get(d, 0)) for d in days)


def audience_metrics(view_events: Sequence[ArticleEvent], window_days: int) -> AudienceMetrics:
    """Views by reader type and a distinct count of readers."""
    readers: set[tuple[str, str]] = set()
    guest = registered = 0
    for event in view_events:
        if event.reader_type == "registered":
            registered += 1
        else:
            guest += 1
        if event.user_id:
            readers.add(("user", event.user_id))
        elif event.visitor_key:
            readers.add(("visitor", event.visitor_key))
    return AudienceMetrics(
        guest_views=guest,
        registered_views=registered,
        unique_readers=len(readers),
        window_days=window_days,
    )


# --- Sessions ---


def reader_distribution(sessions: Sequence[ReadingSession], window_days: int) -> ReaderDistribution:
    """Guest/registered split over sessions started in the window."""
    registered = sum(1 for s in sessions if s.reader_type == "registered")
    guest = len(sessions) - registered
    return ReaderDistribution(
        guest=guest,
        registered=registered,
        total=len(sessions),
        sample_size=len(sessions),
        window_days=window_days,
    )


def completion_rate(
    sessions: Sequence[ReadingSession],
    policy: CompletionPolicy | None = None,
) -> float | None:
    """Completion-eligible sessions as a percentage of all sessions."""
    if not sessions:
        return None
    policy = policy or CompletionPolicy()
    eligible = sum(
        1
        for s in sessions
        if is_completion_eligible(s, policy.min_progress_percent, policy.min_duration_seconds)
    )
    return eligible / len(sessions) * 100


def reading_time(
    sessions: Sequence[ReadingSession],
    window_days: int,
    policy: CompletionPolicy | None = None,
) -> ReadingTimeStats:
    """Reading-time statistics over sessions that have a duration."""
    durations = sorted(s.duration_seconds for s in sessions if s.duration_seconds is not None)
    progress = [s.progress_percent for s in sessions if s.progress_percent is not None]
    return ReadingTimeStats(
        average_seconds=mean(durations),
        median_seconds=percentile(durations, 0.5),
        p90_seconds=percentile(durations, 0.9),
        average_progress_percent=mean(progress),
        completion_rate=completion_rate(sessions, policy),
        sample_size=len(durations),
        session_count=len(sessions),
        window_days=window_days,
    )


# --- Shares ---


def share_metrics(
    share_events: Sequence[ShareEvent],
    session_sample_size: int,
    window_days: int,
    channel_limit: int = DEFAULT_CHANNEL_LIMIT,
) -> ShareMetrics:
    """
    Share totals, rate per 100 sessions and top channels.

    share_rate is None when there are no sessions, 0.0 when there are
    sessions but no shares.
    """
    total = len(share_events)
    share_rate = None
    if session_sample_size > 0:
        share_rate = total / session_sample_size * 100

    by_channel: dict[str, Counter[str]] = defaultdict(Counter)
    for event in share_events:
        by_channel[event.channel][event.reader_type] += 1

    ranked = sorted(
        by_channel.items(), key=lambda item: (-sum(item[1].values()), item[0])
    )[: max(channel_limit, 0)]
    channels = tuple(
        ChannelCount(
            channel=channel,
            count=sum(split.values()),
            guest=split.get("guest", 0),
            registered=split.get("registered", 0),
        )
        for channel, split in ranked
    )
    return ShareMetrics(
        total_shares=total,
        share_rate=share_rate,
        channels=channels,
        sample_size=session_sample_size,
        window_days=window_days,
    )


# --- Dashboard ---


def build_dashboard_stats(
    *,
    bounds: WindowBounds,
    tz: tzinfo,
    view_events: Sequence[ArticleEvent],
    sessions: Sequence[ReadingSession],
    share_events: Sequence[ShareEvent],
    articles: Sequence[ArticleMeta] = (),
    all_time_view_events: int | None = None,
    config: AggregationConfig | None = None,
) -> DashboardStats:
    """
    Compute every dashboard statistic from pre-fetched data.

    view_events must cover the window and the period since the start of
    the previous month; sessions and share_events are filtered to the
    window here.
    """
    config = config or AggregationConfig()
    confidence: ConfidencePolicy = config.confidence
    articles_by_id = {a.id: a for a in articles}

    window_views = [e for e in view_events if as_utc(e.event_timestamp) >= bounds.window_start]
    window_sessions = [s for s in sessions if as_utc(s.started_at) >= bounds.window_start]
    window_shares = [e for e in share_events if as_utc(e.event_timestamp) >= bounds.window_start]
    session_count = len(window_sessions)

    distribution = reader_distribution(window_sessions, bounds.window_days)
    timing = reading_time(window_sessions, bounds.window_days, config.completion)
    shares = share_metrics(
        window_shares, session_count, bounds.window_days, config.channel_limit
    )

    return DashboardStats(
        generated_at=bounds.now,
        window_days=bounds.window_days,
        timezone=getattr(tz, "key", str(tz)),
        views=count_views(view_events, bounds, articles, all_time_view_events),
        views_by_section=views_by_section(window_views, articles_by_id),
        top_articles=top_articles(window_views, articles_by_id, config.top_articles_limit),
        views_by_day=views_by_day(window_views, bounds.window_days, bounds.today, tz),
        audience=audience_metrics(window_views, bounds.window_days),
        reader_distribution=gate_sessions(distribution, session_count, confidence),
        reading_time=gate_reading_time(timing, timing.sample_size, confidence),
        completion_rate=gate_sessions(timing.completion_rate, session_count, confidence),
        share_metrics=gate_shares(shares, shares.total_shares, session_count, confidence),
    )


def validate_window_days(
    window_days: int, config: AggregationConfig
) -> list[AggregationValidationError]:
    errors: list[AggregationValidationError] = []
    if window_days < 1:
        errors.append(
            AggregationValidationError(
                code="INVALID_WINDOW",
                message="window_days must be at least 1",
                field_name="window_days",
            )
        )
    elif window_days > config.max_window_days:
        errors.append(
            AggregationValidationError(
                code="INVALID_WINDOW",
                message=f"window_days exceeds maximum ({config.max_window_days})",
                field_name="window_days",
            )
        )
    return errors


def _reference_tz(time_port: TimePort) -> tzinfo:
    return ZoneInfo(time_port.timezone_name)


# --- Component Entry Points ---


def run_dashboard(
    inp: DashboardInput,
    *,
    events: EventStorePort,
    sessions: SessionSourcePort,
    time_port: TimePort,
    articles: ArticleDirectoryPort | None = None,
    config: AggregationConfig | None = None,
) -> DashboardOutput:
    """
    Compute dashboard statistics for a rolling window.

    Args:
        inp: Input containing the window size
        events: Event store port
        sessions: Session store (read side)
        time_port: Clock and reference timezone
        articles: Optional article collaborator for sections, titles, counters
        config: Aggregation configuration

    Returns:
        DashboardOutput with stats, or validation errors
    """
    config = config or AggregationConfig()
    window_days = inp.window_days if inp.window_days is not None else config.default_window_days

    errors = validate_window_days(window_days, config)
    if errors:
        return DashboardOutput(stats=None, errors=errors, success=False)

    tz = _reference_tz(time_port)
    bounds = compute_window(time_port.now_utc(), tz, window_days)
    scan_start = min(bounds.window_start, bounds.last_month_start)

    view_events = events.list_article_events(start=scan_start, event_type="article_view")
    article_list = articles.list_articles() if articles is not None else []
    all_time = None
    if not any(a.view_count is not None for a in article_list):
        all_time = events.count_article_events("article_view")

    stats = build_dashboard_stats(
        bounds=bounds,
        tz=tz,
        view_events=view_events,
        sessions=sessions.list_started_between(bounds.window_start),
        share_events=events.list_share_events(start=bounds.window_start),
        articles=article_list,
        all_time_view_events=all_time,
        config=config,
    )
    logger.debug(
        "Dashboard computed: window=%sd views=%s sessions=%s",
        window_days,
        len(view_events),
        stats.reader_distribution.sample_size,
    )
    return DashboardOutput(stats=stats, errors=[], success=True)


def run(
    inp: DashboardInput,
    *,
    events: EventStorePort,
    sessions: SessionSourcePort,
    time_port: TimePort,
    articles: ArticleDirectoryPort | None = None,
    config: AggregationConfig | None = None,
) -> DashboardOutput:
    """
    Main entry point for the aggregation component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, DashboardInput):
        return run_dashboard(
            inp,
            events=events,
            sessions=sessions,
            time_port=time_port,
            articles=articles,
            config=config,
        )
    raise ValueError(f"Unknown input type: {type(inp)}")

import sqlite3
import threading
from datetime import UTC, datetime, timedelta

import pytest

from src.adapters.reference_time import FrozenTimeAdapter
from src.adapters.sqlite_db import (
    SQLiteArticleDirectory,
    SQLiteEventStore,
    SQLiteReadingSessionRepo,
    dict_factory,
    format_dt,
    parse_dt,
)
from src.components.sessions import ReadingSessionManager
from src.core.entities import (
    AcquisitionContext,
    ArticleEvent,
    ArticleMeta,
    EngagementEvent,
    GuestReader,
    RegisteredReader,
    ShareEvent,
)
from src.core.errors import DuplicateSessionError, UnknownSessionError

NOW = datetime(2026, 3, 15, 10, 0, 0, tzinfo=UTC)


@pytest.fixture
def time_port():
    return FrozenTimeAdapter(NOW)


@pytest.fixture
def session_repo(db_path):
    return SQLiteReadingSessionRepo(db_path)


@pytest.fixture
def manager(session_repo, time_port):
    return ReadingSessionManager(session_repo, time_port=time_port)


@pytest.fixture
def event_store(db_path):
    return SQLiteEventStore(db_path)


@pytest.fixture
def articles(db_path):
    return SQLiteArticleDirectory(db_path)


# --- Helpers ---


def test_format_dt_is_sortable_and_round_trips():
    early = datetime(2026, 1, 1, 9, 0, 0, tzinfo=UTC)
    late = datetime(2026, 1, 1, 10, 0, 0, 500, tzinfo=UTC)
    assert format_dt(early) < format_dt(late)
    assert parse_dt(format_dt(late)) == late


def test_format_dt_treats_naive_as_utc():
    assert format_dt(datetime(2026, 1, 1, 9, 0)) == "2026-01-01T09:00:00.000000+00:00"


# --- Reading sessions ---


def test_start_and_get_session(manager, session_repo):
    manager.start_session(
        "tok-1",
        "a1",
        RegisteredReader("u1"),
        AcquisitionContext(utm_source="newsletter", device_type="mobile"),
    )

    stored = session_repo.get_by_token("tok-1")
    assert stored is not None
    assert stored.reader == RegisteredReader("u1")
    assert stored.started_at == NOW
    assert stored.last_event_at == NOW
    assert stored.utm_source == "newsletter"
    assert stored.device_type == "mobile"
    assert stored.completed_at is None


def test_duplicate_token_rejected(manager):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    with pytest.raises(DuplicateSessionError):
        manager.start_session("tok-1", "a2", GuestReader("v2"))


def test_heartbeat_unknown_token(manager):
    with pytest.raises(UnknownSessionError):
        manager.heartbeat("missing", 10)


def test_complete_unknown_token(manager):
    with pytest.raises(UnknownSessionError):
        manager.complete("missing")


def test_heartbeat_progress_is_monotonic(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    time_port.advance(timedelta(seconds=30))
    assert manager.heartbeat("tok-1", 60).progress_percent == 60
    time_port.advance(timedelta(seconds=30))
    session = manager.heartbeat("tok-1", 40)
    assert session.progress_percent == 60
    assert session.last_event_at == NOW + timedelta(seconds=60)


def test_heartbeat_without_progress_keeps_value(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    manager.heartbeat("tok-1", 25)
    time_port.advance(timedelta(seconds=5))
    assert manager.heartbeat("tok-1").progress_percent == 25


def test_heartbeat_never_moves_last_event_before_start(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    time_port.set_now(NOW - timedelta(minutes=5))
    session = manager.heartbeat("tok-1", 5)
    assert session.last_event_at == NOW


def test_heartbeat_backfills_missing_context_only(manager):
    manager.start_session("tok-1", "a1", GuestReader("v1"), AcquisitionContext(utm_source="x"))
    session = manager.heartbeat(
        "tok-1", context=AcquisitionContext(utm_source="y", referrer="https://ref.example")
    )
    assert session.utm_source == "x"
    assert session.referrer == "https://ref.example"


def test_complete_is_idempotent(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    time_port.advance(timedelta(seconds=300))
    first = manager.complete("tok-1")
    time_port.advance(timedelta(seconds=60))
    second = manager.complete("tok-1")

    assert first.newly_completed is True
    assert second.newly_completed is False
    assert second.session.completed_at == NOW + timedelta(seconds=300)
    assert second.session.duration_seconds == 300


def test_complete_with_clock_skew_has_zero_duration(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    time_port.set_now(NOW - timedelta(seconds=10))
    result = manager.complete("tok-1")
    assert result.session.duration_seconds == 0


def test_concurrent_completion_writes_once(manager, time_port):
    manager.start_session("tok-1", "a1", GuestReader("v1"))
    time_port.advance(timedelta(seconds=120))

    results = []
    lock = threading.Lock()

    def worker():
        result = manager.complete("tok-1")
        with lock:
            results.append(result.newly_completed)

    threads = [threading.Thread(target=worker) for _ in range(6)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert results.count(True) == 1
    assert len(results) == 6


def test_list_started_between_is_half_open(manager, session_repo, time_port):
    manager.start_session("early", "a1", GuestReader("v1"))
    time_port.advance(timedelta(hours=1))
    manager.start_session("late", "a1", GuestReader("v2"))

    window = session_repo.list_started_between(NOW, NOW + timedelta(hours=1))
    assert [s.session_token for s in window] == ["early"]
    assert len(session_repo.list_started_between(NOW)) == 2


def test_external_connection(db_path, time_port):
    conn = sqlite3.connect(db_path)
    conn.row_factory = dict_factory
    try:
        repo = SQLiteReadingSessionRepo(db_path, connection=conn)
        ReadingSessionManager(repo, time_port=time_port).start_session(
            "tok-1", "a1", GuestReader("v1")
        )
        assert repo.get_by_token("tok-1") is not None
    finally:
        conn.close()


# --- Event store ---


def _article_event(at, event_type="article_view", article_id="a1"):
    return ArticleEvent(
        article_id=article_id,
        event_type=event_type,
        event_timestamp=at,
        reader_type="guest",
        visitor_key="v1",
    )


def test_article_events_filter_and_count(event_store):
    event_store.append_article_event(_article_event(NOW - timedelta(days=2)))
    event_store.append_article_event(_article_event(NOW))
    event_store.append_article_event(_article_event(NOW, event_type="share"))

    views = event_store.list_article_events(start=NOW - timedelta(days=1), event_type="article_view")
    assert len(views) == 1
    assert views[0].event_timestamp == NOW
    assert event_store.count_article_events("article_view") == 2
    assert event_store.count_article_events("article_view", end=NOW) == 1


def test_share_and_engagement_events_round_trip(event_store):
    event_store.append_share_event(
        ShareEvent(
            article_id="a1",
            channel="whatsapp",
            event_timestamp=NOW,
            reader_type="registered",
            user_id="u1",
            context="footer",
            metadata='{"channel":"whatsapp"}',
        )
    )
    event_store.append_engagement_event(
        EngagementEvent(event_type="scroll_depth", occurred_at=NOW, duration_ms=1500)
    )

    shares = event_store.list_share_events(start=NOW)
    assert shares[0].channel == "whatsapp"
    assert shares[0].user_id == "u1"
    assert shares[0].session_token is None

    engagement = event_store.list_engagement_events()
    assert engagement[0].event_type == "scroll_depth"
    assert engagement[0].duration_ms == 1500


# --- Article directory ---


def test_article_directory_counter(articles):
    articles.save(ArticleMeta(id="a1", title="One", section="news", view_count=0))
    articles.save(ArticleMeta(id="a2", title="Two"))

    articles.increment_view_counter("a1")
    articles.increment_view_counter("a1")
    articles.increment_view_counter("a2")
    articles.increment_view_counter("missing")

    assert articles.get_article_meta("a1").view_count == 2
    assert articles.get_article_meta("a2").view_count is None
    assert articles.get_article_meta("missing") is None
    assert [a.id for a in articles.list_articles()] == ["a1", "a2"]

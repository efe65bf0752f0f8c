"""
Unit tests for Events component.

Covers the event store and the tracking facade's coordination with the
session lifecycle manager.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from src.components.sessions import InMemoryReadingSessionRepo, ReadingSessionManager
from src.core.entities import (
    AcquisitionContext,
    ArticleEvent,
    ArticleMeta,
    GuestReader,
    RegisteredReader,
)
from src.core.errors import DuplicateSessionError, UnknownSessionError

from .._impl import InMemoryArticleDirectory, InMemoryEventStore
from ..component import (
    TrackingService,
    build_share_metadata,
    parse_engagement_metadata,
    parse_share_extra,
)

# --- Test Fixtures ---


class FakeTimePort:
    """Fake time port for testing."""

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or datetime(2026, 1, 14, 12, 0, 0, tzinfo=UTC)

    def now_utc(self) -> datetime:
        return self._now

    def advance(self, **kwargs: float) -> None:
        self._now = self._now + timedelta(**kwargs)


class ExplodingDirectory(InMemoryArticleDirectory):
    """Directory whose counter increment always fails."""

    def increment_view_counter(self, article_id: str) -> None:
        raise RuntimeError("counter offline")


GUEST = GuestReader(visitor_key="visitor-1")


@pytest.fixture
def time_port() -> FakeTimePort:
    return FakeTimePort()


@pytest.fixture
def store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def directory() -> InMemoryArticleDirectory:
    return InMemoryArticleDirectory(
        [ArticleMeta(id="a1", title="First", section="news")], track_views=True
    )


@pytest.fixture
def service(
    store: InMemoryEventStore, directory: InMemoryArticleDirectory, time_port: FakeTimePort
) -> TrackingService:
    manager = ReadingSessionManager(InMemoryReadingSessionRepo(), time_port=time_port)
    return TrackingService(manager, store, directory, time_port=time_port)


def event_types(store: InMemoryEventStore) -> list[str]:
    return [e.event_type for e in store.list_article_events()]


# --- Event Store ---


class TestInMemoryEventStore:
    """Window scans."""

    def test_half_open_window(self, store: InMemoryEventStore) -> None:
        base = datetime(2026, 1, 1, tzinfo=UTC)
        for hours in (0, 1, 2):
            store.append_article_event(
                ArticleEvent(
                    article_id="a1",
                    event_type="article_view",
                    event_timestamp=base + timedelta(hours=hours),
                    reader_type="guest",
                    visitor_key="v",
                )
            )

        events = store.list_article_events(base, base + timedelta(hours=2))

        assert len(events) == 2
        assert store.count_article_events("article_view", start=base + timedelta(hours=1)) == 2

    def test_filters_by_type(self, store: InMemoryEventStore) -> None:
        now = datetime(2026, 1, 1, tzinfo=UTC)
        for event_type in ("article_view", "share"):
            store.append_article_event(
                ArticleEvent(
                    article_id="a1",
                    event_type=event_type,
                    event_timestamp=now,
                    reader_type="guest",
                    visitor_key="v",
                )
            )

        assert len(store.list_article_events(event_type="share")) == 1


class TestInMemoryArticleDirectory:
    """External view counter."""

    def test_counter_increments_when_tracked(self, directory: InMemoryArticleDirectory) -> None:
        directory.increment_view_counter("a1")
        directory.increment_view_counter("a1")
        assert directory.get_article_meta("a1").view_count == 2

    def test_no_counter_when_untracked(self) -> None:
        directory = InMemoryArticleDirectory([ArticleMeta(id="a1", title="T")])
        directory.increment_view_counter("a1")
        assert directory.get_article_meta("a1").view_count is None


# --- Share metadata ---


class TestShareMetadata:
    """Share metadata building."""

    def test_parse_primitive_json(self) -> None:
        assert parse_share_extra("42") == 42

    def test_parse_object_kept_raw(self) -> None:
        assert parse_share_extra('{"a": 1}') == '{"a": 1}'

    def test_parse_invalid_kept_raw(self) -> None:
        assert parse_share_extra("not json") == "not json"

    def test_parse_empty(self) -> None:
        assert parse_share_extra(None) is None
        assert parse_share_extra("") is None

    def test_build_includes_channel_and_context(self) -> None:
        encoded = build_share_metadata("linkedin", "article_footer", None)
        assert json.loads(encoded) == {"channel": "linkedin", "context": "article_footer"}

    def test_oversized_extra_dropped(self) -> None:
        encoded = build_share_metadata("x", None, "y" * 5000)
        assert json.loads(encoded) == {"channel": "x"}


# --- Tracking facade ---


class TestSessionLifecycleEvents:
    """Lifecycle calls log matching article events."""

    def test_start_logs_started_with_context(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.start_reading_session(
            "tok-1", "a1", GUEST, AcquisitionContext(utm_source="newsletter")
        )

        [event] = store.list_article_events()
        assert event.event_type == "reading_session_started"
        assert event.session_token == "tok-1"
        assert event.visitor_key == "visitor-1"
        assert json.loads(event.metadata) == {"utm_source": "newsletter"}

    def test_duplicate_start_logs_nothing(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.start_reading_session("tok-1", "a1", GUEST)
        with pytest.raises(DuplicateSessionError):
            service.start_reading_session("tok-1", "a1", GUEST)
        assert event_types(store) == ["reading_session_started"]

    def test_heartbeat_logs_progress(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.start_reading_session("tok-1", "a1", GUEST)
        service.heartbeat("tok-1", 40)
        service.heartbeat("tok-1", 20)

        heartbeats = store.list_article_events(event_type="reading_session_heartbeat")
        assert [json.loads(e.metadata)["progress_percent"] for e in heartbeats] == [40, 40]

    def test_heartbeat_unknown_surfaces(self, service: TrackingService) -> None:
        with pytest.raises(UnknownSessionError):
            service.heartbeat("missing", 10)

    def test_completed_logged_once(
        self, service: TrackingService, store: InMemoryEventStore, time_port: FakeTimePort
    ) -> None:
        service.start_reading_session("tok-1", "a1", GUEST)
        time_port.advance(seconds=90)
        first = service.complete_reading_session("tok-1")
        second = service.complete_reading_session("tok-1")

        assert first.newly_completed and not second.newly_completed
        assert event_types(store).count("reading_session_completed") == 1


class TestRecordArticleView:
    """View recording with session attachment."""

    def test_view_without_session(
        self,
        service: TrackingService,
        store: InMemoryEventStore,
        directory: InMemoryArticleDirectory,
    ) -> None:
        result = service.record_article_view("a1", GUEST)

        assert result.event.event_type == "article_view"
        assert result.session is None
        assert directory.get_article_meta("a1").view_count == 1
        assert event_types(store) == ["article_view"]

    def test_view_starts_new_session(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        result = service.record_article_view(
            "a1", GUEST, session_token="tok-1", context=AcquisitionContext(referrer="r")
        )

        assert result.session_started is True
        assert result.session.referrer == "r"
        assert event_types(store) == ["article_view", "reading_session_started"]

    def test_view_heartbeats_existing_session(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.start_reading_session("tok-1", "a1", GUEST)

        result = service.record_article_view(
            "a1", GUEST, session_token="tok-1", context=AcquisitionContext(device_type="tablet")
        )

        assert result.session_started is False
        assert result.session.device_type == "tablet"
        assert event_types(store)[-1] == "reading_session_heartbeat"

    def test_counter_failure_does_not_fail_view(
        self, store: InMemoryEventStore, time_port: FakeTimePort
    ) -> None:
        manager = ReadingSessionManager(InMemoryReadingSessionRepo(), time_port=time_port)
        service = TrackingService(manager, store, ExplodingDirectory(), time_port=time_port)

        result = service.record_article_view("a1", GUEST)

        assert result.event.event_type == "article_view"
        assert store.count_article_events("article_view") == 1


class TestRecordShareEvent:
    """Share recording."""

    def test_share_attached_to_known_session(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.start_reading_session("tok-1", "a1", GUEST)

        result = service.record_share_event(
            "a1", "email", GUEST, context="toolbar", session_token="tok-1"
        )

        assert result.attached_session_token == "tok-1"
        assert store.list_share_events()[0].session_token == "tok-1"

    def test_share_unknown_session_recorded_unattached(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        result = service.record_share_event("a1", "email", GUEST, session_token="nope")

        assert result.attached_session_token is None
        assert len(store.list_share_events()) == 1
        assert service.sessions.get_session("nope") is None

    def test_share_mirrored_into_article_log(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        service.record_share_event(
            "a1", "linkedin", RegisteredReader("u1"), metadata_json='{"utm": "x"}'
        )

        [mirrored] = store.list_article_events(event_type="share")
        assert mirrored.user_id == "u1"
        assert json.loads(mirrored.metadata)["extra"] == '{"utm": "x"}'


class TestRecordEngagementEvent:
    """Generic engagement events."""

    def test_records_with_metadata(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        event = service.record_engagement_event(
            "empty_state_shown", article_id="a1", metadata={"surface": "search"}, duration_ms=120
        )

        assert store.list_engagement_events() == [event]
        assert json.loads(event.metadata) == {"surface": "search"}
        assert event.duration_ms == 120

    def test_unserializable_metadata_omitted_not_dropped(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        event = service.record_engagement_event("click", metadata={"bad": object()})

        assert event.metadata is None
        assert len(store.list_engagement_events()) == 1

    def test_string_metadata_revalidated(self, service: TrackingService) -> None:
        event = service.record_engagement_event("click", metadata='{"a": 1}')
        assert event.metadata == '{"a": 1}'

    def test_non_json_string_metadata_omitted(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        event = service.record_engagement_event("click", metadata="not json " + "x" * 100_000)

        assert event.metadata is None
        assert store.list_engagement_events() == [event]

    def test_oversized_string_value_omitted(self, service: TrackingService) -> None:
        raw = json.dumps({"note": "x" * 5000})
        event = service.record_engagement_event("click", metadata=raw)
        assert event.metadata is None

    def test_naive_occurred_at_stored_as_utc(
        self, service: TrackingService, store: InMemoryEventStore
    ) -> None:
        event = service.record_engagement_event(
            "click", occurred_at=datetime(2026, 1, 14, 9, 30)
        )

        assert event.occurred_at == datetime(2026, 1, 14, 9, 30, tzinfo=UTC)
        window = store.list_engagement_events(start=datetime(2026, 1, 14, tzinfo=UTC))
        assert window == [event]


class TestParseEngagementMetadata:
    """Serialized metadata from clients."""

    @pytest.mark.parametrize("raw", ["", "[1, 2]", "42", "{broken"])
    def test_rejected_inputs(self, raw: str) -> None:
        assert parse_engagement_metadata(raw) is None

    def test_too_many_keys(self) -> None:
        raw = json.dumps({f"k{i}": i for i in range(40)})
        assert parse_engagement_metadata(raw) is None

    def test_nested_values_rejected(self) -> None:
        assert parse_engagement_metadata('{"a": {"b": 1}}') is None

    def test_valid_object_normalized(self) -> None:
        assert parse_engagement_metadata('{"b": 2, "a": null, "c": "x"}') == '{"b": 2, "c": "x"}'

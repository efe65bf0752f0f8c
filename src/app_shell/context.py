from __future__ import annotations

from dataclasses import dataclass

from src.adapters.http_transport import HttpTrackingTransport
from src.adapters.reference_time import ReferenceTimeAdapter, create_time_adapter
from src.adapters.sqlite_db import (
    SQLiteArticleDirectory,
    SQLiteEventStore,
    SQLiteReadingSessionRepo,
)
from src.components.aggregation import (
    AggregationConfig,
    DashboardInput,
    DashboardOutput,
    run_dashboard,
)
from src.components.emitter import (
    EngagementTracker,
    InProcessTransport,
    ThreadPoolDispatcher,
    TrackingTransportPort,
)
from src.components.events import TrackingService
from src.components.identity import IdentityContext
from src.components.sessions import ReadingSessionManager
from src.rules.loader import aggregation_config, completion_policy, metadata_limits
from src.rules.models import Rules


@dataclass
class ServiceContext:
    """Wired services for one SQLite database."""

    rules: Rules
    time: ReferenceTimeAdapter
    session_repo: SQLiteReadingSessionRepo
    event_store: SQLiteEventStore
    articles: SQLiteArticleDirectory
    sessions: ReadingSessionManager
    tracking: TrackingService
    aggregation: AggregationConfig

    @classmethod
    def create(
        cls,
        db_path: str,
        rules: Rules,
        time: ReferenceTimeAdapter | None = None,
    ) -> ServiceContext:
        # Adapters
        time = time or create_time_adapter(rules.aggregation.reference_timezone)
        session_repo = SQLiteReadingSessionRepo(db_path)
        event_store = SQLiteEventStore(db_path)
        articles = SQLiteArticleDirectory(db_path)

        # Services
        sessions = ReadingSessionManager(
            session_repo, time_port=time, policy=completion_policy(rules)
        )
        tracking = TrackingService(
            sessions,
            event_store,
            articles=articles,
            time_port=time,
            limits=metadata_limits(rules),
        )

        return cls(
            rules=rules,
            time=time,
            session_repo=session_repo,
            event_store=event_store,
            articles=articles,
            sessions=sessions,
            tracking=tracking,
            aggregation=aggregation_config(rules),
        )

    def dashboard(self, window_days: int | None = None) -> DashboardOutput:
        return run_dashboard(
            DashboardInput(window_days=window_days),
            events=self.event_store,
            sessions=self.session_repo,
            time_port=self.time,
            articles=self.articles,
            config=self.aggregation,
        )

    def create_tracker(
        self,
        identity: IdentityContext,
        base_url: str | None = None,
        default_article_id: str | None = None,
    ) -> EngagementTracker:
        """
        Client-side tracker on a background thread pool.

        Sends over HTTP when base_url is given, otherwise straight into this
        context's tracking service.
        The caller owns the returned tracker and must call close() on it.
        """
        tracking_rules = self.rules.tracking
        transport: TrackingTransportPort
        if base_url:
            transport = HttpTrackingTransport(
                base_url, timeout=tracking_rules.http_timeout_seconds
            )
        else:
            transport = InProcessTransport(self.tracking)
        return EngagementTracker(
            identity,
            transport,
            dispatcher=ThreadPoolDispatcher(max_workers=tracking_rules.dispatcher_max_workers),
            default_article_id=default_article_id,
            limits=metadata_limits(self.rules),
        )

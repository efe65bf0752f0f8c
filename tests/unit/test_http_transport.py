"""
HTTP tracking transport tests using httpx.MockTransport.
"""

from __future__ import annotations

import json

import httpx
import pytest

from src.adapters.http_transport import HttpTrackingTransport
from src.components.emitter import EngagementPayload, EngagementTracker, SharePayload
from src.components.identity import IdentityContext, InMemoryVisitorStorage


class Recorder:
    def __init__(self, status_code: int = 200) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = status_code

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": True})


def make_transport(recorder: Recorder) -> HttpTrackingTransport:
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    return HttpTrackingTransport("https://analytics.example/", client=client)


def test_send_engagement_posts_payload():
    recorder = Recorder()
    transport = make_transport(recorder)

    transport.send_engagement(EngagementPayload(event_type="scroll", duration_ms=10))

    request = recorder.requests[0]
    assert request.method == "POST"
    assert str(request.url) == "https://analytics.example/api/track/engagement"
    body = json.loads(request.content)
    assert body["event_type"] == "scroll"
    assert body["duration_ms"] == 10


def test_send_share_posts_payload():
    recorder = Recorder()
    transport = make_transport(recorder)

    transport.send_share(SharePayload(article_id="a1", channel="x", visitor_key="v1"))

    request = recorder.requests[0]
    assert request.url.path == "/api/track/share"
    assert json.loads(request.content)["channel"] == "x"


def test_error_status_raises():
    transport = make_transport(Recorder(status_code=503))
    with pytest.raises(httpx.HTTPStatusError):
        transport.send_engagement(EngagementPayload(event_type="scroll"))


def test_tracker_swallows_transport_failure():
    transport = make_transport(Recorder(status_code=500))
    identity = IdentityContext.create(InMemoryVisitorStorage())
    tracker = EngagementTracker(identity, transport, default_article_id="a1")

    result = tracker.track_share("whatsapp", surface="footer").result()

    assert result.delivered is False
    assert "500" in result.error


def test_close_only_owned_client():
    recorder = Recorder()
    client = httpx.Client(transport=httpx.MockTransport(recorder))
    transport = HttpTrackingTransport("https://analytics.example", client=client)
    transport.close()
    assert client.is_closed is False

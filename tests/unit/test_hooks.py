"""Unit tests for merge request hooks."""

import json
import logging
from unittest.mock import MagicMock

import httpx

from refresher.state.models import MergeRequest
from refresher.sync.hooks import (
    CompositeHookNotifier,
    HttpHookNotifier,
    LoggingHookNotifier,
    build_hook_payload,
)


def make_merge_request() -> MergeRequest:
    return MergeRequest(
        id=5,
        source_project_id=2,
        source_branch="master",
        target_project_id=1,
        target_branch="feature",
    )


class TestHookPayload:
    """Tests for hook payloads."""

    def test_payload(self):
        payload = build_hook_payload(make_merge_request(), "merge")

        assert payload["object_kind"] == "merge_request"
        assert payload["object_attributes"]["action"] == "merge"
        assert payload["object_attributes"]["id"] == 5
        assert payload["object_attributes"]["source_project_id"] == 2


class TestHttpHookNotifier:
    """Tests for HttpHookNotifier."""

    def test_posts_to_every_url(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        notifier = HttpHookNotifier(
            ["https://a.example.com/hook", "https://b.example.com/hook"],
            client=client,
        )

        notifier.notify(make_merge_request(), "update")

        assert [str(r.url) for r in requests] == [
            "https://a.example.com/hook",
            "https://b.example.com/hook",
        ]
        body = json.loads(requests[0].content)
        assert body["object_attributes"]["action"] == "update"
        assert requests[0].headers["X-Refresher-Event"] == "merge_request"

    def test_failure_is_logged_not_raised(self, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "down.example.com":
                return httpx.Response(503)
            return httpx.Response(200)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        notifier = HttpHookNotifier(
            ["https://down.example.com/hook", "https://up.example.com/hook"],
            client=client,
        )

        with caplog.at_level(logging.WARNING):
            notifier.notify(make_merge_request(), "merge")

        assert "down.example.com" in caplog.text

    def test_close_closes_client(self):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        notifier = HttpHookNotifier(["https://a.example.com/hook"], client=client)

        notifier.close()

        assert client.is_closed


class TestCompositeHookNotifier:
    """Tests for CompositeHookNotifier."""

    def test_failing_notifier_does_not_block_others(self):
        failing = MagicMock()
        failing.notify.side_effect = RuntimeError("boom")
        working = MagicMock()
        merge_request = make_merge_request()

        CompositeHookNotifier([failing, working]).notify(merge_request, "update")

        working.notify.assert_called_once_with(merge_request, "update")

    def test_close_closes_every_notifier(self):
        first = MagicMock()
        second = MagicMock()

        CompositeHookNotifier([first, second]).close()

        first.close.assert_called_once_with()
        second.close.assert_called_once_with()

    def test_logging_notifier(self, caplog):
        with caplog.at_level(logging.INFO):
            LoggingHookNotifier().notify(make_merge_request(), "merge")
        assert "!5" in caplog.text
        assert "merge" in caplog.text

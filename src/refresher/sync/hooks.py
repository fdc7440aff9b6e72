"""Merge request lifecycle hooks."""

import logging
from abc import ABC, abstractmethod

import httpx

from refresher.state.models import MergeRequest


logger = logging.getLogger(__name__)


def build_hook_payload(merge_request: MergeRequest, action: str) -> dict:
    """Build the JSON body announcing a merge request event."""
    return {
        "object_kind": "merge_request",
        "object_attributes": {
            **merge_request.to_dict(),
            "action": action,
        },
    }


class HookNotifier(ABC):
    """Announces merge request lifecycle actions."""

    @abstractmethod
    def notify(self, merge_request: MergeRequest, action: str) -> None:
        """Fire ``action`` for a merge request. Delivery is best effort."""

    def close(self) -> None:
        """Release resources held by the notifier."""


class LoggingHookNotifier(HookNotifier):
    """Notifier that only logs the event."""

    def notify(self, merge_request: MergeRequest, action: str) -> None:
        logger.info(f"Merge request !{merge_request.id} hook: {action}")


class HttpHookNotifier(HookNotifier):
    """Delivers hook payloads to webhook URLs over HTTP."""

    def __init__(
        self,
        urls: list[str],
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ):
        """Initialize the notifier.

        Args:
            urls: Endpoints receiving every event
            timeout: Request timeout in seconds
            client: HTTP client to use (created if not provided)
        """
        self.urls = list(urls)
        self._client = client or httpx.Client(timeout=timeout)

    def notify(self, merge_request: MergeRequest, action: str) -> None:
        payload = build_hook_payload(merge_request, action)
        for url in self.urls:
            try:
                response = self._client.post(
                    url,
                    json=payload,
                    headers={"X-Refresher-Event": "merge_request"},
                )
                response.raise_for_status()
            except httpx.HTTPError as e:
                logger.warning(
                    f"Hook delivery to {url} failed for merge request "
                    f"!{merge_request.id} ({action}): {e}"
                )

    def close(self) -> None:
        self._client.close()


class CompositeHookNotifier(HookNotifier):
    """Fans an event out to several notifiers."""

    def __init__(self, notifiers: list[HookNotifier]):
        self.notifiers = list(notifiers)

    def notify(self, merge_request: MergeRequest, action: str) -> None:
        for notifier in self.notifiers:
            try:
                notifier.notify(merge_request, action)
            except Exception as e:
                logger.warning(
                    f"{notifier.__class__.__name__} failed for merge request "
                    f"!{merge_request.id}: {e}"
                )

    def close(self) -> None:
        for notifier in self.notifiers:
            notifier.close()

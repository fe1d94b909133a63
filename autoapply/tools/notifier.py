"""
Run notifications.

Fire-and-forget: the orchestrator logs notifier failures and never lets them
change a run's outcome.
"""

import logging

import httpx

from autoapply.config import settings

logger = logging.getLogger(__name__)


class Notifier:
    """Logs run events. Base for delivery channels."""

    def notify(self, user_id: str, event: str, payload: dict):
        logger.info(f"[notify:{user_id}] {event}: {payload}")


class WebhookNotifier(Notifier):
    """POSTs run events as JSON to a webhook."""

    def __init__(self, url: str, http_client: httpx.Client | None = None):
        self.url = url
        self._http_client = http_client

    def notify(self, user_id: str, event: str, payload: dict):
        body = {"user_id": user_id, "event": event, **payload}
        if self._http_client is not None:
            self._http_client.post(self.url, json=body).raise_for_status()
            return
        with httpx.Client(timeout=settings.search_timeout) as client:
            response = client.post(self.url, json=body)
            response.raise_for_status()


def create_notifier() -> Notifier:
    if settings.notify_webhook_url:
        return WebhookNotifier(settings.notify_webhook_url)
    return Notifier()

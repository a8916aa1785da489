"""Chat webhook notification for finished review runs."""

from typing import Any

import httpx
import structlog

from hunkrev.core.exceptions import NotificationError
from hunkrev.core.metrics import record_notification
from hunkrev.services.review.summary import RunSummary

logger = structlog.get_logger()


class WebhookNotifier:
    """Posts a run summary to a Slack-compatible incoming webhook."""

    def __init__(self, webhook_url: str | None, timeout: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def build_payload(self, summary: RunSummary) -> dict[str, Any]:
        return {"text": summary.to_text()}

    async def notify(self, summary: RunSummary) -> bool:
        """
        Send the summary. Returns False when no webhook is configured.

        Raises:
            NotificationError: If the webhook call fails.
        """
        if not self.enabled:
            logger.debug("No notification webhook configured, skipping")
            record_notification("skipped")
            return False

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,  # type: ignore[arg-type]
                    json=self.build_payload(summary),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            record_notification("failed")
            raise NotificationError(f"Notification webhook failed: {e}") from e

        record_notification("sent")
        logger.info("Sent run notification", comment_count=summary.comment_count)
        return True

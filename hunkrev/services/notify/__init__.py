from hunkrev.services.notify.webhook import WebhookNotifier

__all__ = ["WebhookNotifier"]

from mavrikan.schemas.webhook import WahaMessage, WahaWebhook, WebhookResponse

__all__ = ["WahaMessage", "WahaWebhook", "WebhookResponse"]

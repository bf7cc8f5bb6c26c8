from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

MESSAGE_EVENTS = ("message", "message.any")
POLL_VOTE_EVENT = "poll.vote"


class WahaMessage(BaseModel):
    """The fields of a WAHA message payload the bot reads; everything else is kept as-is."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    to: Optional[str] = None
    fromMe: Optional[bool] = False
    body: Optional[str] = None
    hasMedia: Optional[bool] = False
    source: Optional[str] = None
    isStatusV3: Optional[bool] = False
    isBroadcast: Optional[bool] = False

    @property
    def skipped(self) -> bool:
        """Status updates and broadcast lists never reach the dialog."""
        return bool(self.isStatusV3 or self.isBroadcast) or (self.from_ or "").endswith("@broadcast")


class WahaWebhook(BaseModel):
    event: Optional[str] = None
    session: Optional[str] = None
    payload: dict[str, Any] = Field(default_factory=dict)


class WebhookResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    duplicate: Optional[bool] = None
    rate_limited: Optional[bool] = Field(default=None, serialization_alias="rateLimited")
    ignored: Optional[bool] = None
    outcome: Optional[str] = None

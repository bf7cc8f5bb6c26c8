from typing import Optional

import httpx

from mavrikan.config import settings
from mavrikan.logging_config import get_logger
from mavrikan.services.identity_service import mask_phone

logger = get_logger("waha_service")


class WahaError(Exception):
    """Raised when a WAHA read call fails."""


class WahaService:
    """Service for talking to a WAHA (WhatsApp HTTP API) instance."""

    TIMEOUT_SECONDS = 30.0

    def __init__(self, base_url: str, api_key: Optional[str] = None, session: str = "default"):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.session = session

    def _headers(self) -> dict:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["X-Api-Key"] = self.api_key
        return headers

    def _post(self, path: str, data: dict) -> bool:
        """POST to WAHA; failures are logged and reported as False."""
        url = f"{self.base_url}{path}"
        try:
            with httpx.Client(timeout=self.TIMEOUT_SECONDS) as client:
                response = client.post(url, json=data, headers=self._headers())
            if response.status_code >= 300:
                logger.error(
                    "WAHA request rejected",
                    extra={"context": {"path": path, "status": response.status_code, "body": response.text[:200]}},
                )
                return False
            return True
        except httpx.HTTPError as e:
            logger.error(f"WAHA API error: {e}", extra={"context": {"path": path}})
            return False

    def send_text(self, chat_id: str, text: str) -> bool:
        """Send text message to a chat."""
        ok = self._post("/api/sendText", {"session": self.session, "chatId": chat_id, "text": text})
        if ok:
            logger.info("Sent text", extra={"context": {"chat": mask_phone(chat_id.split("@", 1)[0])}})
        return ok

    def send_image(self, chat_id: str, image_url: str, caption: str = "") -> bool:
        """Send image by URL to a chat."""
        data = {
            "session": self.session,
            "chatId": chat_id,
            "file": {"url": image_url},
            "caption": caption,
        }
        ok = self._post("/api/sendImage", data)
        if ok:
            logger.info("Sent image", extra={"context": {"chat": mask_phone(chat_id.split("@", 1)[0])}})
        return ok

    def list_chats(self, limit: int = 100, offset: int = 0) -> list[dict]:
        """Fetch one page of chats, newest first."""
        url = f"{self.base_url}/api/{self.session}/chats"
        params = {"limit": limit, "offset": offset, "sortBy": "messageTimestamp", "sortOrder": "desc"}
        try:
            with httpx.Client(timeout=self.TIMEOUT_SECONDS) as client:
                response = client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as e:
            raise WahaError(f"Cannot reach WAHA at {self.base_url}: {e}") from e

        if response.status_code == 404:
            raise WahaError(f"WAHA session '{self.session}' not found. Is the session started?")
        if response.status_code >= 300:
            raise WahaError(f"WAHA returned {response.status_code}: {response.text[:200]}")

        chats = response.json()
        return chats if isinstance(chats, list) else []


def get_gateway() -> WahaService:
    """FastAPI dependency building the gateway from settings."""
    return WahaService(settings.waha_url, settings.waha_api_key, settings.waha_session)

# Overview: Twilio WhatsApp adapter.

from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from ..errors import UpstreamServiceError


logger = logging.getLogger(__name__)


class MessagingError(UpstreamServiceError):
    pass


@dataclass(frozen=True)
class SentMessage:
    message_id: str
    status: str

    def to_dict(self) -> dict:
        return {"messageId": self.message_id, "status": self.status}


class WhatsAppClient:
    """Sends WhatsApp messages through the Twilio Messages API."""

    def __init__(self, account_sid: str, auth_token: str, from_number: str, base_url: str, http: httpx.Client):
        self.account_sid = account_sid
        self.auth_token = auth_token
        self.from_number = from_number
        self.base_url = base_url.rstrip("/")
        self.http = http

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    @property
    def _auth(self):
        return (self.account_sid, self.auth_token)

    def send(self, to: str, body: str, media_url: str | None = None) -> SentMessage:
        form = {
            "From": self.from_number,
            "To": f"whatsapp:{to}",
            "Body": body,
        }
        if media_url:
            form["MediaUrl"] = media_url
        url = f"{self.base_url}/Accounts/{self.account_sid}/Messages.json"
        try:
            response = self.http.post(url, data=form, auth=self._auth)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error sending WhatsApp message to %s: %s", to, e)
            raise MessagingError("Failed to send WhatsApp message", cause=e) from e

        logger.info("WhatsApp message sent: %s", payload.get("sid"))
        return SentMessage(message_id=payload.get("sid", ""), status=payload.get("status", "queued"))

    def ping(self) -> None:
        url = f"{self.base_url}/Accounts/{self.account_sid}.json"
        try:
            self.http.get(url, auth=self._auth).raise_for_status()
        except httpx.HTTPError as e:
            raise MessagingError("Messaging provider unreachable", cause=e) from e

"""Outbound SMS over the Twilio REST API."""

from __future__ import annotations

import asyncio
import logging

import httpx

from bookshelf_sms.webhook.phone import mask_phone
from bookshelf_sms.webhook.twiml import split_message

logger = logging.getLogger(__name__)

_MAX_RETRIES = 3
_BACKOFF_CAP_SECONDS = 30
_TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"

WELCOME_MESSAGE = """Welcome to Bookshelf SMS Assistant!

You can manage your reading via text:

📖 Progress: "page 150" or "50%"
▶️ Start: "start [book title]"
✅ Finish: "finished [book]"
🔍 Search: "find Harry Potter"
📊 Status: "what am I reading?"
📈 Stats: "my stats"
❓ Help: "help"

Just text naturally!"""


class TwilioSendError(Exception):
    """Raised when Twilio refuses a message or retries are exhausted."""

    def __init__(self, status_code: int, detail: str) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Twilio send failed ({status_code}): {detail}")


class TwilioSender:
    """Send SMS messages from one Twilio number."""

    def __init__(
        self,
        account_sid: str,
        auth_token: str,
        from_number: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._account_sid = account_sid
        self._auth_token = auth_token
        self._from_number = from_number
        self._transport = transport

    @property
    def messages_url(self) -> str:
        return f"{_TWILIO_API_BASE}/Accounts/{self._account_sid}/Messages.json"

    async def send_sms(self, to: str, body: str) -> str:
        """Send ``body`` to ``to`` and return the message sid.

        A body longer than one concatenated SMS goes out as several messages,
        split at word or sentence breaks and sent in order; the sid of the
        last one is returned. Retries on 429 and 5xx with exponential backoff
        capped at 30s. Other error statuses raise immediately.
        """
        auth = (self._account_sid, self._auth_token)
        sid = ""
        async with httpx.AsyncClient(verify=True, transport=self._transport) as client:
            for chunk in split_message(body):
                sid = await self._post(client, to, chunk, auth)
        return sid

    async def _post(
        self, client: httpx.AsyncClient, to: str, body: str, auth: tuple[str, str],
    ) -> str:
        data = {"To": to, "From": self._from_number, "Body": body}
        for attempt in range(_MAX_RETRIES + 1):
            resp = await client.post(self.messages_url, data=data, auth=auth)

            if resp.status_code < 400:
                sid = resp.json().get("sid", "")
                logger.info("SMS sent to %s: %s", mask_phone(to), sid)
                return sid
            if not self._should_retry(resp.status_code) or attempt == _MAX_RETRIES:
                raise TwilioSendError(resp.status_code, resp.text)
            delay = min(2 ** attempt, _BACKOFF_CAP_SECONDS)
            logger.warning(
                "Twilio returned %d for %s, retrying in %ds",
                resp.status_code, mask_phone(to), delay,
            )
            await asyncio.sleep(delay)
        raise AssertionError("unreachable")

    @staticmethod
    def _should_retry(status_code: int) -> bool:
        return status_code == 429 or status_code >= 500

"""
Outbound email over a SendGrid-compatible JSON API.

Without an API key configured the message is logged and skipped, which is
the normal mode for local development and tests.  The process shares one
``Mailer`` (``get_mailer``) whose HTTP client is created on first send and
closed by the application lifespan.
"""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from src.config import settings

logger = logging.getLogger(__name__)


class Mailer:
    def __init__(
        self,
        api_url: str = settings.email_api_url,
        api_key: Optional[str] = settings.email_api_key,
        from_address: str = settings.email_from_address,
        from_name: str = settings.email_from_name,
        timeout: float = settings.email_timeout_seconds,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_url = api_url
        self.api_key = api_key
        self.from_address = from_address
        self.from_name = from_name
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def send(self, to: str, subject: str, text: str) -> bool:
        """Send one plain-text email.  Returns False when delivery is disabled.

        Transport errors propagate; callers decide whether to swallow them.
        """
        if not self.api_key:
            logger.info("Email disabled, skipping %r to %s", subject, to)
            return False

        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": self.from_address, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/plain", "value": text}],
        }
        response = await self.client.post(
            self.api_url,
            json=payload,
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        response.raise_for_status()
        logger.info("Email %r sent to %s", subject, to)
        return True


_mailer: Optional[Mailer] = None


def get_mailer() -> Mailer:
    global _mailer
    if _mailer is None:
        _mailer = Mailer()
    return _mailer


async def close_mailer() -> None:
    global _mailer
    if _mailer is not None:
        await _mailer.close()
        _mailer = None

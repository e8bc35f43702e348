from __future__ import annotations

import logging

import httpx

from app.application.exceptions import CalendarFeedError
from app.application.ports.calendar_feed import CalendarFeedPort
from app.core.config import settings


class ICalFeedClient(CalendarFeedPort):
    def __init__(
        self,
        url: str | None = None,
        timeout_seconds: float | None = None,
        user_agent: str | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url if url is not None else settings.CALENDAR_FEED_URL
        timeout = timeout_seconds if timeout_seconds is not None else settings.CALENDAR_FETCH_TIMEOUT_SECONDS
        self._client = client or httpx.Client(timeout=timeout, follow_redirects=True)
        self._headers = {"User-Agent": user_agent or settings.CALENDAR_USER_AGENT}
        self._logger = logging.getLogger(__name__)

    def fetch(self) -> str:
        if not self._url:
            raise CalendarFeedError("CALENDAR_FEED_URL is not configured")
        try:
            response = self._client.get(self._url, headers=self._headers)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise CalendarFeedError(f"Calendar feed timed out: {e}") from e
        except httpx.HTTPStatusError as e:
            raise CalendarFeedError(f"Calendar feed returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise CalendarFeedError(f"Calendar feed request failed: {e}") from e

        text = response.text
        if "BEGIN:VCALENDAR" not in text:
            raise CalendarFeedError("Calendar feed response is not a calendar document")
        self._logger.debug("Calendar feed fetched", extra={"event_count": text.count("BEGIN:VEVENT")})
        return text

    def close(self) -> None:
        self._client.close()

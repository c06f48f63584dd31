from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlparse
from urllib.request import Request, urlopen

from icsio.config import FetchSettings
from icsio.errors import FetchError

logger = logging.getLogger(__name__)

_ALLOWED_SCHEMES = {"http", "https"}


class TextFetcher(Protocol):
    def fetch_text(self, url: str) -> str: ...


def normalize_url(url: str) -> str:
    """Rewrite webcal:// to https:// and reject anything that is not http(s)."""
    candidate = url.strip()
    if candidate.lower().startswith("webcal://"):
        candidate = "https://" + candidate[len("webcal://"):]
    parsed = urlparse(candidate)
    if parsed.scheme.lower() not in _ALLOWED_SCHEMES or not parsed.netloc:
        raise FetchError(f"Calendar URL must use http://, https:// or webcal://: {url}")
    return candidate


@dataclass(frozen=True)
class UrlFetcher:
    timeout_sec: float
    user_agent: str

    @classmethod
    def from_settings(cls, settings: FetchSettings) -> UrlFetcher:
        return cls(timeout_sec=settings.timeout_sec, user_agent=settings.user_agent)

    @classmethod
    def from_env(cls) -> UrlFetcher:
        return cls.from_settings(FetchSettings.from_env())

    def fetch_text(self, url: str) -> str:
        target = normalize_url(url)
        request = Request(
            target,
            method="GET",
            headers={
                "User-Agent": self.user_agent,
                "Accept": "text/calendar, text/plain;q=0.9, */*;q=0.1",
            },
        )
        try:
            with urlopen(request, timeout=self.timeout_sec) as response:
                charset = response.headers.get_content_charset() or "utf-8"
                payload = response.read()
        except HTTPError as exc:
            logger.warning("ics_fetch_http_error status=%s", exc.code)
            raise FetchError(f"Calendar request failed with HTTP {exc.code}.") from None
        except URLError:
            raise FetchError("Calendar endpoint is unreachable.") from None
        except TimeoutError:
            raise FetchError("Calendar request timed out.") from None

        try:
            return payload.decode(charset)
        except (LookupError, UnicodeDecodeError):
            raise FetchError(f"Calendar response is not valid {charset} text.") from None

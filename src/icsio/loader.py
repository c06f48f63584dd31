from __future__ import annotations

from collections.abc import Callable
import logging
from pathlib import Path
import time

from icsio.config import FetchSettings
from icsio.connectors.http import TextFetcher, UrlFetcher
from icsio.errors import FetchError
from icsio.models import Calendar
from icsio.parser import ParseResult, parse_with_diagnostics

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], None]


def load_file(path: str | Path) -> ParseResult:
    """Read a UTF-8 .ics file and parse it."""
    source = Path(path).expanduser()
    text = source.read_text(encoding="utf-8")
    return parse_with_diagnostics(text)


def fetch_text_with_retries(
    fetcher: TextFetcher,
    url: str,
    *,
    retries: int = 0,
    backoff_sec: int = 0,
    sleep_fn: SleepFn = time.sleep,
) -> str:
    """Fetch the whole body as one unit, retrying FetchError with exponential backoff."""
    if retries < 0:
        raise ValueError("retries must be >= 0.")
    if backoff_sec < 0:
        raise ValueError("backoff_sec must be >= 0.")

    last_error: FetchError | None = None
    for attempt in range(retries + 1):
        try:
            return fetcher.fetch_text(url)
        except FetchError as exc:
            last_error = exc
            logger.warning(
                "ics_fetch_attempt_failed attempt=%s retries=%s error=%s",
                attempt + 1,
                retries,
                exc,
            )
            if attempt == retries:
                break
            delay_sec = backoff_sec * (2**attempt)
            logger.info("ics_fetch_retrying next_attempt=%s backoff_sec=%s", attempt + 2, delay_sec)
            sleep_fn(float(delay_sec))

    assert last_error is not None
    raise last_error


def fetch_with_diagnostics(
    url: str,
    *,
    fetcher: TextFetcher | None = None,
    settings: FetchSettings | None = None,
    sleep_fn: SleepFn = time.sleep,
) -> ParseResult:
    resolved_settings = settings or FetchSettings.from_env()
    resolved_fetcher = fetcher or UrlFetcher.from_settings(resolved_settings)
    text = fetch_text_with_retries(
        resolved_fetcher,
        url,
        retries=resolved_settings.retries,
        backoff_sec=resolved_settings.backoff_sec,
        sleep_fn=sleep_fn,
    )
    return parse_with_diagnostics(text)


def fetch_and_parse(
    url: str,
    *,
    fetcher: TextFetcher | None = None,
    settings: FetchSettings | None = None,
) -> Calendar:
    """GET `url`, wait for the full body, then parse it. Parse errors are never retried."""
    return fetch_with_diagnostics(url, fetcher=fetcher, settings=settings).calendar

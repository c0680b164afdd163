from typing import Callable, Optional, TypeVar
from urllib.parse import quote, urljoin

T = TypeVar("T")


def full_url(base: str, path_or_url: str) -> str:
    if path_or_url.startswith("http://") or path_or_url.startswith("https://"):
        return path_or_url
    return urljoin(base, path_or_url)


def ensure_scheme(url: str) -> str:
    """Prefix http:// when the URL carries no scheme."""
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    return "http://" + url


def api_url(base: str, *segments: str) -> str:
    """
    Join an API base with path segments.
    Each segment is percent-encoded, so notebook names may contain "/" or spaces.
    """
    path = "/".join(quote(str(s), safe="") for s in segments)
    return f"{base.rstrip('/')}/{path}"


def poll_until(
    check: Callable[[], Optional[T]],
    *,
    interval_ms: int,
    attempts: int,
    sleep: Callable[[float], None],
    cancelled: Optional[Callable[[], bool]] = None,
) -> Optional[T]:
    """
    Call `check` until it returns something truthy.

    Args:
        check: Readiness probe; its first truthy result is returned
        interval_ms: Pause between probes
        attempts: Probe ceiling; interval_ms * attempts is the timeout
        sleep: Waits the given milliseconds (e.g. page.wait_for_timeout)
        cancelled: Stops the wait early when it returns True

    Returns:
        The probe's result, or None on timeout or cancellation
    """
    for attempt in range(attempts):
        if cancelled is not None and cancelled():
            return None
        result = check()
        if result:
            return result
        if attempt + 1 < attempts:
            sleep(interval_ms)
    return None

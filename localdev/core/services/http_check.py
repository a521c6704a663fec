"""
HTTP readiness polling.

Used to wait for a freshly started web container to serve its site.
Plain ``urllib.request``; connection errors and unexpected statuses
both count as "not yet" until the retry budget runs out.
"""

from __future__ import annotations

import base64
import logging
import threading
import time
import urllib.error
import urllib.request

from localdev.core.errors import NotReady, OperationCancelled

logger = logging.getLogger(__name__)


def fetch_status(
    url: str,
    *,
    method: str = "GET",
    body: bytes | None = None,
    username: str = "",
    password: str = "",
    timeout: float = 5.0,
) -> int | None:
    """Issue one request and return its status, or None if unreachable.

    Non-2xx statuses are returned, not raised.
    """
    req = urllib.request.Request(url, data=body, method=method)
    if username or password:
        token = base64.b64encode(f"{username}:{password}".encode()).decode()
        req.add_header("Authorization", f"Basic {token}")

    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            return resp.status
    except urllib.error.HTTPError as e:
        return e.code
    except (urllib.error.URLError, OSError) as e:
        logger.debug("%s %s: %s", method, url, e)
        return None


def ensure_http_status(
    url: str,
    *,
    method: str = "GET",
    body: bytes | None = None,
    username: str = "",
    password: str = "",
    retries: int = 300,
    expected_status: int = 200,
    interval: float = 1.0,
    timeout: float = 5.0,
    cancel: threading.Event | None = None,
) -> None:
    """Poll ``url`` until it answers with ``expected_status``.

    Args:
        retries: Maximum number of requests.
        interval: Seconds to sleep between attempts.
        timeout: Per-request timeout in seconds.
        cancel: Optional event; when set, polling stops at the next
            attempt boundary.

    Raises:
        NotReady: If the budget is exhausted.
        OperationCancelled: If ``cancel`` was set.
    """
    last: int | None = None
    for attempt in range(1, retries + 1):
        if cancel is not None and cancel.is_set():
            raise OperationCancelled(f"Cancelled while waiting for {url}")

        last = fetch_status(
            url, method=method, body=body,
            username=username, password=password, timeout=timeout,
        )
        if last == expected_status:
            logger.info("%s answered %d after %d attempt(s)", url, last, attempt)
            return

        if attempt < retries:
            if cancel is not None:
                if cancel.wait(interval):
                    raise OperationCancelled(f"Cancelled while waiting for {url}")
            elif interval:
                time.sleep(interval)

    seen = f"last status {last}" if last is not None else "no response"
    raise NotReady(
        f"{expected_status} was not returned from {url} after {retries} attempts ({seen})"
    )

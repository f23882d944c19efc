"""Post the stats comment to the pull request."""

from __future__ import annotations

import requests

from .errors import NotifyError
from .log import log

DEFAULT_TIMEOUT = 30


def send_comment(endpoint: str, token: str, body: str, timeout: float = DEFAULT_TIMEOUT) -> None:
    headers = {
        "Authorization": f"token {token}",
        "Accept": "application/vnd.github+json",
        "Content-Type": "application/json",
    }
    try:
        resp = requests.post(endpoint, json={"body": body}, headers=headers, timeout=timeout)
    except requests.RequestException as exc:
        raise NotifyError(None, str(exc)) from exc
    if not resp.ok:
        raise NotifyError(resp.status_code, resp.text)


def post_comment(endpoint: str, token: str, body: str, timeout: float = DEFAULT_TIMEOUT) -> bool:
    """Post `body` as a comment; failures are logged, never raised."""
    log("Posting stats...")
    try:
        send_comment(endpoint, token, body, timeout=timeout)
    except NotifyError as exc:
        log(f"Failed to post comment: {exc}")
        return False
    log("Posted comment with stats!")
    return True

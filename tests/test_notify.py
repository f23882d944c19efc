"""Tests for posting the PR comment"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pr_stats.errors import NotifyError
from pr_stats.notify import post_comment, send_comment

ENDPOINT = "https://api.github.com/repos/acme/app/issues/7/comments"


def response(status):
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.text = "" if resp.ok else "Bad credentials"
    return resp


class TestSendComment:
    def test_posts_json_body(self):
        with patch("pr_stats.notify.requests.post", return_value=response(201)) as post:
            send_comment(ENDPOINT, "abc", "hello")
        args, kwargs = post.call_args
        assert args == (ENDPOINT,)
        assert kwargs["json"] == {"body": "hello"}
        assert kwargs["headers"]["Authorization"] == "token abc"

    def test_http_error(self):
        with patch("pr_stats.notify.requests.post", return_value=response(401)):
            with pytest.raises(NotifyError) as exc_info:
                send_comment(ENDPOINT, "abc", "hello")
        assert exc_info.value.status == 401

    def test_connection_error(self):
        with patch("pr_stats.notify.requests.post", side_effect=requests.ConnectionError("down")):
            with pytest.raises(NotifyError) as exc_info:
                send_comment(ENDPOINT, "abc", "hello")
        assert exc_info.value.status is None


class TestPostComment:
    """Failures are logged, not raised"""

    def test_success(self):
        with patch("pr_stats.notify.requests.post", return_value=response(201)):
            assert post_comment(ENDPOINT, "abc", "hello") is True

    def test_failure(self, capsys):
        with patch("pr_stats.notify.requests.post", return_value=response(500)):
            assert post_comment(ENDPOINT, "abc", "hello") is False
        assert "Failed to post comment" in capsys.readouterr().err

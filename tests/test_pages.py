"""Tests for the rendered page size probe"""

from unittest.mock import MagicMock, patch

import pytest
import requests

from pr_stats.errors import ProbeError
from pr_stats.metrics import MetricError, MetricStore
from pr_stats.pages import collect_page_size, fetch_page_size

URL = "http://localhost:3000/"


def fake_server(exit_code=None):
    server = MagicMock()
    server.poll.return_value = exit_code
    return server


def response(status, content=b""):
    resp = MagicMock()
    resp.ok = status < 400
    resp.status_code = status
    resp.content = content
    return resp


@pytest.fixture
def no_sleep():
    with patch("pr_stats.pages.time.sleep") as sleep:
        yield sleep


class TestFetchPageSize:
    """Server lifecycle and page fetching"""

    def test_waits_for_server_then_measures_body(self, tmp_path, no_sleep):
        server = fake_server()
        page = b"<html><body>hello</body></html>"
        with patch("pr_stats.pages.subprocess.Popen", return_value=server) as popen, patch(
            "pr_stats.pages.requests.get",
            side_effect=[requests.ConnectionError("refused"), response(200, page)],
        ) as get:
            assert fetch_page_size("yarn start", tmp_path, url=URL) == len(page)

        assert popen.call_args.args[0] == ["yarn", "start"]
        assert get.call_count == 2
        no_sleep.assert_called_once()
        server.kill.assert_called_once()
        server.wait.assert_called_once()

    def test_error_status(self, tmp_path, no_sleep):
        server = fake_server()
        with patch("pr_stats.pages.subprocess.Popen", return_value=server), patch(
            "pr_stats.pages.requests.get", return_value=response(500)
        ):
            with pytest.raises(ProbeError, match="status 500"):
                fetch_page_size("yarn start", tmp_path, url=URL)
        server.kill.assert_called_once()

    def test_server_exits_early(self, tmp_path, no_sleep):
        with patch("pr_stats.pages.subprocess.Popen", return_value=fake_server(exit_code=1)), patch(
            "pr_stats.pages.requests.get"
        ) as get:
            with pytest.raises(ProbeError, match="exited with code 1"):
                fetch_page_size("yarn start", tmp_path, url=URL)
        get.assert_not_called()

    def test_server_never_ready(self, tmp_path, no_sleep):
        with patch("pr_stats.pages.subprocess.Popen", return_value=fake_server()), patch(
            "pr_stats.pages.requests.get", side_effect=requests.ConnectionError("refused")
        ):
            with pytest.raises(ProbeError, match="not ready"):
                fetch_page_size("yarn start", tmp_path, url=URL, timeout=0.01)

    def test_missing_executable(self, tmp_path):
        with pytest.raises(ProbeError, match="failed to start server"):
            fetch_page_size("pr-stats-no-such-server", tmp_path, url=URL)


class TestCollectPageSize:
    def test_stores_size(self, tmp_path):
        store = MetricStore()
        with patch("pr_stats.pages.fetch_page_size", return_value=512):
            collect_page_size(store, "baseRenderBytes", "yarn start", tmp_path)
        assert store.get("baseRenderBytes") == 512

    def test_failure_stores_error(self, tmp_path):
        store = MetricStore()
        with patch("pr_stats.pages.fetch_page_size", side_effect=ProbeError(URL, "got status 500")):
            collect_page_size(store, "baseRenderBytes", "yarn start", tmp_path)
        assert store.get("baseRenderBytes") == MetricError("Error getting size")

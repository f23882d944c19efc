"""Tests for the build runner and its resource sampler"""

import os
import shlex
import subprocess
import sys
import time
from unittest.mock import patch

import psutil
import pytest

from pr_stats.errors import BuildExitNonZero, BuildTimeout
from pr_stats.sampler import ProcessSampler, build_env, run_build
from pr_stats.samples import Sample


def python_command(code):
    return f"{shlex.quote(sys.executable)} -c {shlex.quote(code)}"


class TestRunBuild:
    """Real child processes"""

    def test_success_records_duration_and_samples(self, tmp_path):
        build = run_build(python_command("import time; time.sleep(0.5)"), cwd=str(tmp_path), timeout=30, interval=0.02)
        assert build.returncode == 0
        assert build.duration_ms >= 400
        assert build.samples
        assert all(sample.memory_bytes > 0 for sample in build.samples)

    def test_nonzero_exit(self, tmp_path):
        with pytest.raises(BuildExitNonZero) as exc_info:
            run_build(python_command("import sys; sys.exit(3)"), cwd=str(tmp_path), timeout=30)
        assert exc_info.value.returncode == 3

    def test_timeout_kills_child(self, tmp_path):
        with pytest.raises(BuildTimeout) as exc_info:
            run_build(python_command("import time; time.sleep(30)"), cwd=str(tmp_path), timeout=0.5)
        assert exc_info.value.timeout == 0.5

    def test_missing_executable(self, tmp_path):
        with pytest.raises(BuildExitNonZero) as exc_info:
            run_build("pr-stats-no-such-binary --flag", cwd=str(tmp_path), timeout=5)
        assert exc_info.value.returncode == 127

    def test_env_reaches_child(self, tmp_path):
        out = tmp_path / "env.txt"
        code = f"import os; open({str(out)!r}, 'w').write(os.environ.get('BUILD_TARGET', ''))"
        run_build(python_command(code), cwd=str(tmp_path), timeout=30, env={"BUILD_TARGET": "serverless"})
        assert out.read_text() == "serverless"


class TestBuildEnv:
    def test_tokens_are_scrubbed(self, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "secret")
        monkeypatch.setenv("PR_STATS_COMMENT_TOKEN", "secret")
        env = build_env({"EXTRA": "1"})
        assert "GITHUB_TOKEN" not in env
        assert "PR_STATS_COMMENT_TOKEN" not in env
        assert env["EXTRA"] == "1"


class TestProcessSampler:
    def test_sample_own_process(self):
        sampler = ProcessSampler(os.getpid())
        assert sampler.sample_once() is None
        time.sleep(0.05)
        sample = sampler.sample_once()
        assert sample is not None
        assert sample.memory_bytes > 0

    def test_busy_process_reports_cpu_from_first_sample(self):
        child = subprocess.Popen([sys.executable, "-c", "while True: pass"])
        try:
            sampler = ProcessSampler(child.pid, interval=0.05).start()
            time.sleep(0.5)
            samples = sampler.stop()
        finally:
            child.kill()
            child.wait()
        assert samples
        assert all(sample.cpu_percent > 0 for sample in samples)

    def test_exited_process_counts_as_miss(self):
        child = subprocess.Popen([sys.executable, "-c", "import sys; sys.stdin.read()"], stdin=subprocess.PIPE)
        try:
            sampler = ProcessSampler(child.pid)
            assert sampler.sample_once() is None
            child.stdin.close()
            deadline = time.monotonic() + 10
            while psutil.Process(child.pid).status() != psutil.STATUS_ZOMBIE:
                assert time.monotonic() < deadline
                time.sleep(0.01)
            misses = sampler.misses
            assert sampler.sample_once() is None
            assert sampler.misses == misses + 1
        finally:
            child.wait()

    def test_vanished_process_counts_as_miss(self):
        sampler = ProcessSampler(os.getpid())
        with patch("pr_stats.sampler.psutil.Process", side_effect=psutil.NoSuchProcess(os.getpid())):
            assert sampler.sample_once() is None
        assert sampler.misses == 1

    def test_no_samples_after_stop(self):
        sampler = ProcessSampler(os.getpid())
        sampler.record(Sample(cpu_percent=1.0, memory_bytes=10.0))
        assert sampler.stop() == [Sample(cpu_percent=1.0, memory_bytes=10.0)]
        sampler.record(Sample(cpu_percent=2.0, memory_bytes=20.0))
        assert sampler.samples == [Sample(cpu_percent=1.0, memory_bytes=10.0)]

"""
Shared fixtures for the pr-stats tests
"""

from pathlib import Path

import pytest

from pr_stats.config import TrackedFile
from pr_stats.labels import build_derived_rules, build_label_table
from pr_stats.metrics import MetricStore
from pr_stats.runner import SourceRef


@pytest.fixture
def tracked_files():
    """Two legacy bundles and one modern bundle."""
    return [
        TrackedFile(name="main", label="Client `main`", pattern="dist/main-*.js"),
        TrackedFile(name="commons", label="Client `commons`", pattern="dist/commons-*.js"),
        TrackedFile(name="mainModern", label="Client `main` modern", pattern="dist/main-*.module.js", modern=True),
    ]


@pytest.fixture
def label_table(tracked_files):
    return build_label_table(tracked_files)


@pytest.fixture
def derived_rules(tracked_files):
    return build_derived_rules(tracked_files)


@pytest.fixture
def baseline_source():
    return SourceRef(repo="acme/app", ref="canary", path=Path("/tmp/main-repo"))


@pytest.fixture
def candidate_source():
    return SourceRef(repo="someone/app", ref="fix-bundle", path=Path("/tmp/diff-repo"))


def make_store(values, label=""):
    store = MetricStore(label)
    store.update(values)
    return store

"""Benchmark a main ref against a PR ref and report build stats on the PR."""

__version__ = "0.3.0"

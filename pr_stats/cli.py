#!/usr/bin/env python3
"""
Build the main ref and the PR ref of a repo, compare their stats and post
the comparison as a PR comment.

Usage:
    pr-stats [--workdir .work] [--config .stats-app/stats-config.json] [--out comment.md] [--dry-run]

Reads GITHUB_REPOSITORY, GITHUB_REF, GITHUB_EVENT_PATH and GITHUB_TOKEN (or
PR_STATS_COMMENT_TOKEN) from the environment.
"""

from __future__ import annotations

import argparse
import dataclasses
from pathlib import Path
from typing import Optional, Sequence

from .config import DEFAULT_CONFIG_PATH, ActionInfo, StatsConfig, load_action_info, load_stats_config
from .errors import StatsError
from .labels import DEFAULT_PRIMARY_GROUPS, build_derived_rules, build_label_table
from .log import log, log_json
from .measure import RepoBuilder
from .notify import post_comment
from .render import render_comment
from .repo import checkout, clone
from .runner import CycleReport, RunController, SourceRef
from .sampler import DEFAULT_INTERVAL


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(prog="pr-stats", description="Compare build stats between the main ref and a PR.")
    ap.add_argument("--workdir", default=".work", help="Scratch directory for clones and diffs")
    ap.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Stats config path inside the PR repo")
    ap.add_argument("--out", required=False, help="Output markdown path (optional; else stdout)")
    ap.add_argument("--dry-run", action="store_true", help="Render the comment without posting it")
    ap.add_argument("--no-diff", action="store_true", help="Never run the diff build on size increases")
    ap.add_argument(
        "--sample-interval",
        type=float,
        default=DEFAULT_INTERVAL,
        help="Seconds between cpu/memory samples of the build process",
    )
    return ap.parse_args(argv)


def build_comment(reports: Sequence[CycleReport]) -> str:
    diff_parts: list[str] = []
    for report in reports:
        if report.diff_text:
            diff_parts.append(f"#### {report.title}\n\n{report.diff_text}")
    return render_comment(
        [report.text for report in reports],
        diff_text="\n\n".join(diff_parts) or None,
    )


def prepare_sources(info: ActionInfo, workdir: Path, config_path: str) -> tuple[StatsConfig, SourceRef, SourceRef]:
    diff_repo_dir = workdir / "diff-repo"
    main_repo_dir = workdir / "main-repo"

    # The PR repo goes first: it carries the stats config.
    clone(info.pr_repo, diff_repo_dir, info.git_root)
    checkout(info.pr_ref, diff_repo_dir)
    stats_config = load_stats_config(diff_repo_dir / config_path)
    log_json("Got statsConfig:", dataclasses.asdict(stats_config))

    clone(stats_config.main_repo, main_repo_dir, info.git_root)
    checkout(stats_config.main_branch, main_repo_dir)

    baseline = SourceRef(repo=stats_config.main_repo, ref=stats_config.main_branch, path=main_repo_dir)
    candidate = SourceRef(repo=info.pr_repo, ref=info.pr_ref, path=diff_repo_dir)
    return stats_config, baseline, candidate


def collect_reports(args: argparse.Namespace, info: ActionInfo) -> list[CycleReport]:
    workdir = Path(args.workdir).resolve()
    stats_config, baseline, candidate = prepare_sources(info, workdir, args.config)

    controller = RunController(
        RepoBuilder(stats_config, workdir / "diff", interval=args.sample_interval),
        build_label_table(stats_config.files_to_track),
        build_derived_rules(stats_config.files_to_track),
        DEFAULT_PRIMARY_GROUPS,
        capture_diffs=not args.no_diff,
        diff_budget_bytes=stats_config.diff_budget_bytes,
        diff_entry_threshold=stats_config.diff_entry_threshold,
    )
    reports: list[CycleReport] = []
    for run_config in stats_config.configs:
        log(f"Running config: {run_config.title}")
        reports.append(controller.run_cycle(baseline, candidate, run_config.configuration, run_config.title))
    return reports


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        info = load_action_info()
        log_json("Got actionInfo:", info.masked())
        reports = collect_reports(args, info)
    except StatsError as exc:
        log(f"Error occurred generating stats: {exc}")
        return 1

    comment = build_comment(reports)
    log("Finished!")
    if args.out:
        Path(args.out).write_text(comment, encoding="utf-8")
    else:
        print(comment)

    if args.dry_run:
        log("dry run: not posting comment")
    elif info.is_release:
        log("release run: no pull request to comment on")
    elif not info.comment_endpoint or not info.github_token:
        log("missing comment endpoint or token: not posting comment")
    else:
        post_comment(info.comment_endpoint, info.github_token, comment)
    return 0


def run() -> None:
    raise SystemExit(main())


if __name__ == "__main__":
    run()

"""
Run configuration: the GitHub Actions environment and the stats config file.

The stats config lives in the candidate repo at `.stats-app/stats-config.json`:

    {
      "mainRepo": "org/project",
      "mainBranch": "canary",
      "appDir": "test/stats-app",
      "installCommand": "yarn install --prefer-offline",
      "buildCommand": "yarn build",
      "buildTimeoutSeconds": 300,
      "outputDir": ".next",
      "dependencyDir": "node_modules",
      "diffEnv": {"STATS_NO_MINIFY": "1"},
      "renderCommand": "yarn start",
      "renderUrl": "http://localhost:3000/",
      "configs": [
        {"title": "Default Build", "configuration": "default"},
        {"title": "Serverless Mode", "configuration": "serverless", "env": {"BUILD_TARGET": "serverless"}}
      ],
      "filesToTrack": [
        {"name": "clientMain", "label": "Client `main`", "pattern": ".next/static/runtime/main-*.js"},
        {"name": "clientMainModern", "label": "Client `main` modern", "pattern": ".next/static/runtime/main-*.module.js", "modern": true}
      ]
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

from .diffs import DEFAULT_BUDGET_BYTES, DEFAULT_ENTRY_THRESHOLD
from .errors import ConfigError

DEFAULT_CONFIG_PATH = ".stats-app/stats-config.json"
DEFAULT_GIT_ROOT = "https://github.com/"
DEFAULT_BUILD_TIMEOUT = 5 * 60
DEFAULT_RENDER_URL = "http://localhost:3000/"
DEFAULT_RENDER_TIMEOUT = 2 * 60
RELEASE_ACTIONS = {"release", "published"}


class BuildConfiguration(Enum):
    DEFAULT = "default"
    SERVERLESS = "serverless"
    DIFF = "diff"


@dataclass(frozen=True)
class TrackedFile:
    name: str
    label: str
    pattern: str
    modern: bool = False

    @property
    def bytes_metric(self) -> str:
        return f"{self.name}Bytes"

    @property
    def gzip_metric(self) -> str:
        return f"{self.name}Gzip"


@dataclass(frozen=True)
class RunConfig:
    title: str
    configuration: BuildConfiguration
    env: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class StatsConfig:
    main_repo: str
    main_branch: str
    build_command: str
    configs: list[RunConfig]
    files_to_track: list[TrackedFile]
    app_dir: str = "."
    install_command: Optional[str] = None
    build_timeout: float = DEFAULT_BUILD_TIMEOUT
    output_dir: str = "dist"
    dependency_dir: Optional[str] = "node_modules"
    diff_env: dict[str, str] = field(default_factory=dict)
    diff_budget_bytes: int = DEFAULT_BUDGET_BYTES
    diff_entry_threshold: int = DEFAULT_ENTRY_THRESHOLD
    render_command: Optional[str] = None
    render_url: str = DEFAULT_RENDER_URL
    render_timeout: float = DEFAULT_RENDER_TIMEOUT

    def env_for(self, configuration: BuildConfiguration) -> dict[str, str]:
        if configuration is BuildConfiguration.DIFF:
            return dict(self.diff_env)
        for run_config in self.configs:
            if run_config.configuration is configuration:
                return dict(run_config.env)
        return {}


@dataclass(frozen=True)
class ActionInfo:
    action_name: Optional[str]
    github_token: Optional[str]
    comment_endpoint: Optional[str]
    git_root: str
    pr_repo: str
    pr_ref: str
    is_release: bool = False

    def masked(self) -> dict[str, Any]:
        return {
            "action_name": self.action_name,
            "github_token": "***" if self.github_token else None,
            "comment_endpoint": self.comment_endpoint,
            "git_root": self.git_root,
            "pr_repo": self.pr_repo,
            "pr_ref": self.pr_ref,
            "is_release": self.is_release,
        }


def load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"unable to read {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"invalid JSON in {path}: {exc}") from exc


def short_ref(ref: str) -> str:
    for prefix in ("refs/heads/", "refs/tags/"):
        if ref.startswith(prefix):
            return ref[len(prefix):]
    return ref


def load_action_info(environ: Optional[Mapping[str, str]] = None) -> ActionInfo:
    env = os.environ if environ is None else environ
    repo = env.get("GITHUB_REPOSITORY", "").strip()
    ref = env.get("GITHUB_REF", "").strip()
    if not repo or not ref:
        raise ConfigError("'GITHUB_REF' or 'GITHUB_REPOSITORY' environment variable was missing")

    action_name = env.get("GITHUB_ACTION")
    comment_endpoint: Optional[str] = None
    is_release = False

    event_path = env.get("GITHUB_EVENT_PATH")
    if event_path and Path(event_path).exists():
        event = load_json(Path(event_path))
        if not isinstance(event, dict):
            raise ConfigError(f"event payload in {event_path} is not an object")
        action_name = event.get("action") or action_name
        if action_name in RELEASE_ACTIONS:
            is_release = True
        else:
            # Forks: the PR head repo/ref differ from GITHUB_REPOSITORY/GITHUB_REF.
            pr_data = event.get("pull_request")
            if isinstance(pr_data, dict):
                comments = (pr_data.get("_links") or {}).get("comments") or ""
                if isinstance(comments, dict):
                    comments = comments.get("href") or ""
                comment_endpoint = comments or None
                head = pr_data.get("head") or {}
                repo = ((head.get("repo") or {}).get("full_name")) or repo
                ref = head.get("ref") or ref

    return ActionInfo(
        action_name=action_name,
        github_token=env.get("GITHUB_TOKEN") or env.get("PR_STATS_COMMENT_TOKEN") or None,
        comment_endpoint=comment_endpoint,
        git_root=env.get("GIT_ROOT_DIR") or DEFAULT_GIT_ROOT,
        pr_repo=repo,
        pr_ref=short_ref(ref),
        is_release=is_release,
    )


def _require_str(data: dict[str, Any], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(f"stats config: '{key}' must be a non-empty string")
    return value.strip()


def _env_map(raw: Any, where: str) -> dict[str, str]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise ConfigError(f"stats config: '{where}' must be an object")
    return {str(key): str(value) for key, value in raw.items()}


def parse_run_configs(raw: Any) -> list[RunConfig]:
    if raw is None:
        return [RunConfig(title="Default Build", configuration=BuildConfiguration.DEFAULT)]
    if not isinstance(raw, list) or not raw:
        raise ConfigError("stats config: 'configs' must be a non-empty list")

    configs: list[RunConfig] = []
    seen: set[BuildConfiguration] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"stats config: configs[{index}] must be an object")
        name = str(entry.get("configuration") or "default").strip().lower()
        try:
            configuration = BuildConfiguration(name)
        except ValueError:
            valid = ", ".join(c.value for c in BuildConfiguration if c is not BuildConfiguration.DIFF)
            raise ConfigError(f"stats config: unknown configuration '{name}'. expected one of: {valid}") from None
        if configuration is BuildConfiguration.DIFF:
            raise ConfigError("stats config: the diff configuration is scheduled automatically on regressions")
        if configuration in seen:
            raise ConfigError(f"stats config: configuration '{name}' is listed more than once")
        seen.add(configuration)
        configs.append(
            RunConfig(
                title=str(entry.get("title") or name.title()),
                configuration=configuration,
                env=_env_map(entry.get("env"), f"configs[{index}].env"),
            )
        )
    return configs


def parse_tracked_files(raw: Any) -> list[TrackedFile]:
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise ConfigError("stats config: 'filesToTrack' must be a list")
    tracked: list[TrackedFile] = []
    names: set[str] = set()
    for index, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise ConfigError(f"stats config: filesToTrack[{index}] must be an object")
        name = _require_str(entry, "name")
        if name in names:
            raise ConfigError(f"stats config: tracked file '{name}' is listed more than once")
        names.add(name)
        tracked.append(
            TrackedFile(
                name=name,
                label=str(entry.get("label") or name),
                pattern=_require_str(entry, "pattern"),
                modern=bool(entry.get("modern", False)),
            )
        )
    return tracked


def parse_stats_config(data: Any) -> StatsConfig:
    if not isinstance(data, dict):
        raise ConfigError("stats config must be a JSON object")

    try:
        build_timeout = float(data.get("buildTimeoutSeconds", DEFAULT_BUILD_TIMEOUT))
        diff_budget = int(data.get("diffBudgetBytes", DEFAULT_BUDGET_BYTES))
        diff_threshold = int(data.get("diffEntryThresholdBytes", DEFAULT_ENTRY_THRESHOLD))
        render_timeout = float(data.get("renderTimeoutSeconds", DEFAULT_RENDER_TIMEOUT))
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"stats config: invalid numeric setting: {exc}") from exc
    if build_timeout <= 0:
        raise ConfigError("stats config: 'buildTimeoutSeconds' must be > 0")
    if render_timeout <= 0:
        raise ConfigError("stats config: 'renderTimeoutSeconds' must be > 0")

    return StatsConfig(
        main_repo=_require_str(data, "mainRepo"),
        main_branch=_require_str(data, "mainBranch"),
        build_command=_require_str(data, "buildCommand"),
        configs=parse_run_configs(data.get("configs")),
        files_to_track=parse_tracked_files(data.get("filesToTrack")),
        app_dir=str(data.get("appDir") or "."),
        install_command=data.get("installCommand") or None,
        build_timeout=build_timeout,
        output_dir=str(data.get("outputDir") or "dist"),
        dependency_dir=data.get("dependencyDir", "node_modules") or None,
        diff_env=_env_map(data.get("diffEnv"), "diffEnv"),
        diff_budget_bytes=diff_budget,
        diff_entry_threshold=diff_threshold,
        render_command=data.get("renderCommand") or None,
        render_url=str(data.get("renderUrl") or DEFAULT_RENDER_URL),
        render_timeout=render_timeout,
    )


def load_stats_config(path: Path) -> StatsConfig:
    return parse_stats_config(load_json(path))

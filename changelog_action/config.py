"""
Settings for a changelog run, read from action inputs and the GitHub Actions environment.
"""
from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

from .changelog import DEFAULT_CHANGELOG, DEFAULT_UNRELEASED_HEADER
from .gh import API_URL

TRUTHY = {"1", "true", "yes", "on"}

def _first(env: Mapping[str, str], *keys: str) -> str:
    for k in keys:
        v = (env.get(k) or "").strip()
        if v:
            return v
    return ""

def get_input(env: Mapping[str, str], name: str) -> str:
    """Action input ``name``; the runner exports it as INPUT_<NAME> (hyphens kept or underscored)."""
    upper = name.upper()
    return _first(env, f"INPUT_{upper}", f"INPUT_{upper.replace('-', '_')}")

@dataclass
class Settings:
    changelog: str = DEFAULT_CHANGELOG
    unreleased_header: str = DEFAULT_UNRELEASED_HEADER
    token: str = ""
    repository: str = ""
    ref: str = ""
    branch: str = ""
    api_url: str = API_URL
    push: bool = True
    debug: bool = False

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None, **overrides) -> "Settings":
        env = os.environ if env is None else env
        s = cls(
            changelog=get_input(env, "changelog") or DEFAULT_CHANGELOG,
            unreleased_header=get_input(env, "unreleased-header") or DEFAULT_UNRELEASED_HEADER,
            token=get_input(env, "github-token") or _first(env, "GITHUB_TOKEN"),
            repository=_first(env, "GITHUB_REPOSITORY"),
            ref=_first(env, "GITHUB_REF"),
            branch=get_input(env, "branch"),
            api_url=_first(env, "GITHUB_API_URL") or API_URL,
            debug=_first(env, "RUNNER_DEBUG") == "1"
                  or _first(env, "CHANGELOG_DEBUG").lower() in TRUTHY,
        )
        for k, v in overrides.items():
            if v is not None and v != "":
                setattr(s, k, v)
        return s

    def owner_repo(self) -> Tuple[str, str]:
        owner, _, repo = self.repository.partition("/")
        if not owner or not repo or "/" in repo:
            raise ValueError("Could not determine repository from GITHUB_REPOSITORY")
        return owner, repo

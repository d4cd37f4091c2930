"""
GitHub helper utilities (requests-based): PR lookup for commits.
"""
from __future__ import annotations
import re
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Dict, List, Optional

import requests

from .git_utils import CommitInfo
from .logging_utils import get_logger

log = get_logger("gh")

API_URL = "https://api.github.com"
PR_SUFFIX_RE = re.compile(r"\(#(\d+)\)$")
PR_SUFFIX_STRIP_RE = re.compile(r"\s*\(#\d+\)$")

# ---------- PR references in messages ----------

def pr_number_from_message(message: str) -> Optional[int]:
    m = PR_SUFFIX_RE.search(message or "")
    return int(m.group(1)) if m else None

def strip_pr_reference(message: str) -> str:
    return PR_SUFFIX_STRIP_RE.sub("", message or "").strip()

# ---------- HTTP / API ----------

class GitHubClient:
    def __init__(self, token: str, repository: str, api_url: str = API_URL,
                 session: Optional[requests.Session] = None, timeout: int = 60):
        self.token = token
        self.repository = repository
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/vnd.github+json", "X-GitHub-Api-Version": "2022-11-28"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def gh_api(self, method: str, path: str, payload: dict | None = None) -> Any:
        url = f"{self.api_url}{path}"
        r = self.session.request(method, url, headers=self._headers(), json=payload, timeout=self.timeout)
        if r.status_code >= 300:
            raise RuntimeError(f"GitHub API {method} {path} failed: {r.status_code} {r.text[:500]}")
        try:
            return r.json()
        except ValueError:
            return {}

    def pull_requests_for_commit(self, sha: str) -> List[dict]:
        res = self.gh_api("GET", f"/repos/{self.repository}/commits/{sha}/pulls")
        return res if isinstance(res, list) else []

    def enrich_commit(self, commit: CommitInfo) -> CommitInfo:
        """Attach the PR number: ``(#123)`` suffix first, then the commit's associated PRs."""
        number = pr_number_from_message(commit.message)
        if number is not None:
            return commit.with_pr(number)
        try:
            prs = self.pull_requests_for_commit(commit.sha)
        except (requests.RequestException, RuntimeError) as e:
            log.debug("Could not find PR for commit %s: %s", commit.sha, e)
            return commit
        if prs and isinstance(prs[0].get("number"), int):
            # first entry is the merged PR in practice
            return commit.with_pr(prs[0]["number"])
        return commit

    def enrich_commits(self, commits: List[CommitInfo], max_workers: int = 8) -> List[CommitInfo]:
        if not commits:
            return []
        with ThreadPoolExecutor(max_workers=min(max_workers, len(commits))) as pool:
            return list(pool.map(self.enrich_commit, commits))

def enrich_offline(commits: List[CommitInfo]) -> List[CommitInfo]:
    """Suffix-only PR detection for runs without a token or repository."""
    out = []
    for c in commits:
        number = pr_number_from_message(c.message)
        out.append(c.with_pr(number) if number is not None else c)
    return out


"""
Git plumbing for the changelog bot: commit listing, tags, identity and push.
"""
from __future__ import annotations
import subprocess
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence

from .logging_utils import get_logger

log = get_logger("git")

BOT_NAME = "github-actions[bot]"
BOT_EMAIL = "github-actions[bot]@users.noreply.github.com"

# %x1f = ASCII unit separator; subjects may contain "|"
LOG_FORMAT = "%H%x1f%s%x1f%an"
FIELD_SEP = "\x1f"

class GitError(RuntimeError):
    def __init__(self, args: Sequence[str], returncode: int, stdout: str = "", stderr: str = ""):
        self.cmd = list(args)
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        detail = (stderr or stdout or "").strip().splitlines()
        super().__init__(f"git {' '.join(self.cmd[1:])} exited with {returncode}"
                         + (f": {detail[-1]}" if detail else ""))

@dataclass(frozen=True)
class CommitInfo:
    sha: str
    message: str
    author: str
    pr_number: Optional[int] = None

    def with_pr(self, number: int) -> "CommitInfo":
        return replace(self, pr_number=number)

# ---------- Shell ----------

def sh(args: Sequence[str], check: bool = True) -> str:
    res = subprocess.run(list(args), text=True, capture_output=True)
    if check and res.returncode != 0:
        raise GitError(args, res.returncode, res.stdout or "", res.stderr or "")
    return (res.stdout or "").strip()

def git(*args: str, check: bool = True) -> str:
    return sh(["git", *args], check=check)

# ---------- Commits / tags ----------

def latest_tag() -> Optional[str]:
    """Most recent tag reachable from HEAD, None when the repository has none."""
    try:
        return git("describe", "--tags", "--abbrev=0") or None
    except GitError:
        return None

def parse_log(output: str) -> List[CommitInfo]:
    commits: List[CommitInfo] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        parts = line.split(FIELD_SEP)
        if len(parts) != 3:
            log.debug("Skipping unparsable log line: %r", line)
            continue
        sha, message, author = (p.strip() for p in parts)
        commits.append(CommitInfo(sha=sha, message=message, author=author))
    return commits

def commits_since(ref: Optional[str]) -> List[CommitInfo]:
    """Commits in ``ref..HEAD`` (all of HEAD without a ref), most recent first."""
    rng = f"{ref}..HEAD" if ref else "HEAD"
    try:
        out = git("log", rng, f"--format={LOG_FORMAT}")
    except GitError as e:
        log.debug("git log %s failed: %s", rng, e)
        return []
    return parse_log(out)

# ---------- Identity / push ----------

def configure_git(token: str = ""):
    git("config", "--local", "user.name", BOT_NAME)
    git("config", "--local", "user.email", BOT_EMAIL)
    origin = git("remote", "get-url", "origin", check=False)
    if token and origin.startswith("https://") and "@" not in origin.split("/")[2]:
        authed = origin.replace("https://", f"https://x-access-token:{token}@", 1)
        git("remote", "set-url", "origin", authed, check=False)

def current_branch() -> str:
    return git("rev-parse", "--abbrev-ref", "HEAD")

def commit_and_push(path: str, message: str, branch: str = "") -> bool:
    """Commit ``path`` and push it; False when there was nothing to commit.

    The current branch is pushed; on a detached HEAD (tag events) the commit
    goes to ``branch`` when one is given.
    """
    git("add", "--", path)
    if not git("status", "--porcelain", "--", path, check=False):
        log.info("No changes to commit")
        return False
    git("commit", "-m", message, "--", path)
    current = current_branch()
    if current != "HEAD":
        branch = current
    if not branch:
        log.warning("Detached HEAD and no target branch configured, committed locally but not pushed")
        return True
    git("push", "origin", f"HEAD:refs/heads/{branch}")
    log.info("Committed and pushed changes to %s", branch)
    return True

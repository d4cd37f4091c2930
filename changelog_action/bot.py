#!/usr/bin/env python3
"""
Changelog bot: keeps CHANGES.md in step with pushes and release tags.

- Branch push: commits since the latest tag that are not merges and not yet
  recorded are appended to the Unreleased section (with PR numbers).
- Tag push (GITHUB_REF=refs/tags/<tag>): the Unreleased section becomes
  ``## [<tag>] - <today>`` and a fresh Unreleased header is seeded above it.

The updated file is committed as github-actions[bot] and pushed.

Usage:
  changelog-action [run] [--no-push] [--ref REF]
  changelog-action add --author NAME [--pr N] MESSAGE [MESSAGE ...]
  changelog-action promote VERSION [--date YYYY-MM-DD]
  changelog-action show

Exit Codes:
  0 - Success (including "nothing to do")
  1 - Failure (message in the ::error:: annotation)
"""
from __future__ import annotations
import argparse, sys
from datetime import date
from typing import List, Optional, Sequence

from . import changelog, git_utils
from .changelog import ChangelogError, CommitEntry
from .config import Settings
from .gh import GitHubClient, enrich_offline, pr_number_from_message, strip_pr_reference
from .git_utils import CommitInfo, GitError
from .io_utils import safe_relpath
from .logging_utils import add_secret, add_step_summary, get_logger, setup_logging, step, summary_section

log = get_logger("bot")

TAG_PREFIX = "refs/tags/"
MERGE_PREFIX = "Merge "

# ---------- Event helpers ----------

def is_tag_push(ref: str) -> bool:
    return (ref or "").startswith(TAG_PREFIX)

def tag_name(ref: str) -> Optional[str]:
    if not is_tag_push(ref):
        return None
    return ref[len(TAG_PREFIX):] or None

def current_date() -> str:
    return date.today().strftime("%Y-%m-%d")

# ---------- Commit handling ----------

def filter_commits(commits: List[CommitInfo], changelog_path: str) -> List[CommitInfo]:
    """Drop merge commits, our own changelog commits and commits already in the changelog."""
    kept = []
    for commit in commits:
        if commit.message.startswith(MERGE_PREFIX):
            log.debug("Skipping merge commit: %s", commit.message)
            continue
        if commit.author == git_utils.BOT_NAME:
            log.debug("Skipping bot commit: %s", commit.message)
            continue
        # entries are written without the "(#N)" suffix, so look for both forms
        stripped = strip_pr_reference(commit.message)
        if changelog.is_entry_in_changelog(changelog_path, commit.message) or (
                stripped and stripped != commit.message
                and changelog.is_entry_in_changelog(changelog_path, stripped)):
            log.debug("Skipping already-tracked commit: %s", commit.message)
            continue
        kept.append(commit)
    return kept

def to_commit_entry(commit: CommitInfo) -> CommitEntry:
    return CommitEntry(
        message=strip_pr_reference(commit.message),
        author=commit.author,
        pr_number=commit.pr_number,
    )

def enrich(settings: Settings, commits: List[CommitInfo]) -> List[CommitInfo]:
    if not settings.token:
        log.warning("No GitHub token configured, PR numbers are taken from commit messages only")
        return enrich_offline(commits)
    try:
        settings.owner_repo()
    except ValueError as e:
        log.warning("%s, PR numbers are taken from commit messages only", e)
        return enrich_offline(commits)
    client = GitHubClient(settings.token, settings.repository, settings.api_url)
    log.info("Looking up PR numbers for commits...")
    return client.enrich_commits(commits)

# ---------- Handlers ----------

def handle_main_push(settings: Settings) -> List[CommitEntry]:
    """Append new commits to the Unreleased section; returns the entries added."""
    log.info("Handling push to branch")
    tag = git_utils.latest_tag()
    if tag:
        log.info("Latest tag: %s", tag)
    else:
        log.info("No existing tags found")

    commits = git_utils.commits_since(tag)
    log.info("Found %d commits since %s", len(commits), tag or "beginning")
    if not commits:
        log.info("No new commits to process")
        return []

    new_commits = filter_commits(commits, settings.changelog)
    log.info("%d commits after filtering", len(new_commits))
    if not new_commits:
        log.info("All commits are already in the changelog")
        return []

    entries = [to_commit_entry(c) for c in enrich(settings, new_commits)]
    log.info("Adding %d entries to changelog:", len(entries))
    for e in entries:
        log.info("  %s", changelog.format_entry(e))

    changelog.add_to_unreleased(settings.changelog, entries, settings.unreleased_header)
    log.info("Updated %s", safe_relpath(settings.changelog))
    return entries

def handle_tag_push(settings: Settings, tag: str, release_date: Optional[str] = None) -> bool:
    """Promote Unreleased to ``tag``; False when there was nothing to promote."""
    log.info("Handling tag push: %s", tag)
    content = changelog.get_unreleased_content(settings.changelog, settings.unreleased_header)
    if not content:
        log.warning("Unreleased section is empty - nothing to promote")
        return False
    day = release_date or current_date()
    changelog.promote_unreleased_to_version(settings.changelog, tag, day, settings.unreleased_header)
    log.info("Promoted Unreleased section to %s (%s)", tag, day)
    return True

def run(settings: Settings) -> int:
    try:
        if settings.push:
            with step("Configure git"):
                git_utils.configure_git(settings.token)
        tag = tag_name(settings.ref)
        if is_tag_push(settings.ref):
            if not tag:
                raise ValueError("Could not extract tag name from GITHUB_REF")
            with step(f"Release {tag}"):
                promoted = handle_tag_push(settings, tag)
            message = f"chore: release {tag}"
            summary = summary_section("Changelog", [f"Promoted Unreleased to `{tag}`." if promoted
                                                    else "Unreleased section empty, nothing promoted."])
        else:
            with step("Update Unreleased"):
                entries = handle_main_push(settings)
            message = "chore: update changelog"
            summary = summary_section("Changelog entries added", map(changelog.format_entry, entries)) \
                if entries else summary_section("Changelog", ["No new entries."])
        if settings.push:
            with step("Commit and push"):
                git_utils.commit_and_push(settings.changelog, message, settings.branch)
        add_step_summary(summary)
    except (ChangelogError, GitError, RuntimeError, ValueError) as e:
        log.debug("run failed", exc_info=True)
        log.error("Failed to update changelog: %s", e)
        add_step_summary(summary_section("❌ Changelog update failed", [str(e)]))
        return 1
    log.info("Changelog update complete!")
    return 0

# ---------- Manual commands ----------

def cmd_add(settings: Settings, author: str, messages: Sequence[str], pr: Optional[int]) -> int:
    entries = [CommitEntry(strip_pr_reference(m), author, pr if pr is not None else pr_number_from_message(m))
               for m in messages if m.strip()]
    if not entries:
        log.warning("No entries given")
        return 0
    changelog.add_to_unreleased(settings.changelog, entries, settings.unreleased_header)
    for e in entries:
        log.info("Added changelog entry: %s", changelog.format_entry(e))
    return 0

def cmd_show(settings: Settings) -> int:
    content = changelog.get_unreleased_content(settings.changelog, settings.unreleased_header)
    if content:
        print(content)
    return 0

# ---------- CLI ----------

def iso_date(value: str) -> str:
    try:
        return date.fromisoformat(value).isoformat()
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a YYYY-MM-DD date: {value!r}") from None

def pr_number(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number < 1:
        raise argparse.ArgumentTypeError(f"not a positive PR number: {value!r}")
    return number

def build_parser() -> argparse.ArgumentParser:
    # SUPPRESS keeps a subcommand from resetting options given before it
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--changelog", default=argparse.SUPPRESS,
                        help="changelog file (default: ./CHANGES.md or INPUT_CHANGELOG)")
    common.add_argument("--unreleased-header", default=argparse.SUPPRESS,
                        help="Unreleased header line (default: '## Unreleased')")
    common.add_argument("--debug", action="store_true", default=argparse.SUPPRESS,
                        help="verbose ::debug:: output")

    run_opts = argparse.ArgumentParser(add_help=False)
    run_opts.add_argument("--ref", default=argparse.SUPPRESS, help="git ref of the event (default: GITHUB_REF)")
    run_opts.add_argument("--no-push", dest="push", action="store_false", default=argparse.SUPPRESS,
                          help="update the file but do not commit or push")

    p = argparse.ArgumentParser(prog="changelog-action", description=__doc__.split("\n\n")[0].strip(),
                                parents=[common, run_opts])
    sub = p.add_subparsers(dest="command")

    sub.add_parser("run", parents=[common, run_opts], help="handle the current push or tag event")

    a = sub.add_parser("add", parents=[common], help="append entries to Unreleased")
    a.add_argument("--author", required=True)
    a.add_argument("--pr", type=pr_number)
    a.add_argument("messages", nargs="+", metavar="MESSAGE")

    pr = sub.add_parser("promote", parents=[common], help="seal Unreleased as a version section")
    pr.add_argument("version")
    pr.add_argument("--date", type=iso_date, help="release date (default: today)")

    sub.add_parser("show", parents=[common], help="print the pending Unreleased content")
    return p

def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    opts = vars(args)
    settings = Settings.from_env(
        changelog=opts.get("changelog"),
        unreleased_header=opts.get("unreleased_header"),
        ref=opts.get("ref"),
        push=opts.get("push"),
        debug=opts.get("debug"),
    )
    setup_logging(settings.debug)
    add_secret(settings.token)

    command = args.command or "run"
    if command == "run":
        return run(settings)
    try:
        if command == "add":
            return cmd_add(settings, args.author, args.messages, args.pr)
        if command == "promote":
            handle_tag_push(settings, args.version, args.date)
            return 0
        return cmd_show(settings)
    except ChangelogError as e:
        log.error("%s", e)
        return 1

if __name__ == "__main__":
    sys.exit(main())

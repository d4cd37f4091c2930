"""
Workflow-command logging, groups and step summary helpers.
"""
from __future__ import annotations
import logging, os, sys, time
from contextlib import contextmanager
from typing import Iterable, Optional

LOGGER_NAME = "changelog_action"

_COMMANDS = {
    logging.DEBUG: "::debug::",
    logging.WARNING: "::warning::",
    logging.ERROR: "::error::",
    logging.CRITICAL: "::error::",
}

_secrets: set = set()

def _redact(s: str) -> str:
    for v in _secrets:
        if v:
            s = s.replace(v, "***")
    return s

def add_secret(value: Optional[str]):
    """Mask ``value`` in every log line from now on (and in the runner log)."""
    if value and value not in _secrets:
        _secrets.add(value)
        print(f"::add-mask::{value}", flush=True)

class WorkflowCommandFormatter(logging.Formatter):
    """Prefix records with the GitHub Actions command for their level."""

    def format(self, record: logging.LogRecord) -> str:
        msg = _redact(super().format(record))
        prefix = _COMMANDS.get(record.levelno, "")
        if prefix and "\n" in msg:
            # annotations are single-line
            msg = msg.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
        return prefix + msg

def setup_logging(debug: bool = False, stream=None) -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    for h in list(logger.handlers):
        logger.removeHandler(h)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(WorkflowCommandFormatter("%(message)s"))
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger

def get_logger(name: str = "") -> logging.Logger:
    return logging.getLogger(f"{LOGGER_NAME}.{name}" if name else LOGGER_NAME)

log = get_logger()

def log_group(title: str) -> None:   print(f"::group::{title}", flush=True)
def log_end_group() -> None:         print("::endgroup::", flush=True)

@contextmanager
def step(title: str):
    t0 = time.time()
    log_group(title)
    try:
        yield
        log.debug("%s: OK in %ds", title, int(time.time() - t0))
    except Exception:
        log.debug("%s: FAILED after %ds", title, int(time.time() - t0), exc_info=True)
        raise
    finally:
        log_end_group()

# ---------- Step summary ----------

def add_step_summary(text: str):
    path = os.environ.get("GITHUB_STEP_SUMMARY")
    if path:
        try:
            with open(path, "a", encoding="utf-8") as f:
                f.write(text.rstrip() + "\n")
        except OSError as e:
            log.debug("step summary not written: %s", e)

def summary_section(title: str, lines: Iterable[str]) -> str:
    return "\n".join([f"### {title}", "", *lines])

"""
Shared fixtures for the changelog bot tests.
"""
import logging
import os
import sys

import pytest

from changelog_action import logging_utils


SCENARIO_START = (
    "# Changelog\n"
    "\n"
    "## [1.0.0] - 2024-01-01\n"
    "- Initial release by Alice\n"
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Run every test outside of a GitHub Actions environment."""
    for key in list(os.environ):
        if key.startswith(("INPUT_", "GITHUB_")) or key in ("RUNNER_DEBUG", "CHANGELOG_DEBUG"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def changelog_file(tmp_path):
    """Factory writing a CHANGES.md with the given text and returning its path."""
    def _make(text=SCENARIO_START, name="CHANGES.md"):
        path = tmp_path / name
        path.write_text(text, encoding="utf-8")
        return path
    return _make


class _CurrentStdout:
    """Forward writes to whatever sys.stdout is when the record is emitted.

    capsys swaps in a fresh capture stream between fixture setup and the test
    call, so a handler bound to sys.stdout at setup time would write to a
    closed stream.
    """

    def write(self, data):
        return sys.stdout.write(data)

    def flush(self):
        sys.stdout.flush()


@pytest.fixture
def logger(capsys):
    """Logging configured the way the bot configures it, writing to captured stdout."""
    return logging_utils.setup_logging(debug=True, stream=_CurrentStdout())


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers bound to a previous test's captured stdout."""
    yield
    log = logging.getLogger(logging_utils.LOGGER_NAME)
    for handler in list(log.handlers):
        log.removeHandler(handler)
    log.propagate = True
    log.setLevel(logging.NOTSET)

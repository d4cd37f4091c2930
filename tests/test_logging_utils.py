"""
Tests for workflow-command logging
"""
from changelog_action import logging_utils


class TestWorkflowCommands:

    def test_levels(self, logger, capsys):
        log = logging_utils.get_logger("test")
        log.debug("details")
        log.info("plain")
        log.warning("careful")
        log.error("broken")
        out = capsys.readouterr().out.splitlines()
        assert out == ["::debug::details", "plain", "::warning::careful", "::error::broken"]

    def test_multiline_annotation_escaped(self, logger, capsys):
        logging_utils.get_logger("test").error("first\nsecond 100%")
        assert capsys.readouterr().out == "::error::first%0Asecond 100%25\n"

    def test_secret_redacted(self, logger, capsys):
        logging_utils.add_secret("hunter2")
        logging_utils.get_logger("test").info("token is hunter2")
        out = capsys.readouterr().out
        assert "::add-mask::hunter2" in out
        assert "token is ***" in out

    def test_debug_hidden_by_default(self, capsys):
        logging_utils.setup_logging(debug=False)
        logging_utils.get_logger("test").debug("hidden")
        assert capsys.readouterr().out == ""

    def test_step_groups(self, logger, capsys):
        with logging_utils.step("Work"):
            pass
        out = capsys.readouterr().out.splitlines()
        assert out[0] == "::group::Work"
        assert out[-1] == "::endgroup::"


class TestStepSummary:

    def test_written_when_configured(self, tmp_path, monkeypatch):
        summary = tmp_path / "summary.md"
        monkeypatch.setenv("GITHUB_STEP_SUMMARY", str(summary))
        logging_utils.add_step_summary(logging_utils.summary_section("Added", ["- a by A"]))
        assert summary.read_text(encoding="utf-8") == "### Added\n\n- a by A\n"

    def test_ignored_without_env(self, tmp_path):
        logging_utils.add_step_summary("nothing")
        assert list(tmp_path.iterdir()) == []

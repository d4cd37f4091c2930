"""
Tests for settings resolution
"""
import pytest

from changelog_action.config import Settings, get_input


class TestSettings:

    def test_defaults(self):
        s = Settings.from_env({})
        assert s.changelog == "./CHANGES.md"
        assert s.unreleased_header == "## Unreleased"
        assert s.token == ""
        assert s.push is True
        assert s.debug is False

    def test_action_inputs(self):
        env = {
            "INPUT_CHANGELOG": "docs/CHANGELOG.md",
            "INPUT_UNRELEASED-HEADER": "## [Unreleased]",
            "INPUT_GITHUB-TOKEN": "tok",
            "GITHUB_REPOSITORY": "owner/repo",
            "GITHUB_REF": "refs/tags/v1.0.0",
        }
        s = Settings.from_env(env)
        assert s.changelog == "docs/CHANGELOG.md"
        assert s.unreleased_header == "## [Unreleased]"
        assert s.token == "tok"
        assert s.owner_repo() == ("owner", "repo")
        assert s.ref == "refs/tags/v1.0.0"

    def test_underscored_inputs_and_token_fallback(self):
        s = Settings.from_env({"INPUT_UNRELEASED_HEADER": "### Next", "GITHUB_TOKEN": "env-tok"})
        assert s.unreleased_header == "### Next"
        assert s.token == "env-tok"

    def test_blank_inputs_use_defaults(self):
        s = Settings.from_env({"INPUT_CHANGELOG": "  ", "INPUT_UNRELEASED-HEADER": ""})
        assert s.changelog == "./CHANGES.md"
        assert s.unreleased_header == "## Unreleased"

    def test_overrides(self):
        s = Settings.from_env({"INPUT_CHANGELOG": "A.md"}, changelog="B.md", push=False, ref=None)
        assert s.changelog == "B.md"
        assert s.push is False
        assert s.ref == ""

    @pytest.mark.parametrize("env", [{"RUNNER_DEBUG": "1"}, {"CHANGELOG_DEBUG": "true"}])
    def test_debug(self, env):
        assert Settings.from_env(env).debug is True

    @pytest.mark.parametrize("repository", ["", "owner", "owner/", "a/b/c"])
    def test_bad_repository(self, repository):
        with pytest.raises(ValueError):
            Settings(repository=repository).owner_repo()

    def test_get_input(self):
        assert get_input({"INPUT_GITHUB-TOKEN": "x"}, "github-token") == "x"
        assert get_input({"INPUT_GITHUB_TOKEN": "y"}, "github-token") == "y"
        assert get_input({}, "github-token") == ""

"""Unit tests for git module, covering log parsing and command building."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from git.exc import GitCommandError

from pygitstack.config import Config
from pygitstack.errors import ExternalCommandFailure
from pygitstack.git import COMMIT_LOG_FORMAT, RealGit, parse_commit_log


def make_git(**tool) -> RealGit:
    git_cmd = RealGit(Config({'repo': {'remote': 'upstream'}, 'tool': tool}), repo_dir="/tmp/repo")
    git_cmd._repo = MagicMock()
    git_cmd._repo.working_tree_dir = "/tmp/repo"
    git_cmd._repo.git.execute.return_value = ""
    return git_cmd


def executed(git_cmd: RealGit):
    return [c.args[0] for c in git_cmd._repo.git.execute.call_args_list]


class TestParseCommitLog:
    """Tests for parsing the machine readable log."""

    def test_multiline_messages(self) -> None:
        """Test that bodies and markers survive parsing."""
        log = (
            "a" * 40 + "\x1fAdd parser\n\nLonger body\n\ngit-stack-id: gs-1\x1e\n"
            + "b" * 40 + "\x1fTidy imports\x1e\n"
        )
        commits = parse_commit_log(log)

        assert [c.sha for c in commits] == ["a" * 40, "b" * 40]
        assert commits[0].subject == "Add parser"
        assert commits[0].embedded_group_id == "gs-1"
        assert commits[1].embedded_group_id is None

    def test_empty_log(self) -> None:
        """Test that an empty log yields no commits."""
        assert parse_commit_log("") == []
        assert parse_commit_log("\n") == []


class TestRealGit:
    """Tests for the git commands RealGit issues."""

    def test_get_commits_uses_range(self) -> None:
        """Test that the log covers merge-base..HEAD oldest first."""
        git_cmd = make_git()
        git_cmd.get_commits("abc")
        assert executed(git_cmd) == [["git", "log", "--reverse", "--no-color", COMMIT_LOG_FORMAT, "abc..HEAD"]]

    def test_cherry_pick_without_verify_skips_hooks(self) -> None:
        """Test that hooks are disabled through config when not verifying."""
        git_cmd = make_git()
        git_cmd.cherry_pick("abc", verify=True)
        git_cmd.cherry_pick("abc", verify=False)
        assert executed(git_cmd) == [
            ["git", "cherry-pick", "--ff", "abc"],
            ["git", "-c", "core.hooksPath=/dev/null", "cherry-pick", "--ff", "abc"],
        ]

    def test_amend_keeps_message_intact(self) -> None:
        """Test that a multi line message is passed as a single argument."""
        git_cmd = make_git()
        git_cmd.amend_message("Subject\n\ngit-stack-id: gs-1", verify=False)
        assert executed(git_cmd) == [["git", "commit", "--amend", "-m", "Subject\n\ngit-stack-id: gs-1", "--no-verify"]]

    def test_push_force_to_configured_remote(self) -> None:
        """Test that pushes go to the configured remote under refs/heads."""
        git_cmd = make_git()
        git_cmd.push_force("gs-1")
        assert executed(git_cmd) == [["git", "push", "-f", "upstream", "HEAD:refs/heads/gs-1"]]

    def test_pretend_skips_push(self) -> None:
        """Test that pretend mode logs pushes instead of running them."""
        git_cmd = make_git(pretend=True)
        git_cmd.push_force("gs-1")
        git_cmd.checkout("main")
        assert executed(git_cmd) == [["git", "checkout", "main"]]

    def test_string_commands_are_split(self) -> None:
        """Test that string commands are split like a shell would."""
        git_cmd = make_git()
        git_cmd.must_git("log -1 'HEAD~1'")
        assert executed(git_cmd) == [["git", "log", "-1", "HEAD~1"]]

    def test_command_failure_is_wrapped(self) -> None:
        """Test that GitPython errors surface as ExternalCommandFailure."""
        git_cmd = make_git()
        git_cmd._repo.git.execute.side_effect = GitCommandError(["git", "checkout", "x"], 1, b"error: nope")
        with pytest.raises(ExternalCommandFailure) as exc_info:
            git_cmd.checkout("x")
        assert exc_info.value.status == 1
        assert "checkout x" in str(exc_info.value)

    def test_delete_branch_ignores_failure(self) -> None:
        """Test that deleting a missing branch is not an error."""
        git_cmd = make_git()
        git_cmd._repo.git.execute.side_effect = GitCommandError(["git", "branch"], 1)
        git_cmd.delete_branch("gone")

    def test_restore_sync_returns_status(self) -> None:
        """Test that cleanup commands run detached and report their status."""
        git_cmd = make_git()
        completed = subprocess.CompletedProcess(["git"], 1, b"", b"error: no cherry-pick in progress")
        with patch("pygitstack.git.subprocess.run", return_value=completed) as run:
            assert git_cmd.restore_sync(["cherry-pick", "--abort"]) == 1

        args, kwargs = run.call_args
        assert args[0] == ["git", "cherry-pick", "--abort"]
        assert kwargs["cwd"] == "/tmp/repo"
        assert kwargs["start_new_session"] is True
        assert kwargs["check"] is False

    def test_restore_sync_missing_git(self) -> None:
        """Test that a missing executable is reported as a failed status."""
        git_cmd = make_git()
        with patch("pygitstack.git.subprocess.run", side_effect=OSError("no git")):
            assert git_cmd.restore_sync(["checkout", "main"]) == -1

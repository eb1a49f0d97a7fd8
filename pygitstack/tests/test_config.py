"""Tests for config parsing."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from pygitstack.config import Config
from pygitstack.config.config_parser import CONFIG_FILE_NAME, parse_config, parse_remote_url
from pygitstack.errors import ExternalCommandFailure


@pytest.mark.parametrize("url,expected", [
    ("git@github.com:acme/widgets.git", ("acme", "widgets")),
    ("https://github.com/acme/widgets.git", ("acme", "widgets")),
    ("https://github.com/acme/widgets", ("acme", "widgets")),
    ("ssh://git@github.com/acme/widgets.git/", ("acme", "widgets")),
    ("not a url", None),
])
def test_parse_remote_url(url: str, expected) -> None:
    assert parse_remote_url(url) == expected


def test_defaults_with_remote(tmp_path: Path) -> None:
    """Test that owner and name come from the remote url when not configured."""
    git_cmd = MagicMock()
    git_cmd.must_git.return_value = "git@github.com:acme/widgets.git\n"

    config = Config(parse_config(git_cmd, str(tmp_path)))

    assert config.repo.remote == "origin"
    assert config.repo.trunk == "main"
    assert config.repo.github_repo_owner == "acme"
    assert config.repo.github_repo_name == "widgets"
    assert config.user.verify is True
    assert config.tool.pretend is False
    git_cmd.must_git.assert_called_once_with(["remote", "get-url", "origin"])


def test_yaml_overrides(tmp_path: Path) -> None:
    """Test that the repository config file overrides defaults."""
    (tmp_path / CONFIG_FILE_NAME).write_text(
        "repo:\n"
        "  remote: upstream\n"
        "  trunk: develop\n"
        "  github_repo_owner: acme\n"
        "  github_repo_name: widgets\n"
        "  branch_prefix: me/\n"
        "user:\n"
        "  verify: false\n"
    )
    git_cmd = MagicMock()

    config = Config(parse_config(git_cmd, str(tmp_path)))

    assert config.repo.remote == "upstream"
    assert config.repo.trunk == "develop"
    assert config.repo.branch_prefix == "me/"
    assert config.user.verify is False
    # nothing to look up when owner and name are configured
    git_cmd.must_git.assert_not_called()


def test_missing_remote(tmp_path: Path) -> None:
    """Test that a repository without the remote still yields a config."""
    git_cmd = MagicMock()
    git_cmd.must_git.side_effect = ExternalCommandFailure(["git", "remote"], "error: No such remote", 2)

    config = Config(parse_config(git_cmd, str(tmp_path)))

    assert config.repo.github_repo_owner is None

"""Git interfaces and implementation."""

import os
import logging
import shlex
import subprocess
from typing import List, Optional, Protocol, Sequence, Union

import git
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..errors import ExternalCommandFailure, PreconditionViolation
from ..typing import Commit
from ..config.models import GitStackConfig

logger = logging.getLogger(__name__)

GitArgs = Union[str, Sequence[str]]

# Field and record separators for commit log parsing
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
COMMIT_LOG_FORMAT = f"--format=%H{_FIELD_SEP}%B{_RECORD_SEP}"

# Passed as `git -c` so hooks are skipped for commands without --no-verify
NO_HOOKS = ("-c", "core.hooksPath=/dev/null")


def _split_args(command: GitArgs) -> List[str]:
    if isinstance(command, str):
        return shlex.split(command)
    return [str(part) for part in command]


def parse_commit_log(commit_log: str) -> List[Commit]:
    """Parse ``git log COMMIT_LOG_FORMAT`` output. Keeps the order of the log."""
    commits: List[Commit] = []
    for record in commit_log.split(_RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        sha, _, message = record.partition(_FIELD_SEP)
        commits.append(Commit.from_message(sha.strip(), message.strip()))
    return commits


class GitInterface(Protocol):
    """What the engine needs from the version-control side."""
    def run_cmd(self, command: GitArgs) -> str: ...
    def must_git(self, command: GitArgs) -> str: ...
    def current_branch(self) -> str: ...
    def merge_base(self, trunk_ref: str) -> str: ...
    def get_commits(self, merge_base: str) -> List[Commit]: ...
    def checkout(self, ref: str) -> None: ...
    def checkout_new_branch(self, branch: str, ref: Optional[str] = None) -> None: ...
    def cherry_pick(self, sha: str, verify: bool = True) -> None: ...
    def amend_message(self, message: str, verify: bool = True) -> None: ...
    def push_force(self, remote_branch: str, ref: str = "HEAD", verify: bool = True) -> None: ...
    def delete_branch(self, branch: str) -> None: ...
    def move_branch(self, branch: str, ref: str) -> None: ...
    def restore_sync(self, command: GitArgs) -> int: ...


class RealGit:
    """Real Git implementation."""
    def __init__(self, config: GitStackConfig, repo_dir: Optional[str] = None):
        """Initialize with config."""
        self.config: GitStackConfig = config
        self.repo_dir = repo_dir or os.getcwd()
        self._repo: Optional[git.Repo] = None

    @property
    def repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.repo_dir, search_parent_directories=True)
            except (InvalidGitRepositoryError, NoSuchPathError):
                raise PreconditionViolation("Not in a git repository")
        return self._repo

    @property
    def working_dir(self) -> str:
        return str(self.repo.working_tree_dir or self.repo_dir)

    def run_cmd(self, command: GitArgs) -> str:
        """Run git command."""
        args = _split_args(command)
        cmd_str = " ".join(args)

        if self.config.tool.pretend and "push" in args:
            logger.info(f"[PRETEND] > git {cmd_str}")
            return ""

        logger.info(f"> git {cmd_str}")
        try:
            result = self.repo.git.execute(["git", *args])
        except GitCommandError as e:
            output = "\n".join(part for part in (e.stdout, e.stderr) if part).strip()
            raise ExternalCommandFailure(["git", *args], output, e.status) from e
        return result if isinstance(result, str) else str(result)

    def must_git(self, command: GitArgs) -> str:
        """Run git command, failing on error."""
        return self.run_cmd(command)

    def current_branch(self) -> str:
        return self.must_git(["rev-parse", "--abbrev-ref", "HEAD"]).strip()

    def merge_base(self, trunk_ref: str) -> str:
        return self.must_git(["merge-base", trunk_ref, "HEAD"]).strip()

    def get_commits(self, merge_base: str) -> List[Commit]:
        """Commits between merge_base and HEAD, oldest first."""
        commit_log = self.must_git(["log", "--reverse", "--no-color", COMMIT_LOG_FORMAT, f"{merge_base}..HEAD"])
        commits = parse_commit_log(commit_log)
        logger.debug(f"get_commits: parsed {len(commits)} commits")
        for c in commits:
            logger.debug(f"  {c.sha[:8]}: id={c.embedded_group_id}, subject='{c.subject}'")
        return commits

    def checkout(self, ref: str) -> None:
        self.must_git(["checkout", ref])

    def checkout_new_branch(self, branch: str, ref: Optional[str] = None) -> None:
        args = ["checkout", "-b", branch]
        if ref:
            args.append(ref)
        self.must_git(args)

    def cherry_pick(self, sha: str, verify: bool = True) -> None:
        # --ff keeps the original sha when HEAD already is the parent
        args = ["cherry-pick", "--ff", sha]
        if not verify:
            args = [*NO_HOOKS, *args]
        self.must_git(args)

    def amend_message(self, message: str, verify: bool = True) -> None:
        # Passed as a list so multi line messages survive without quoting
        args = ["commit", "--amend", "-m", message]
        if not verify:
            args.append("--no-verify")
        self.must_git(args)

    def push_force(self, remote_branch: str, ref: str = "HEAD", verify: bool = True) -> None:
        args = ["push", "-f", self.config.repo.remote, f"{ref}:refs/heads/{remote_branch}"]
        if not verify:
            args.append("--no-verify")
        self.must_git(args)

    def delete_branch(self, branch: str) -> None:
        """Force delete a local branch. A missing branch is not an error."""
        try:
            self.must_git(["branch", "-D", branch])
        except ExternalCommandFailure as e:
            logger.debug(f"Ignoring failed branch delete of {branch}: {e.output}")

    def move_branch(self, branch: str, ref: str) -> None:
        self.must_git(["branch", "-f", branch, ref])

    def restore_sync(self, command: GitArgs) -> int:
        """Run a cleanup command on a plain blocking subprocess.

        Used while restoring after an interrupt. The child is started in its
        own session so a repeated Ctrl-C cannot kill it halfway, and its
        exit status is returned instead of raising.
        """
        args = _split_args(command)
        logger.info(f"> git {' '.join(args)}")
        try:
            proc = subprocess.run(
                ["git", *args],
                cwd=self.working_dir,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
                check=False,
            )
        except OSError as e:
            logger.error(f"Failed to run git {' '.join(args)}: {e}")
            return -1
        if proc.returncode != 0:
            logger.debug(f"git {' '.join(args)} exited {proc.returncode}: {proc.stderr.decode(errors='replace').strip()}")
        return proc.returncode

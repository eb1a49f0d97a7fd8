"""Replay dirty groups of a stack and publish their branches and pull requests."""

import logging
import signal
from types import FrameType
from typing import Any, List, Optional

from .. import metadata, stack_summary
from ..commit_range import CommitRange, Group
from ..config.models import GitStackConfig
from ..context import OutputContext
from ..errors import HostingApiFailure, PreconditionViolation, UserInterrupt
from ..git import GitInterface
from ..github import GitHubClient, PullRequest, number_from_url
from ..typing import CommitAssignment
from ..util import invariant, short_id

logger = logging.getLogger(__name__)


def _same_body(left: Optional[str], right: Optional[str]) -> bool:
    # GitHub hands bodies back with CRLF line endings
    return (left or "").replace("\r\n", "\n") == (right or "").replace("\r\n", "\n")


class StackSync:
    """Publish orchestrator.

    ``run()`` moves through: working branch created, then replay and publish
    of every group from the first dirty one to the top, then the stack table
    repair pass, then the original branch is moved onto the working branch.
    Any failure, or SIGINT once the working branch exists, restores the
    original branch and removes every branch the run created.
    """

    def __init__(self, ctx: OutputContext, config: GitStackConfig, git_cmd: GitInterface,
                 github: GitHubClient, commit_range: Optional[CommitRange],
                 branch_name: Optional[str], merge_base: Optional[str],
                 assignment: Optional[CommitAssignment],
                 skip_sync: bool = False, force: bool = False):
        self.ctx = ctx
        self.config = config
        self.git_cmd = git_cmd
        self.github = github
        self.commit_range = commit_range
        self.branch_name = branch_name
        self.merge_base = merge_base
        self.assignment = assignment
        self.skip_sync = skip_sync
        self.force = force
        self.verify = config.user.verify

        self.temp_branch: Optional[str] = None
        self.created_branches: List[str] = []
        self.pr_url_list: List[Optional[str]] = []
        self._restoring = False

    def rebase_group_index(self) -> Optional[int]:
        """Index of the first group to replay, None when nothing needs it."""
        commit_range = invariant(self.commit_range, "commit_range must exist")
        if self.force:
            return 0
        return commit_range.first_dirty_index()

    def run(self) -> bool:
        """Sync the stack. Returns False when there was nothing to do."""
        commit_range = invariant(self.commit_range, "commit_range must exist")
        branch_name = invariant(self.branch_name, "branch_name must exist")
        merge_base = invariant(self.merge_base, "merge_base must exist")
        invariant(self.assignment, "commit assignment must exist")
        if commit_range.invalid:
            raise PreconditionViolation(
                "Group ids are split across non-adjacent commits: "
                + ", ".join(commit_range.duplicate_ids)
                + ". Reorder the commits or reassign them so every group is contiguous.")

        start = self.rebase_group_index()
        if start is None:
            self.ctx.debug("All groups are in sync, nothing to do")
            return False

        group_list = commit_range.group_list
        if start > 0:
            rebase_merge_base = group_list[start - 1].last_commit.sha
        else:
            rebase_merge_base = merge_base

        self.temp_branch = f"{branch_name}_{short_id()}"
        self.pr_url_list = [self._group_url(commit_range, g) for g in group_list]

        previous_handler = signal.signal(signal.SIGINT, self._handle_sigint)
        try:
            self.git_cmd.checkout_new_branch(self.temp_branch, rebase_merge_base)

            for index in range(start, len(group_list)):
                self._sync_group(commit_range, index)

            if not self.skip_sync:
                self._update_stack_tables(commit_range)

            # Locally in sync with github, move the original branch over
            self.git_cmd.move_branch(branch_name, self.temp_branch)
            # The run has succeeded from here on, SIGINT only lets the cleanup finish
            self._restoring = True
            self._restore_git(abort=False)
        except Exception as e:
            self.ctx.error("Unable to rebase.")
            if self.ctx.is_debug():
                self.ctx.error(str(e))
            self._restore(interrupted=False)
            raise
        finally:
            signal.signal(signal.SIGINT, previous_handler)
        return True

    def _group_url(self, commit_range: CommitRange, group: Group) -> Optional[str]:
        if not commit_range.is_publishable(group):
            return None
        return group.url()

    def _sync_group(self, commit_range: CommitRange, index: int) -> None:
        group = commit_range.group_list[index]
        publishable = commit_range.is_publishable(group)
        group_id = group.id if publishable else None
        selected_url = self.pr_url_list[index]

        # cherry-pick and amend commits one by one
        for commit in group.commits:
            self.git_cmd.cherry_pick(commit.sha, verify=self.verify)
            if commit.embedded_group_id != group_id:
                new_message = metadata.encode(commit.message, group_id)
                self.git_cmd.amend_message(new_message, verify=self.verify)

        self.ctx.output(f"Syncing [{group.title or group.id}]…")

        if self.skip_sync or not publishable:
            return

        # github needs the shas to line up with the local commits
        self.git_cmd.push_force(group.id, "HEAD", verify=self.verify)

        base = invariant(group.base, f"group {group.id} has no base")
        if group.pull_request:
            pr = group.pull_request
            body = stack_summary.write(pr.body, self.pr_url_list, selected_url)
            if pr.base != base or not _same_body(body, pr.body):
                self.github.edit_pull_request(group.id, base, body)
                pr.base = base
                pr.body = body
            else:
                self.ctx.debug(f"Pull request for {group.id} already up to date")
            return

        # leftover local branch from an earlier run
        self.git_cmd.delete_branch(group.id)
        self.git_cmd.checkout_new_branch(group.id)
        self.created_branches.append(group.id)

        pr_url = self.github.create_pull_request(group.id, base, group.title, "")
        if not pr_url:
            raise HostingApiFailure(f"unable to create pull request for {group.id}")

        self.pr_url_list = [pr_url if url == selected_url else url for url in self.pr_url_list]
        group.pull_request = PullRequest(
            number=number_from_url(pr_url),
            url=pr_url,
            title=group.title,
            body="",
            base=base,
            head=group.id,
            commit_shas=[],
        )

        self.git_cmd.checkout(invariant(self.temp_branch, "temp_branch must exist"))

    def _update_stack_tables(self, commit_range: CommitRange) -> None:
        """Rewrite every stack table now that all urls are known."""
        for index, group in enumerate(commit_range.group_list):
            pr = group.pull_request
            if pr is None or not commit_range.is_publishable(group):
                continue
            base = invariant(group.base, f"group {group.id} has no base")

            selected_url = self.pr_url_list[index]
            body = pr.body or ""
            update_body = stack_summary.write(body, self.pr_url_list, selected_url)

            if _same_body(update_body, body):
                self.ctx.debug(f"Skipping body update for {selected_url}")
            else:
                self.ctx.debug(f"Update body for {selected_url}")
                self.github.edit_pull_request(group.id, base, update_body)
                pr.body = update_body

    def _handle_sigint(self, signum: int, frame: Optional[FrameType]) -> Any:
        if self._restoring:
            return
        self._restore(interrupted=True)
        raise UserInterrupt()

    def _restore(self, interrupted: bool) -> None:
        """Put the repository back the way it was before the run."""
        self._restoring = True
        # A second Ctrl-C must not cut the cleanup short
        signal.signal(signal.SIGINT, signal.SIG_IGN)
        self.ctx.output(f"Restoring [{self.branch_name}]...")
        self._restore_git(abort=True)
        self.ctx.output(f"Restored [{self.branch_name}].")
        if interrupted:
            logger.warning("Interrupted, repository restored")

    def _restore_git(self, abort: bool) -> None:
        """Checkout the original branch and drop transient branches.

        Runs on plain blocking subprocesses, never the GitPython path: during
        an interrupt every child of the foreground process group received
        the same SIGINT. Each command is allowed to fail.
        """
        if abort:
            self.git_cmd.restore_sync(["cherry-pick", "--abort"])

        if self.git_cmd.restore_sync(["checkout", str(self.branch_name)]) != 0:
            if self.git_cmd.restore_sync(["checkout", "-f", str(self.branch_name)]) != 0:
                logger.error(f"Failed to checkout {self.branch_name}")

        if self.temp_branch:
            self.git_cmd.restore_sync(["branch", "-D", self.temp_branch])

        for branch in self.created_branches:
            self.git_cmd.restore_sync(["branch", "-D", branch])

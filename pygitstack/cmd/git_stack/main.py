"""CLI entry point."""

import os
import sys
import click
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple
from click import Context

from ...commit_range import CommitRange, build_range, seed_assignment
from ...config import Config, default_config
from ...config.config_parser import parse_config
from ...context import OutputContext
from ...editor import RangeEditor
from ...errors import ExternalCommandFailure, PreconditionViolation, StackError
from ...git import GitInterface, RealGit
from ...github import GitHubClient, PullRequest
from ...pretty import header, status_table
from ...sync import StackSync
from ...typing import Commit, CommitAssignment

logger = logging.getLogger(__name__)

class AliasedGroup(click.Group):
    """Command group with support for aliases."""

    def __init__(self, name: Optional[str] = None, commands: Optional[Dict[str, click.Command]] = None, **attrs: Any) -> None:
        super().__init__(name, commands, **attrs)
        self.aliases: Dict[str, str] = {}

    def add_alias(self, alias: str, command: str) -> None:
        self.aliases[alias] = command

    def get_command(self, ctx: Context, cmd_name: str) -> Optional[click.Command]:
        if cmd_name in self.aliases:
            cmd_name = self.aliases[cmd_name]
        return super().get_command(ctx, cmd_name)

@click.group(cls=AliasedGroup)
@click.pass_context
def cli(ctx: Context) -> None:
    """git stack - keep a stack of pull requests in sync with local commits."""
    if ctx.obj is None:
        ctx.obj = {}

@dataclass
class StackState:
    """Everything read from git and github before a run."""
    branch_name: str
    merge_base: str
    commits: List[Commit]
    assignment: CommitAssignment
    pull_requests: Dict[str, PullRequest]
    commit_range: CommitRange

def setup_git(directory: Optional[str], obj: Dict[str, Any]) -> Tuple[Config, GitInterface, GitHubClient]:
    """Setup config, git and github collaborators."""
    if directory:
        os.chdir(directory)

    git_cmd: GitInterface = obj.get('git_cmd') or RealGit(default_config())
    try:
        repo_root = git_cmd.must_git(["rev-parse", "--show-toplevel"]).strip()
    except (ExternalCommandFailure, PreconditionViolation) as e:
        logger.error(f"{e}")
        click.echo("Not in a git repository", err=True)
        sys.exit(2)

    # .git-stack.yaml lives at the top of the work tree, not in the cwd
    config = Config(parse_config(git_cmd, repo_root or None))
    if 'git_cmd' not in obj:
        git_cmd = RealGit(config)

    github = obj.get('github')
    if github is None:
        from ...github import find_github_token
        from ...github.adapters import create_client

        token = find_github_token()
        if not token:
            click.echo("No GitHub token found. Set GITHUB_TOKEN or log in with 'gh auth login'", err=True)
            sys.exit(2)
        github = GitHubClient(config, github_client=create_client(token))
    return config, git_cmd, github

def load_stack(config: Config, git_cmd: GitInterface, github: GitHubClient) -> Optional[StackState]:
    """Read the local commits and open pull requests and derive the range."""
    branch_name = git_cmd.current_branch()
    if branch_name == "HEAD":
        raise PreconditionViolation("HEAD is detached, checkout a branch first")

    remote = config.repo.remote
    trunk = config.repo.trunk
    git_cmd.must_git(["fetch", remote, trunk])
    merge_base = git_cmd.merge_base(f"{remote}/{trunk}")

    commits = git_cmd.get_commits(merge_base)
    if not commits:
        return None

    assignment = seed_assignment(commits)
    branches = {c.embedded_group_id for c in commits if c.embedded_group_id}
    pull_requests = github.get_pull_requests(branches)
    commit_range = build_range(commits, assignment, pull_requests, trunk, merge_base)
    return StackState(branch_name, merge_base, commits, assignment, pull_requests, commit_range)

def print_status(out: OutputContext, commit_range: CommitRange) -> None:
    out.newline()
    out.output(status_table(commit_range))
    out.newline()

def select_commit_ranges(out: OutputContext, editor: RangeEditor) -> None:
    """Prompt loop over the editor until the user is done."""
    while True:
        items = editor.items()
        ids = editor.group_ids
        out.newline()
        if ids:
            out.output(f"← ({editor.index + 1}/{len(ids)}) {editor.focused_title()} →")
        else:
            out.output("No groups yet, press c to create one")
        for number, item in enumerate(items, start=1):
            mark = "-" if item.disabled else ("x" if item.selected else " ")
            out.output(f"  {number:>2}. [{mark}] {item.label}")
        out.output("Select commits to group into this PR")

        choice = click.prompt("Number to toggle, [n]ext, [p]revious, [c]reate group, [d]one",
                              default="d", show_default=False).strip().lower()
        if choice in ("d", "done"):
            return
        if choice in ("n", "next"):
            editor.next()
        elif choice in ("p", "prev", "previous"):
            editor.previous()
        elif choice in ("c", "create"):
            editor.new_group()
        elif choice.isdigit() and 1 <= int(choice) <= len(items):
            try:
                editor.toggle(items[int(choice) - 1].commit.sha)
            except StackError as e:
                out.error(str(e))
        else:
            out.error(f"Unknown choice: {choice}")

def report_failure(out: OutputContext, err: StackError) -> None:
    if isinstance(err, ExternalCommandFailure):
        out.error(f"Command failed: {err.command}")
        if err.output:
            out.error(err.output)
    else:
        out.error(str(err))

def run_stack(out: OutputContext, config: Config, git_cmd: GitInterface, github: GitHubClient,
              check: bool, force: bool, skip_sync: bool, select: bool) -> int:
    """Status, optional regrouping, then sync. Returns the exit status."""
    state = load_stack(config, git_cmd, github)
    if state is None:
        out.output("No commits between the trunk and HEAD.")
        return 0

    print_status(out, state.commit_range)
    if check:
        return 0

    commit_range = state.commit_range
    assignment = state.assignment
    if select:
        editor = RangeEditor(commit_range, assignment, state.pull_requests,
                             branch_prefix=config.repo.branch_prefix)
        select_commit_ranges(out, editor)
        commit_range = editor.commit_range
        assignment = editor.assignment

    if not force and not commit_range.needs_update():
        out.output("✅ Everything up to date.")
        out.output("Run with --force to force update all pull requests.")
        return 0

    if git_cmd.must_git(["status", "--porcelain", "--untracked-files=no"]).strip():
        out.error("Working tree has uncommitted changes, commit or stash them first.")
        return 1

    stack_sync = StackSync(out, config, git_cmd, github, commit_range,
                           state.branch_name, state.merge_base, assignment,
                           skip_sync=skip_sync, force=force)
    stack_sync.run()

    updated = load_stack(config, git_cmd, github)
    if updated is not None:
        print_status(out, updated.commit_range)
    return 0

@cli.command(name="sync", help="Sync the commit stack with its branches and pull requests")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if git-stack was started in DIRECTORY instead of the current working directory')
@click.option('--check', is_flag=True, help="Only print the status table")
@click.option('--force', is_flag=True, help="Resync every group, even if it looks up to date")
@click.option('--no-verify', is_flag=True, help="Skip git hooks when cherry-picking, amending and pushing")
@click.option('--skip-sync', is_flag=True, help="Rebuild the local branch without pushing or touching pull requests")
@click.option('--select', is_flag=True, help="Interactively choose which commits belong to which pull request")
@click.option('--pretend', is_flag=True, help="Don't push or create/update pull requests, just show what would happen")
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.pass_context
def sync(ctx: Context, directory: Optional[str], check: bool, force: bool, no_verify: bool,
         skip_sync: bool, select: bool, pretend: bool, verbose: int) -> None:
    """Sync command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd, github = setup_git(directory, ctx.obj)
    config.tool.pretend = config.tool.pretend or pretend
    if no_verify:
        config.user.verify = False
    out = ctx.obj.get('output') or OutputContext.for_terminal(debug_enabled=verbose >= 2 or config.user.debug)
    out.output(header("git stack"))

    try:
        code = run_stack(out, config, git_cmd, github, check, force, skip_sync, select)
    except StackError as e:
        report_failure(out, e)
        sys.exit(1)
    sys.exit(code)

@cli.command(name="status", help="Show the status of every group in the stack")
@click.option('-C', '--directory', type=click.Path(exists=True, file_okay=False, dir_okay=True),
              help='Run as if git-stack was started in DIRECTORY instead of the current working directory')
@click.option('-v', '--verbose', count=True, help="Increase verbosity (can be used multiple times for more verbosity)")
@click.pass_context
def status(ctx: Context, directory: Optional[str], verbose: int) -> None:
    """Status command."""
    from ... import setup_logging
    setup_logging(verbose)

    config, git_cmd, github = setup_git(directory, ctx.obj)
    out = ctx.obj.get('output') or OutputContext.for_terminal(debug_enabled=verbose >= 2)
    try:
        code = run_stack(out, config, git_cmd, github, check=True, force=False, skip_sync=False, select=False)
    except StackError as e:
        report_failure(out, e)
        sys.exit(1)
    sys.exit(code)


def main() -> None:
    """Main entry point."""
    cli.add_alias('up', 'sync')
    cli.add_alias('st', 'status')
    cli(obj={})

if __name__ == "__main__":
    main()

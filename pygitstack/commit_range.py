"""Derive the ordered group list of a commit stack."""

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Mapping, Optional, Sequence

from .errors import InvalidRangeError
from .github import PullRequest
from .typing import Commit, CommitAssignment

logger = logging.getLogger(__name__)

# Not a valid git ref name, so it can never collide with a real group branch
UNASSIGNED = "<unassigned>"


@dataclass
class Group:
    """A contiguous run of commits published as one branch and pull request."""
    id: str
    commits: List[Commit] = field(default_factory=list)
    base: Optional[str] = None
    title: str = ""
    pull_request: Optional[PullRequest] = None
    dirty: bool = True

    @property
    def shas(self) -> List[str]:
        return [c.sha for c in self.commits]

    @property
    def last_commit(self) -> Commit:
        return self.commits[-1]

    def url(self) -> str:
        """Pull request url, or the group id as a placeholder."""
        if self.pull_request and self.pull_request.url:
            return self.pull_request.url
        return self.id


@dataclass
class CommitRange:
    """Result of grouping the commits between merge-base and HEAD."""
    commit_list: List[Commit]
    group_list: List[Group]
    trunk: str
    merge_base: str
    UNASSIGNED: str = UNASSIGNED
    duplicate_ids: List[str] = field(default_factory=list)

    @property
    def invalid(self) -> bool:
        """True when some group id occurs in more than one run."""
        return bool(self.duplicate_ids)

    def is_publishable(self, group: Group) -> bool:
        return group.id != self.UNASSIGNED

    def publishable_groups(self) -> List[Group]:
        return [g for g in self.group_list if self.is_publishable(g)]

    def needs_update(self) -> bool:
        return any(g.dirty for g in self.group_list)

    def first_dirty_index(self) -> Optional[int]:
        for index, group in enumerate(self.group_list):
            if group.dirty:
                return index
        return None

    def group_ids(self) -> List[str]:
        return [g.id for g in self.group_list]


def seed_assignment(commits: Sequence[Commit]) -> CommitAssignment:
    """Initial assignment, taken from the ids embedded in commit messages."""
    return {commit.sha: commit.embedded_group_id for commit in commits}


def is_dirty(group: Group, unassigned: str = UNASSIGNED,
             expected_shas: Optional[Sequence[str]] = None) -> bool:
    """Whether the group's linked pull request is behind the local commits.

    ``expected_shas`` is what the pushed branch holds on top of its base; it
    defaults to the group's own commits.
    """
    if group.id == unassigned:
        return False
    pr = group.pull_request
    if pr is None:
        return True
    if pr.base != group.base:
        return True
    if expected_shas is None:
        expected_shas = group.shas
    return list(pr.commit_shas) != list(expected_shas)


def build_range(commits: Sequence[Commit],
                assignment: CommitAssignment,
                pull_requests: Mapping[str, PullRequest],
                trunk: Optional[str],
                merge_base: Optional[str],
                unassigned: str = UNASSIGNED) -> CommitRange:
    """Group commits (oldest first) into contiguous runs and link pull requests.

    Args:
        commits: Commits between merge-base and HEAD, oldest first
        assignment: sha -> group id, ``None`` meaning unassigned. A sha missing
            from the assignment falls back to the id embedded in its message.
        pull_requests: Open pull requests keyed by head branch name
        trunk: Branch the bottom group targets
        merge_base: Common ancestor of trunk and HEAD

    Raises:
        InvalidRangeError: If there is nothing to group or context is missing
    """
    if not commits:
        raise InvalidRangeError("commit list is empty")
    if not assignment:
        raise InvalidRangeError("commit assignment is empty")
    if not trunk:
        raise InvalidRangeError("trunk branch is required")
    if not merge_base:
        raise InvalidRangeError("merge base is required")

    group_list: List[Group] = []
    for commit in commits:
        group_id = assignment.get(commit.sha, commit.embedded_group_id) or unassigned
        if group_list and group_list[-1].id == group_id:
            group_list[-1].commits.append(commit)
        else:
            group_list.append(Group(id=group_id, commits=[commit]))

    seen: Dict[str, int] = {}
    duplicate_ids: List[str] = []
    base = trunk
    # unassigned commits ride along on the branch of the next group
    carried: List[str] = []
    for group in group_list:
        group.base = base
        if group.id == unassigned:
            group.title = "Unassigned"
            group.dirty = False
            carried.extend(group.shas)
            continue

        if group.id in seen and group.id not in duplicate_ids:
            duplicate_ids.append(group.id)
        seen[group.id] = seen.get(group.id, 0) + 1

        group.pull_request = pull_requests.get(group.id)
        if group.pull_request and group.pull_request.title:
            group.title = group.pull_request.title
        else:
            group.title = group.commits[0].subject
        group.dirty = is_dirty(group, unassigned, carried + group.shas)
        carried = []
        base = group.id

    if duplicate_ids:
        logger.warning(f"Group ids used by more than one run of commits: {', '.join(duplicate_ids)}")

    for group in group_list:
        logger.debug(f"  group {group.id}: base={group.base} dirty={group.dirty} commits={[c.sha[:8] for c in group.commits]}")

    return CommitRange(
        commit_list=list(commits),
        group_list=group_list,
        trunk=trunk,
        merge_base=merge_base,
        UNASSIGNED=unassigned,
        duplicate_ids=duplicate_ids,
    )

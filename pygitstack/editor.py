"""Interactive regrouping of commits.

The editor is a plain state object driven by discrete events so any front
end (the click prompt loop in the CLI, or a test) can drive it.
"""

from dataclasses import dataclass
import logging
from typing import Callable, List, Mapping, Optional

from .commit_range import CommitRange, Group, build_range
from .errors import InvalidRangeError
from .github import PullRequest
from .typing import Commit, CommitAssignment
from .util import short_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EditorItem:
    """One selectable commit row as seen from the focused group."""
    commit: Commit
    selected: bool
    disabled: bool

    @property
    def label(self) -> str:
        return self.commit.subject


class RangeEditor:
    """Reassign commits between groups, re-deriving the range after each change."""

    def __init__(self, commit_range: CommitRange, assignment: CommitAssignment,
                 pull_requests: Optional[Mapping[str, PullRequest]] = None,
                 branch_prefix: str = "gs-",
                 new_id: Callable[[], str] = short_id):
        self.assignment: CommitAssignment = dict(assignment)
        self.pull_requests: Mapping[str, PullRequest] = pull_requests or {}
        self.branch_prefix = branch_prefix
        self._new_id = new_id
        self.commit_range = commit_range
        self.extra_group_ids: List[str] = []
        self.index = 0

    @property
    def group_ids(self) -> List[str]:
        """Group ids the focus can move over, unassigned excluded."""
        ids: List[str] = []
        for group in self.commit_range.group_list:
            if self.commit_range.is_publishable(group) and group.id not in ids:
                ids.append(group.id)
        for group_id in self.extra_group_ids:
            if group_id not in ids:
                ids.append(group_id)
        return ids

    @property
    def focused_id(self) -> Optional[str]:
        ids = self.group_ids
        if not ids:
            return None
        return ids[self.index % len(ids)]

    def focused_group(self) -> Optional[Group]:
        focused = self.focused_id
        for group in self.commit_range.group_list:
            if group.id == focused:
                return group
        return None

    def focused_title(self) -> str:
        group = self.focused_group()
        if group is None:
            return self.focused_id or "Unassigned"
        return group.title or group.id

    def next(self) -> None:
        self.index = self._wrap(self.index + 1)

    def previous(self) -> None:
        self.index = self._wrap(self.index - 1)

    def _wrap(self, value: int) -> int:
        count = len(self.group_ids)
        return value % count if count else 0

    def items(self) -> List[EditorItem]:
        """Commit rows, newest first, as shown for the focused group."""
        focused = self.focused_id
        rows: List[EditorItem] = []
        for commit in self.commit_range.commit_list:
            group_id = self.assignment.get(commit.sha)
            selected = group_id is not None
            disabled = selected and group_id != focused
            rows.append(EditorItem(commit, selected, disabled))
        rows.reverse()
        return rows

    def new_group(self) -> str:
        """Mint a fresh group id and focus it."""
        group_id = f"{self.branch_prefix}{self._new_id()}"
        self.extra_group_ids.append(group_id)
        self.index = self.group_ids.index(group_id)
        logger.debug(f"Created group {group_id}")
        return group_id

    def toggle(self, sha: str) -> None:
        """Assign ``sha`` to the focused group, or release it if it already is."""
        focused = self.focused_id
        if focused is None:
            raise InvalidRangeError("no group to assign commits to, create one first")
        current = self.assignment.get(sha)
        if current is not None and current != focused:
            raise InvalidRangeError(f"commit {sha[:8]} belongs to group {current}")
        self.assign(sha, None if current == focused else focused)

    def assign(self, sha: str, group_id: Optional[str]) -> None:
        """Move a commit to a known group, or to unassigned with ``None``."""
        if sha not in self.assignment:
            raise InvalidRangeError(f"unknown commit {sha}")
        if group_id == self.commit_range.UNASSIGNED:
            group_id = None
        if group_id is not None and group_id not in self.group_ids:
            raise InvalidRangeError(f"unknown group {group_id}")
        focused = self.focused_id
        self.assignment[sha] = group_id
        self._rebuild()
        # keep focus on the same group when the list changed shape
        if focused is not None and focused in self.group_ids:
            self.index = self.group_ids.index(focused)
        else:
            self.index = self._wrap(self.index)

    def _rebuild(self) -> None:
        commit_range = self.commit_range
        self.commit_range = build_range(
            commit_range.commit_list,
            self.assignment,
            self.pull_requests,
            commit_range.trunk,
            commit_range.merge_base,
            commit_range.UNASSIGNED,
        )
        # a minted group shows up in the range once it owns a commit
        present = set(self.commit_range.group_ids())
        self.extra_group_ids = [g for g in self.extra_group_ids if g not in present]


"""Common types used across the codebase."""

from dataclasses import dataclass
from typing import Dict, Optional

from . import metadata

# sha -> group id (None means unassigned)
CommitAssignment = Dict[str, Optional[str]]


@dataclass(frozen=True)
class Commit:
    """A local commit between the merge-base and HEAD."""
    sha: str
    message: str
    embedded_group_id: Optional[str] = None

    @classmethod
    def from_message(cls, sha: str, message: str) -> 'Commit':
        return cls(sha, message, metadata.decode(message))

    @property
    def subject(self) -> str:
        lines = self.message.strip().splitlines()
        return lines[0].strip() if lines else ""

    def __str__(self) -> str:
        return f"{self.sha[:8]} {self.subject}"

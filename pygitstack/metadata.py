"""Group id marker embedded in commit messages.

The marker is a trailer line at the end of the message::

    Fix flaky login test

    git-stack-id: gs-1a2b3c4d
"""

import re
from typing import Optional

MARKER_KEY = "git-stack-id"

_MARKER_RE = re.compile(rf'^{MARKER_KEY}:[ \t]*(\S+)[ \t]*$', re.MULTILINE)
_MARKER_LINE_RE = re.compile(rf'^{MARKER_KEY}:.*(?:\r?\n|$)', re.MULTILINE)


def decode(message: str) -> Optional[str]:
    """Return the group id embedded in ``message``, or None."""
    matches = _MARKER_RE.findall(message or "")
    if not matches:
        return None
    # A message stamped by hand may carry several, the last one wins
    return matches[-1]


def strip(message: str) -> str:
    """Remove every marker line from ``message``."""
    return _MARKER_LINE_RE.sub("", message or "").rstrip()


def encode(message: str, group_id: Optional[str]) -> str:
    """Stamp ``message`` with ``group_id``, replacing any existing marker.

    Passing ``None`` removes the marker.
    """
    body = strip(message)
    if not group_id:
        return body
    if re.search(r'\s', group_id):
        raise ValueError(f"group id may not contain whitespace: {group_id!r}")
    if not body:
        return f"{MARKER_KEY}: {group_id}"
    return f"{body}\n\n{MARKER_KEY}: {group_id}"

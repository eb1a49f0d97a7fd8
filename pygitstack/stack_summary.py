"""Cross-reference table embedded in every pull request body of a stack."""

import re
from typing import List, Optional, Sequence

BLOCK_START = "<!-- git-stack: stack summary start -->"
BLOCK_END = "<!-- git-stack: stack summary end -->"
HEADING = "#### git stack"

SELECTED_ICON = "👉"
PENDING_ICON = "⏳"

_BLOCK_RE = re.compile(re.escape(BLOCK_START) + r'.*?' + re.escape(BLOCK_END), re.DOTALL)


def table(pr_url_list: Sequence[Optional[str]], selected_url: Optional[str]) -> str:
    """Render the table block. Newest pull request is listed first."""
    rows: List[str] = []
    for url in reversed(pr_url_list):
        if not url:
            continue
        icon = SELECTED_ICON if url == selected_url else PENDING_ICON
        rows.append(f"- {icon} {url}")
    return "\n".join([BLOCK_START, HEADING, *rows, BLOCK_END])


def write(body: Optional[str], pr_url_list: Sequence[Optional[str]], selected_url: Optional[str]) -> str:
    """Insert or replace the stack summary table in ``body``.

    ``pr_url_list`` is aligned with the group list; ``None`` entries (groups
    that are never published) are skipped. An existing block is replaced in
    place, otherwise the block is appended after the body.
    """
    body = body or ""
    block = table(pr_url_list, selected_url)
    if _BLOCK_RE.search(body):
        return _BLOCK_RE.sub(lambda _match: block, body, count=1)
    if not body.strip():
        return block
    return f"{body.rstrip()}\n\n{block}"


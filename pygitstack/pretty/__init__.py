"""Pretty formatting utilities for CLI output."""

import shutil
from dataclasses import dataclass
from typing import List, Optional

from ..commit_range import CommitRange

MAX_TITLE_LENGTH = 50
COLUMN_GAP = 2
BREATHING_ROOM = 10


def get_term_width() -> int:
    """Get terminal width, default to 80 if can't detect."""
    try:
        return shutil.get_terminal_size().columns
    except OSError:
        return 80


def header(text: str, use_emoji: bool = True, width: Optional[int] = None) -> str:
    """Create a boxed header with optional emoji."""
    width = width or get_term_width()
    h_line = "─" * (width - 2)
    v_line = "│"
    emoji = "🎯 " if use_emoji else ""
    label = f" {emoji}{text}"

    result = [
        f"┌{h_line}┐",
        f"{v_line}{label.ljust(width - 2)}{v_line}",
        f"└{h_line}┘"
    ]
    return "\n".join(result)


@dataclass
class StatusRow:
    icon: str
    status: str
    count: str
    title: str
    url: str

    COLUMNS = ("icon", "status", "count", "title", "url")


def status_rows(commit_range: CommitRange) -> List[StatusRow]:
    """Rows for the top of the stack first."""
    rows: List[StatusRow] = []
    for group in reversed(commit_range.group_list):
        if group.id == commit_range.UNASSIGNED:
            rows.append(StatusRow("⭑", "NEW", f"0/{len(group.commits)}", "Unassigned", ""))
            continue

        icon, status = ("!", "OUTDATED") if group.dirty else ("✔", "SYNCED")
        if group.pull_request:
            pr = group.pull_request
            rows.append(StatusRow(icon, status, f"{pr.remote_commit_count}/{len(group.commits)}",
                                  pr.title or group.title, pr.url))
        else:
            rows.append(StatusRow(icon, status, f"0/{len(group.commits)}", group.title or group.id, ""))
    return rows


def _clip(text: str, width: int) -> str:
    if len(text) <= width:
        return text
    if width <= 1:
        return text[:width]
    return text[:width - 1] + "…"


def status_table(commit_range: CommitRange, width: Optional[int] = None) -> str:
    """Render one line per group: icon, status, commit counts, title and url."""
    rows = status_rows(commit_range)
    if not rows:
        return "No data found."

    available_width = width or get_term_width()
    max_width = {col: max(len(getattr(row, col)) for row in rows) for col in StatusRow.COLUMNS}

    max_title_width = min(max_width["title"], MAX_TITLE_LENGTH)
    remaining = (available_width
                 - max_width["icon"]
                 - max_width["status"]
                 - max_width["count"]
                 - max_width["url"]
                 - COLUMN_GAP * len(StatusRow.COLUMNS)
                 - BREATHING_ROOM)
    title_width = max(0, min(remaining, max_title_width))

    gap = " " * COLUMN_GAP
    lines: List[str] = []
    for row in rows:
        cells = [
            row.icon.ljust(max_width["icon"]),
            row.status.ljust(max_width["status"]),
            row.count.ljust(max_width["count"]),
            _clip(row.title, title_width).ljust(title_width),
            row.url,
        ]
        lines.append(gap.join(cells).rstrip())
    return "\n".join(lines)

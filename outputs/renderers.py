"""
Output Renderers
Render merged search results as an HTML view and a markdown view
"""

from __future__ import annotations

from datetime import datetime
import html as html_lib
import json
import re
import time
from typing import Dict, List, Optional, Sequence
from urllib.parse import quote

from config import get_settings
from core import ExecutionResult, Item, RichOutput, has_many_repos

from .templates import CLOSED_ICON, COLLAPSE_CONTROL, HTML_STYLE, OPEN_ICON, STATS_SCRIPT


MIME_HTML = "text/html"
MIME_MARKDOWN = "text/markdown"

_ENTITY_MAP: Dict[str, str] = {
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    '"': "&quot;",
    "'": "&#39;",
    "/": "&#x2F;",
    "`": "&#x60;",
    "=": "&#x3D;",
}
_ENTITY_PATTERN = re.compile(r"[&<>\"'`=/]")
_REPO_PATTERN = re.compile(r".+/(.+/.+)$")
_HEX_COLOR = re.compile(r"^[0-9a-fA-F]{6}$")
# "1.2e+02" -> "1.2e+2"
_EXPONENT_PADDING = re.compile(r"e([+-])0+(?=\d)")


def escape_html(value: str) -> str:
    return _ENTITY_PATTERN.sub(lambda m: _ENTITY_MAP[m.group(0)], str(value or ""))


def _attr(value: str) -> str:
    return html_lib.escape(str(value or ""), quote=True)


def get_contrast_color(color: str) -> str:
    """Text color ("black" or "white") readable on the given hex background."""
    text = str(color or "").strip().lstrip("#")
    if not _HEX_COLOR.match(text):
        return "black"
    r = int(text[0:2], 16)
    g = int(text[2:4], 16)
    b = int(text[4:6], 16)
    return "black" if (0.299 * r + 0.587 * g + 0.114 * b) / 255 > 0.5 else "white"


def format_precision(value: float, digits: int = 2) -> str:
    """Format with ``digits`` significant digits, keeping trailing zeros."""
    text = _EXPONENT_PADDING.sub(r"e\1", f"{float(value):#.{digits}g}")
    return text[:-1] if text.endswith(".") else text


def _format_date(value: str) -> str:
    text = str(value or "").strip()
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return text[:10]
    return f"{dt.month}/{dt.day}/{dt.year}"


def repo_full_name(repository_url: str) -> Optional[str]:
    """``https://api.github.com/repos/owner/repo`` -> ``owner/repo``."""
    match = _REPO_PATTERN.match(str(repository_url or ""))
    return match.group(1) if match else None


def _repo_label(item: Item) -> str:
    full_name = repo_full_name(item.repository_url)
    if not full_name:
        return ""
    return f'<a href="https://github.com/{_attr(full_name)}" class="repo title">{_attr(full_name)}</a>'


def _start_working_link(item: Item) -> str:
    full_name = repo_full_name(item.repository_url)
    if item.closed_at or not full_name:
        return ""
    owner, repo = full_name.split("/", 1)
    args = json.dumps([{"owner": owner, "repo": repo, "number": item.number}], separators=(",", ":"))
    return (
        '<span class="start-working"><span>&nbsp;•&nbsp;</span>'
        f'<a href="command:issue.startWorking?{quote(args)}">Start Working...</a></span>'
    )


def _label_chips(item: Item) -> str:
    return "".join(
        f'<span class="label" style="background-color: #{_attr(label.color)};">'
        f'<a style="color: {get_contrast_color(label.color)};">{escape_html(label.name)}</a></span>'
        for label in item.labels
    )


def _assignee_avatars(item: Item) -> str:
    return "".join(
        f'<a href="{_attr(user.html_url)}"><img src="{_attr(user.avatar_url)}" '
        f'width="20" height="20" alt="@{_attr(user.login)}"></a>'
        for user in list(item.assignees or [])
    )


def render_item_html(item: Item, *, show_repo: bool, hide: bool, start_working: bool = False) -> str:
    """Render one result row."""
    row_class = "item-row hide" if hide else "item-row"
    lines = [
        f'<div class="{row_class}" data-item-id="{item.id}">',
        f'<div class="item-state">{CLOSED_ICON if item.closed_at else OPEN_ICON}</div>',
        '<div style="flex: auto;">',
        f'{_repo_label(item) if show_repo else ""}'
        f'<a href="{_attr(item.html_url)}" class="title">{escape_html(item.title)}</a>',
        _label_chips(item),
    ]
    if start_working:
        lines.append(_start_working_link(item))
    lines.extend(
        [
            '<div class="status">',
            f"<span>#{item.number} opened {_format_date(item.created_at)} by {escape_html(item.user.login)}</span>",
            "</div>",
            "</div>",
            f'<div class="user">{_assignee_avatars(item)}</div>',
            "</div>",
        ]
    )
    return "\n".join(line for line in lines if line) + "\n"


def render_stats(*, total_count: int, shown: int, elapsed_ms: int, queried_at_ms: int) -> str:
    showing = f" (showing {shown})" if total_count != shown else ""
    seconds = format_precision(max(0, elapsed_ms) / 1000)
    return (
        f'<div class="stats" data-ts="{queried_at_ms}">{total_count} results{showing}, '
        f"queried {{{{NOW}}}}, took {seconds}secs</div>"
    )


def render_markup(
    items: Sequence[Item],
    *,
    total_count: int,
    elapsed_ms: int,
    many_repos: Optional[bool] = None,
    queried_at_ms: Optional[int] = None,
    collapse_threshold: Optional[int] = None,
    start_working: Optional[bool] = None,
) -> str:
    """
    Render the HTML document

    Rows from index ``collapse_threshold`` on start hidden; a show more/less
    toggle is appended only when there are more rows than the threshold.
    """
    render_settings = get_settings().render
    threshold = render_settings.collapse_threshold if collapse_threshold is None else int(collapse_threshold)
    with_start_working = render_settings.start_working_link if start_working is None else bool(start_working)
    show_repo = has_many_repos(items) if many_repos is None else bool(many_repos)
    if queried_at_ms is None:
        queried_at_ms = int(time.time() * 1000)

    parts: List[str] = [HTML_STYLE]
    for idx, item in enumerate(items):
        parts.append(
            render_item_html(item, show_repo=show_repo, hide=idx >= threshold, start_working=with_start_working)
        )

    large = len(items) > threshold
    if large:
        parts.append(COLLAPSE_CONTROL)
    parts.append(
        render_stats(total_count=total_count, shown=len(items), elapsed_ms=elapsed_ms, queried_at_ms=queried_at_ms)
    )
    parts.append(STATS_SCRIPT)

    wrapper_class = "large collapsed" if large else ""
    return f'<div class="{wrapper_class}">{"".join(parts)}</div>'


def render_markdown(items: Sequence[Item]) -> str:
    lines: List[str] = []
    for item in items:
        labels = ", ".join(label.name for label in item.labels)
        lines.append(f"- [#{item.number}]({item.html_url}) {item.title} [{labels}]")
        if item.assignee:
            lines.append(f"- [@{item.assignee.login}]({item.assignee.html_url})")
    return "\n".join(lines) + ("\n" if lines else "")


def render_outputs(result: ExecutionResult, *, queried_at_ms: Optional[int] = None) -> RichOutput:
    """Both documents for one execution result, as a single rich output."""
    return RichOutput(
        data={
            MIME_HTML: render_markup(
                result.items,
                total_count=result.total_count,
                elapsed_ms=result.elapsed_ms,
                many_repos=result.has_many_repos,
                queried_at_ms=queried_at_ms,
            ),
            MIME_MARKDOWN: render_markdown(result.items),
        }
    )

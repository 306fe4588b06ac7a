"""
Outputs Module
HTML / markdown rendering of merged search results
"""

from .renderers import (
    MIME_HTML,
    MIME_MARKDOWN,
    escape_html,
    get_contrast_color,
    render_item_html,
    render_markdown,
    render_markup,
    render_outputs,
)

__all__ = [
    "MIME_HTML",
    "MIME_MARKDOWN",
    "escape_html",
    "get_contrast_color",
    "render_item_html",
    "render_markdown",
    "render_markup",
    "render_outputs",
]

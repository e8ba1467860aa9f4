"""Markdown to HTML rendering of bookmark descriptions."""
from markdown_it import MarkdownIt

# CommonMark without raw HTML passthrough
_renderer = MarkdownIt("commonmark", {"html": False})


def render_markdown(text: str) -> str:
    """Render Markdown to an HTML fragment. Empty input yields an empty string."""
    if not text:
        return ""
    return _renderer.render(text)

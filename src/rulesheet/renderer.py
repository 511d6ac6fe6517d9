# markdown to html rendering for summary pages
from markdown_it import MarkdownIt

# commonmark with raw html turned off: any html in the model output is escaped
_md = MarkdownIt("commonmark", {"html": False, "linkify": False, "typographer": False}).enable("strikethrough")


def render_markdown(markdown: str) -> str:
    """Render stored summary markdown to HTML"""
    return _md.render(markdown or "")

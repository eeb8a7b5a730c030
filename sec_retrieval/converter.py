"""Conversion of filing HTML into structured plain text."""

import re

from bs4 import BeautifulSoup
from markdownify import ATX, MarkdownConverter

STRIPPED_TAGS = [
    "script", "style", "noscript", "meta", "link", "nav", "header", "footer",
    "img", "input", "button",
]
HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.IGNORECASE)
TABLE_MARKER = "**TABLE:**"


def _squash(text: str) -> str:
    """Trim and collapse internal whitespace (including non-breaking spaces)."""
    return " ".join(text.split())


class FilingMarkdownConverter(MarkdownConverter):
    """
    Markdown converter tuned for EDGAR filings.

    Filing HTML is mostly word-processor or XBRL-viewer output, full of
    layout tables and spacer rows. Tables are flattened to one pipe-joined
    line per non-empty row and lists to one numbered or dashed line per
    item, so that financial tables and itemized disclosures stay legible.
    """

    def __init__(self, **options):
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("escape_underscores", False)
        options.setdefault("escape_asterisks", False)
        super().__init__(**options)

    def convert_table(self, el, text, parent_tags):
        lines = []
        for row in el.find_all("tr"):
            cells = [_squash(cell.get_text(" ")) for cell in row.find_all(["td", "th"])]
            cells = [cell for cell in cells if cell]
            if not cells:
                continue
            line = " | ".join(cells)
            if row.find("th") is not None:
                line = f"**{line}**"
            lines.append(line)

        if not lines:
            return ""
        return f"\n\n{TABLE_MARKER}\n\n" + "\n".join(lines) + "\n\n"

    def convert_list(self, el, text, parent_tags):
        ordered = el.name == "ol"
        lines = []
        # Numbering follows item position, so skipped empty items leave gaps
        for position, item in enumerate(el.find_all("li"), start=1):
            content = _squash(item.get_text(" "))
            if not content:
                continue
            prefix = f"{position}. " if ordered else "- "
            lines.append(prefix + content)

        if not lines:
            return ""
        return "\n\n" + "\n".join(lines) + "\n\n"

    convert_ol = convert_list
    convert_ul = convert_list


def strip_non_content(soup: BeautifulSoup) -> None:
    """Remove scripts, chrome, media, form controls and hidden nodes in place."""
    for tag in soup.find_all(STRIPPED_TAGS) + soup.find_all(style=HIDDEN_STYLE):
        # Nested matches are already gone with their ancestor
        if not tag.decomposed:
            tag.decompose()


def clean_text(text: str) -> str:
    """Normalize converted markdown: drop table artifacts and empty headings, squeeze whitespace."""
    text = re.sub(r"\|\s*\|\s*\|\s*\|", "", text)
    text = re.sub(r"\|\s*---\s*\|\s*---\s*\|", "", text)
    text = re.sub(r"^#+[ \t]*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"[ \t]+", " ", text)
    text = re.sub(r"\n[ \t]+", "\n", text)
    text = re.sub(r"^[ \t]*\|[ \t]*$", "", text, flags=re.MULTILINE)
    text = re.sub(r"\n\s*\n\s*\n+", "\n\n", text)
    return text.strip()


def html_to_text(markup: str, converter: FilingMarkdownConverter | None = None) -> str:
    """
    Convert filing markup to structured text.

    Args:
        markup: Raw HTML of a filing document
        converter: Converter to use (default: a new FilingMarkdownConverter)

    Returns:
        Markdown-like text with tables and lists preserved
    """
    soup = BeautifulSoup(markup, "html.parser")
    strip_non_content(soup)

    converter = converter or FilingMarkdownConverter()
    body = soup.body or soup
    return clean_text(converter.convert_soup(body))

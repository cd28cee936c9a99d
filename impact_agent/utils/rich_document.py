"""
Markdown subset to rich document conversion.

Supported subset:
- blank lines separate blocks
- every non-empty line inside a block becomes its own paragraph node
- ``**text**`` marks a bold span (non-nested, non-overlapping)

All other markdown (headings, lists, italics, code) is passed through as
literal text.
"""

import re
from typing import List

from impact_agent.models.document import Mark, Paragraph, RichDocument, TextRun

BLOCK_SEPARATOR = re.compile(r"\n[ \t]*\n")
BOLD_SPAN = re.compile(r"\*\*(.+?)\*\*")


def _plain(text: str) -> TextRun:
    return TextRun(text=text)


def _strong(text: str) -> TextRun:
    return TextRun(text=text, marks=[Mark()])


def line_to_runs(line: str) -> List[TextRun]:
    """Split a line into alternating plain and strong runs in original order."""
    runs: List[TextRun] = []
    position = 0

    for match in BOLD_SPAN.finditer(line):
        if match.start() > position:
            runs.append(_plain(line[position:match.start()]))
        runs.append(_strong(match.group(1)))
        position = match.end()

    if position < len(line):
        runs.append(_plain(line[position:]))

    return runs or [_plain(line)]


def markdown_to_document(text: str) -> RichDocument:
    """
    Convert a comment body into a rich document.

    Args:
        text: Comment body using the supported markdown subset

    Returns:
        RichDocument with one paragraph per non-empty line. Input without any
        non-empty line yields a single paragraph holding the raw input.
    """
    paragraphs: List[Paragraph] = []

    for block in BLOCK_SEPARATOR.split(text.replace("\r\n", "\n")):
        for line in block.split("\n"):
            if line.strip():
                paragraphs.append(Paragraph(content=line_to_runs(line.rstrip())))

    if not paragraphs:
        paragraphs.append(Paragraph(content=[_plain(text)]))

    return RichDocument(content=paragraphs)

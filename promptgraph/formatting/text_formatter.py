"""Render completion text for display.

Answers produced with document search carry citation artifacts
("[4:0 source]", "[2]", "【4:0†source】", "(3)"). They are stripped first,
then the remaining markdown is rendered to HTML with a fixed class per
element so the UI needs no stylesheet of its own.

Pure functions, no I/O. Rendering is invoked lazily at display time,
never during execution.
"""

import re
import xml.etree.ElementTree as etree

import markdown
from markdown.extensions import Extension
from markdown.postprocessors import Postprocessor
from markdown.treeprocessors import Treeprocessor
from markdown.util import HTML_PLACEHOLDER_RE

from promptgraph.graph.schemas import Node

_CITATION_PATTERNS = [
    re.compile(r"\[\d+:\d+\s*[^\]]*\]"),   # [4:0 source], [4:0†file.pdf]
    re.compile(r"\[\d+\]"),                # [2]
    re.compile(r"【\d+(?::\d+)?†[^】]*】"),  # 【4:0†source】
    re.compile(r"\(\d+\)"),                # (3)
]
_INNER_SPACE_RUN = re.compile(r"(?<=\S)[ \t]{2,}")
_SPACE_BEFORE_PUNCT = re.compile(r"(?<=\S)[ \t]+(?=[.,;:!?](?:\s|$))")
_TRAILING_SPACE = re.compile(r"[ \t]+(?=\n)")
# Fenced blocks (``` or ~~~, closed by the same fence) and `inline` spans
_CODE_SEGMENT = re.compile(
    r"^(`{3,}|~{3,})[^\n]*\n.*?^\1[ \t]*$|`[^`\n]+`",
    re.MULTILINE | re.DOTALL,
)
_EXTRA_BLANK_LINES = re.compile(r"\n{3,}")

HEADING_SIZES = {
    1: "text-2xl",
    2: "text-xl",
    3: "text-lg",
    4: "text-base",
    5: "text-sm",
    6: "text-xs",
}

ELEMENT_CLASSES = {
    **{f"h{level}": f"font-semibold {size} mb-2" for level, size in HEADING_SIZES.items()},
    "p": "mb-4 leading-relaxed",
    "ul": "mb-4 pl-5 space-y-1 list-disc",
    "ol": "mb-4 pl-5 space-y-1 list-decimal",
    "li": "text-base",
    "pre": "bg-muted p-4 rounded-md overflow-x-auto",
}
CODE_BLOCK_CLASS = "text-sm"

MARKDOWN_EXTENSIONS = ["fenced_code", "nl2br", "sane_lists", "tables"]


def clean_text(text: str) -> str:
    """Strip citation markers and tidy the whitespace they leave behind.

    Fenced code blocks and inline code spans are passed through untouched.
    Line structure is kept so headings, lists and code blocks survive.
    Returns the input (trimmed) when there is nothing to strip.
    """
    if not text:
        return ""
    pieces = []
    pos = 0
    for match in _CODE_SEGMENT.finditer(text):
        pieces.append(_clean_prose(text[pos:match.start()]))
        pieces.append(match.group(0))
        pos = match.end()
    pieces.append(_clean_prose(text[pos:]))
    return "".join(pieces).strip()


def _clean_prose(text: str) -> str:
    cleaned = text
    for pattern in _CITATION_PATTERNS:
        cleaned = pattern.sub("", cleaned)
    cleaned = _INNER_SPACE_RUN.sub(" ", cleaned)
    cleaned = _SPACE_BEFORE_PUNCT.sub("", cleaned)
    cleaned = _TRAILING_SPACE.sub("", cleaned)
    return _EXTRA_BLANK_LINES.sub("\n\n", cleaned)


def _is_stashed_block(el: etree.Element) -> bool:
    """A <p> wrapping only a raw-HTML placeholder gets unwrapped later; leave it bare."""
    return el.tag == "p" and len(el) == 0 and bool(HTML_PLACEHOLDER_RE.fullmatch((el.text or "").strip()))


class _ElementClassTreeprocessor(Treeprocessor):
    def run(self, root: etree.Element) -> None:
        for el in root.iter():
            if _is_stashed_block(el):
                continue
            css = ELEMENT_CLASSES.get(el.tag)
            if css:
                el.set("class", css)
        for pre in root.iter("pre"):
            for code in pre.iter("code"):
                code.set("class", CODE_BLOCK_CLASS)


class _FencedCodeClassPostprocessor(Postprocessor):
    """Fenced code is stashed as raw HTML, so it never reaches the tree."""

    _FENCED_OPEN = re.compile(r'<pre><code(?: class="([^"]*)")?>')

    def run(self, text: str) -> str:
        return self._FENCED_OPEN.sub(self._restyle, text)

    @staticmethod
    def _restyle(match: re.Match) -> str:
        classes = CODE_BLOCK_CLASS
        if match.group(1):
            classes += f" {match.group(1)}"
        return f'<pre class="{ELEMENT_CLASSES["pre"]}"><code class="{classes}">'


class ElementClassExtension(Extension):
    """Attach the fixed display classes to rendered elements."""

    def extendMarkdown(self, md: markdown.Markdown) -> None:
        # Low priorities: after inline processing and after raw HTML is restored.
        md.treeprocessors.register(_ElementClassTreeprocessor(md), "element_classes", 5)
        md.postprocessors.register(_FencedCodeClassPostprocessor(md), "fenced_code_classes", 5)


def format_text(text: str) -> str:
    """Clean completion text and render it as styled HTML."""
    cleaned = clean_text(text)
    if not cleaned:
        return ""
    return markdown.markdown(
        cleaned,
        extensions=MARKDOWN_EXTENSIONS + [ElementClassExtension()],
    )


def format_node_results(node: Node) -> list[dict]:
    """Rendered results of a node, one entry per document."""
    return [
        {
            "document_id": result.document_id,
            "text": result.text,
            "html": format_text(result.text),
        }
        for result in node.results
    ]

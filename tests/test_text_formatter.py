"""Tests for citation cleanup and styled markdown rendering."""

from promptgraph.formatting.text_formatter import (
    ELEMENT_CLASSES,
    clean_text,
    format_node_results,
    format_text,
)
from promptgraph.graph.schemas import Node, NodeResult, NodeStatus


class TestCleanText:

    def test_strips_citation_markers(self):
        text = "Revenue grew [4:0 source] by 10% [2]. See 【4:0†report.pdf】 page (3) for detail."
        assert clean_text(text) == "Revenue grew by 10%. See page for detail."

    def test_plain_text_is_only_trimmed(self):
        assert clean_text("  Nothing to strip here.  ") == "Nothing to strip here."

    def test_line_structure_survives(self):
        text = "# Title [1]\n\n- one [2:1 a.pdf]\n- two\n\n\n\nEnd"
        assert clean_text(text) == "# Title\n\n- one\n- two\n\nEnd"

    def test_empty(self):
        assert clean_text("") == ""

    def test_code_is_left_alone(self):
        text = "Call `arr[0]` first [2].\n\n```python\nprint(1)  # see [3]\nxs[1:2]\n```\n\nDone (4)."
        assert clean_text(text) == (
            "Call `arr[0]` first.\n\n```python\nprint(1)  # see [3]\nxs[1:2]\n```\n\nDone."
        )

    def test_unclosed_fence_is_treated_as_prose(self):
        assert clean_text("```\nprint(1)") == "```\nprint"


class TestFormatText:

    def test_empty_renders_nothing(self):
        assert format_text("") == ""
        assert format_text("[1]") == ""

    def test_headings_get_size_classes(self):
        html = format_text("# Big\n\n### Smaller")
        assert '<h1 class="font-semibold text-2xl mb-2">Big</h1>' in html
        assert '<h3 class="font-semibold text-lg mb-2">Smaller</h3>' in html

    def test_paragraphs(self):
        html = format_text("First paragraph.\n\nSecond one.")
        assert html.count(f'<p class="{ELEMENT_CLASSES["p"]}">') == 2

    def test_lists(self):
        html = format_text("- apples\n- pears\n\n1. first\n2. second")
        assert f'<ul class="{ELEMENT_CLASSES["ul"]}">' in html
        assert f'<ol class="{ELEMENT_CLASSES["ol"]}">' in html
        assert '<li class="text-base">apples</li>' in html

    def test_fenced_code_block(self):
        html = format_text("```python\nprint(1)\n```")
        assert (
            '<pre class="bg-muted p-4 rounded-md overflow-x-auto">'
            '<code class="text-sm language-python">'
        ) in html
        assert "print(1)" in html
        assert "<p>" not in html
        assert "<p " not in html

    def test_inline_code_keeps_brackets(self):
        html = format_text("Use `arr[0]` here [2].")
        assert "<code>arr[0]</code>" in html
        assert "[2]" not in html

    def test_citations_are_removed_before_rendering(self):
        html = format_text("**Key finding** [3:1 source]")
        assert "[3:1" not in html
        assert "<strong>Key finding</strong>" in html


def test_format_node_results():
    node = Node(
        status=NodeStatus.SUCCEEDED,
        results=[
            NodeResult(document_id="d1", text="# One"),
            NodeResult(document_id="d2", text="Two [1]"),
        ],
    )

    rendered = format_node_results(node)

    assert [r["document_id"] for r in rendered] == ["d1", "d2"]
    assert rendered[1]["text"] == "Two [1]"
    assert rendered[1]["html"] == '<p class="mb-4 leading-relaxed">Two</p>'

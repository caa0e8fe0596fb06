"""Display formatting for completion text."""

from promptgraph.formatting.text_formatter import clean_text, format_node_results, format_text

__all__ = ["clean_text", "format_node_results", "format_text"]

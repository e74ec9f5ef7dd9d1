"""Report generators for problem impact data."""

from .markdown_reporter import MarkdownReporter

__all__ = ["MarkdownReporter"]

"""Composite opportunity engine: gated, weighted, graded intraday signals."""

__version__ = "0.1.0"

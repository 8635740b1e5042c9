"""Progressive gallery of sequentially numbered page images."""

__version__ = "0.1.0"

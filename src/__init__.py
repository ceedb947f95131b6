"""loreweave: hierarchical community detection over narrative knowledge graphs."""

from loreweave.version import __version__

__all__ = ["__version__"]

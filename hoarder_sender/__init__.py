"""Send random Hoarder bookmarks on a schedule."""

__version__ = "0.1.0"
